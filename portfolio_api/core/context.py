from typing import Optional

from portfolio_api.core.cache import TTLCache
from portfolio_api.core.config import Settings, get_settings
from portfolio_api.core.logging_config import get_logger
from portfolio_api.services.portfolio_service import PortfolioService
from portfolio_api.sources.coincheck import CoincheckClient, SandboxBalanceSource
from portfolio_api.sources.coingecko import CoinGeckoMarketSource

logger = get_logger("context")


# Clients are built lazily on first use so nothing binds to an event loop at import time.
class ServiceContext:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._cache = None
        self._coincheck = None
        self._balance_source = None
        self._market_source = None

    @property
    def cache(self) -> TTLCache:
        if self._cache is None:
            self._cache = TTLCache(default_ttl=self.settings.CACHE_DEFAULT_TTL_SECONDS)
        return self._cache

    @property
    def coincheck(self) -> CoincheckClient:
        if self._coincheck is None:
            self._coincheck = CoincheckClient(
                access_key=self.settings.COINCHECK_API_KEY,
                secret_key=self.settings.COINCHECK_SECRET_KEY,
                base_url=self.settings.COINCHECK_BASE_URL,
                timeout=self.settings.REQUEST_TIMEOUT_SECONDS,
                retry_attempts=self.settings.RETRY_ATTEMPTS,
            )
        return self._coincheck

    @property
    def balance_source(self):
        if self._balance_source is None:
            if self.settings.ENVIRONMENT == "development" and not self.settings.coincheck_configured:
                logger.warning("sandbox_balance_enabled", reason="coincheck credentials not configured")
                self._balance_source = SandboxBalanceSource(self.coincheck)
            else:
                self._balance_source = self.coincheck
        return self._balance_source

    @property
    def market_source(self) -> CoinGeckoMarketSource:
        if self._market_source is None:
            self._market_source = CoinGeckoMarketSource(
                cache=self.cache,
                api_key=self.settings.COINGECKO_API_KEY,
                markets_ttl=self.settings.MARKET_CACHE_TTL_SECONDS,
                retry_attempts=self.settings.RETRY_ATTEMPTS,
            )
        return self._market_source

    def portfolio_service(self) -> PortfolioService:
        return PortfolioService(
            balance_source=self.balance_source,
            market_source=self.market_source,
            currency_map=self.settings.CURRENCY_MAP,
            reporting_currency=self.settings.REPORTING_CURRENCY,
            history_days=self.settings.HISTORY_DAYS,
        )

    async def startup(self):
        logger.info(
            "context_startup",
            environment=self.settings.ENVIRONMENT,
            currencies=sorted(self.settings.CURRENCY_MAP),
            coincheck_configured=self.settings.coincheck_configured,
        )

    async def shutdown(self):
        if self._coincheck is not None:
            await self._coincheck.aclose()
        if self._cache is not None:
            self._cache.clear()
        self._coincheck = None
        self._balance_source = None
        self._market_source = None
        self._cache = None
        logger.info("context_shutdown")


service_context = ServiceContext()


def get_context() -> ServiceContext:
    return service_context


def get_portfolio_service() -> PortfolioService:
    return service_context.portfolio_service()

"""
Fans out to the balance and market sources, classifies the outcome and picks the
live or fallback path. Every result is tagged so callers can tell placeholder data
from account data.
"""
import asyncio
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Generic, List, Mapping, Optional, Tuple, TypeVar

from prometheus_client import Counter

from portfolio_api.core.errors import AssetNotSupportedError
from portfolio_api.core.logging_config import get_logger
from portfolio_api.schemas.portfolio import AssetDetail, NormalizedAsset, PortfolioSummary
from portfolio_api.schemas.responses import ConnectionReport, ConnectionTestResult
from portfolio_api.schemas.upstream import RawBalance, RawMarketEntry
from portfolio_api.services.aggregator import build_portfolio_summary
from portfolio_api.services.detail import to_asset_detail, to_price_history
from portfolio_api.services.fallback import fallback_asset_detail, fallback_assets, fallback_portfolio
from portfolio_api.services.normalizer import holding_amount, normalize_holdings
from portfolio_api.sources.base import BalanceSource, MarketSource

logger = get_logger("portfolio_service")

UPSTREAM_FAILURES = Counter('upstream_failures_total', 'Upstream source failures', ['source'])
FALLBACK_RESPONSES = Counter('fallback_responses_total', 'Responses served from fallback data', ['view'])

T = TypeVar("T")


class FetchState(str, enum.Enum):
    BOTH_SUCCEEDED = "both_succeeded"
    BALANCE_FAILED_ONLY = "balance_failed_only"
    MARKET_FAILED_ONLY = "market_failed_only"
    BOTH_FAILED = "both_failed"

    @classmethod
    def classify(cls, balance_ok: bool, market_ok: bool) -> "FetchState":
        if balance_ok and market_ok:
            return cls.BOTH_SUCCEEDED
        if market_ok:
            return cls.BALANCE_FAILED_ONLY
        if balance_ok:
            return cls.MARKET_FAILED_ONLY
        return cls.BOTH_FAILED


@dataclass(frozen=True)
class Sourced(Generic[T]):
    data: T
    is_fallback: bool = False

    @classmethod
    def live(cls, data: T) -> "Sourced[T]":
        return cls(data=data, is_fallback=False)

    @classmethod
    def fallback(cls, data: T) -> "Sourced[T]":
        return cls(data=data, is_fallback=True)


class PortfolioService:
    def __init__(
        self,
        balance_source: BalanceSource,
        market_source: MarketSource,
        currency_map: Mapping[str, str],
        reporting_currency: str = "jpy",
        history_days: int = 7,
    ):
        self.balance_source = balance_source
        self.market_source = market_source
        self.currency_map = {code.lower(): market_id for code, market_id in currency_map.items()}
        self.reporting_currency = reporting_currency.lower()
        self.history_days = history_days

    def _failed(self, source: str, result: Any) -> bool:
        if isinstance(result, Exception):
            logger.error("source_failed", source=source, error=str(result), error_type=type(result).__name__)
            UPSTREAM_FAILURES.labels(source=source).inc()
            return True
        return False

    async def _fetch(
        self, market_ids: List[str], *extra: Awaitable[Any]
    ) -> Tuple[FetchState, Optional[RawBalance], List[RawMarketEntry], List[Any]]:
        results = await asyncio.gather(
            self.balance_source.get_balance(),
            self.market_source.get_markets(market_ids, self.reporting_currency),
            *extra,
            return_exceptions=True,
        )
        balance, markets, rest = results[0], results[1], list(results[2:])

        balance_ok = not self._failed(self.balance_source.name, balance)
        market_ok = not self._failed(self.market_source.name, markets)
        state = FetchState.classify(balance_ok, market_ok)
        logger.info("sources_settled", state=state.value)

        return (
            state,
            balance if balance_ok else None,
            markets if market_ok else [],
            rest,
        )

    def _needs_fallback(self, state: FetchState, markets: List[RawMarketEntry], view: str) -> bool:
        if state in (FetchState.BOTH_FAILED, FetchState.MARKET_FAILED_ONLY):
            reason = state.value
        elif not markets:
            reason = "no_market_data"
        else:
            return False
        logger.warning("serving_fallback", view=view, reason=reason)
        FALLBACK_RESPONSES.labels(view=view).inc()
        return True

    async def get_portfolio_summary(self) -> Sourced[PortfolioSummary]:
        state, balance, markets, _ = await self._fetch(sorted(set(self.currency_map.values())))
        if self._needs_fallback(state, markets, "summary"):
            return Sourced.fallback(fallback_portfolio())

        assets = normalize_holdings(balance, markets, self.currency_map, self.reporting_currency)
        summary = build_portfolio_summary(assets)
        logger.info("portfolio_summary", assets=len(assets), total_value=summary.total_value)
        return Sourced.live(summary)

    async def get_assets(self) -> Sourced[List[NormalizedAsset]]:
        state, balance, markets, _ = await self._fetch(sorted(set(self.currency_map.values())))
        if self._needs_fallback(state, markets, "assets"):
            return Sourced.fallback(fallback_assets())

        assets = normalize_holdings(balance, markets, self.currency_map, self.reporting_currency)
        logger.info("assets_list", assets=len(assets))
        return Sourced.live(assets)

    async def get_asset_detail(self, asset_id: str) -> Sourced[AssetDetail]:
        asset_id = asset_id.lower()
        market_id = self.currency_map.get(asset_id)
        if market_id is None:
            raise AssetNotSupportedError(asset_id)

        state, balance, markets, (chart,) = await self._fetch(
            [market_id],
            self.market_source.get_market_chart(market_id, self.reporting_currency, self.history_days),
        )
        market = next((entry for entry in markets if entry.id == market_id), None)
        if self._needs_fallback(state, [market] if market else [], "detail"):
            return Sourced.fallback(fallback_asset_detail(asset_id))

        if self._failed(f"{self.market_source.name}_chart", chart):
            history = []
        else:
            history = to_price_history(chart)

        amount = holding_amount(balance, asset_id, market, self.currency_map, self.reporting_currency)
        return Sourced.live(to_asset_detail(market, amount, history))

    async def check_connections(self) -> ConnectionReport:
        timestamp = datetime.now(timezone.utc)
        checks = [
            ("CoinGecko", self.market_source, "Connection failed - API may be unavailable"),
            ("Coincheck", self.balance_source, "Connection failed - Check API credentials or service availability"),
        ]
        outcomes = await asyncio.gather(
            *(source.test_connection() for _, source, _ in checks), return_exceptions=True
        )

        results = []
        for (service, _, failure_message), outcome in zip(checks, outcomes):
            if isinstance(outcome, Exception):
                status, message = "error", f"Connection error: {outcome}"
            elif outcome:
                status, message = "success", "Connection successful"
            else:
                status, message = "error", failure_message
            results.append(ConnectionTestResult(service=service, status=status, message=message, timestamp=timestamp))

        successes = sum(1 for r in results if r.status == "success")
        if successes == len(results):
            overall = "success"
        elif successes:
            overall = "partial"
        else:
            overall = "error"
        return ConnectionReport(overall=overall, results=results)

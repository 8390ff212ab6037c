import asyncio
from typing import Any, List, Optional, Sequence

from pycoingecko import CoinGeckoAPI
from pydantic import ValidationError
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from portfolio_api.core.cache import TTLCache, cache_key
from portfolio_api.core.errors import UpstreamResponseError
from portfolio_api.core.logging_config import get_logger
from portfolio_api.schemas.upstream import MarketChart, RawMarketEntry

logger = get_logger("source_coingecko")

PING_REPLY = "(V3) To the Moon!"


class CoinGeckoMarketSource:
    """
    Market data from CoinGecko. pycoingecko is blocking, so every call runs in a worker thread.
    Market snapshots are cached; price charts are fetched fresh per request.
    """

    name = "coingecko"

    def __init__(
        self,
        cache: TTLCache,
        api_key: str = "",
        markets_ttl: float = 120,
        retry_attempts: int = 3,
        retry_wait=None,
        client: Optional[Any] = None,
    ):
        self.cache = cache
        self.markets_ttl = markets_ttl
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=8)
        if client is not None:
            self.client = client
        elif api_key:
            self.client = CoinGeckoAPI(api_key=api_key)
        else:
            self.client = CoinGeckoAPI()

    async def _call(self, method: str, *args, **kwargs) -> Any:
        # Retries with backoff to ride out CoinGecko's 429s on the free tier.
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.retry_wait,
            reraise=True,
        ):
            with attempt:
                return await asyncio.to_thread(getattr(self.client, method), *args, **kwargs)

    async def _fetch_markets(self, ids: Sequence[str], vs_currency: str) -> List[RawMarketEntry]:
        payload = await self._call(
            "get_coins_markets",
            vs_currency=vs_currency,
            ids=",".join(ids),
            order="market_cap_desc",
            per_page=100,
            page=1,
            sparkline=False,
            price_change_percentage="24h",
        )
        if not isinstance(payload, list):
            raise UpstreamResponseError(self.name, "invalid markets payload")

        entries = []
        for raw in payload:
            try:
                entries.append(RawMarketEntry.model_validate(raw))
            except ValidationError as e:
                coin = raw.get("id", "unknown") if isinstance(raw, dict) else "unknown"
                logger.warning("conversion_error", source=self.name, coin=coin, error=str(e))
                continue

        logger.info("fetched_markets", source=self.name, requested=len(ids), count=len(entries))
        return entries

    async def get_markets(self, ids: Sequence[str], vs_currency: str) -> List[RawMarketEntry]:
        key = cache_key("coingecko:markets", {"ids": ",".join(ids), "vs_currency": vs_currency})
        return await self.cache.get_or_fetch(
            key, lambda: self._fetch_markets(ids, vs_currency), ttl=self.markets_ttl
        )

    async def get_market_chart(self, coin_id: str, vs_currency: str, days: int) -> MarketChart:
        payload = await self._call("get_coin_market_chart_by_id", id=coin_id, vs_currency=vs_currency, days=days)
        try:
            chart = MarketChart.model_validate(payload)
        except ValidationError as e:
            raise UpstreamResponseError(self.name, f"invalid market chart for {coin_id}") from e

        logger.info("fetched_market_chart", source=self.name, coin=coin_id, points=len(chart.prices))
        return chart

    async def test_connection(self) -> bool:
        try:
            reply = await asyncio.to_thread(self.client.ping)
            return isinstance(reply, dict) and reply.get("gecko_says") == PING_REPLY
        except Exception as e:
            logger.error("connection_test_failed", source=self.name, error=str(e))
            return False

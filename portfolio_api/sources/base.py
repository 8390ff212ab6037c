from typing import List, Protocol, Sequence

from portfolio_api.schemas.upstream import MarketChart, RawBalance, RawMarketEntry


class BalanceSource(Protocol):
    name: str

    async def get_balance(self) -> RawBalance: ...

    async def test_connection(self) -> bool: ...


class MarketSource(Protocol):
    name: str

    async def get_markets(self, ids: Sequence[str], vs_currency: str) -> List[RawMarketEntry]: ...

    async def get_market_chart(self, coin_id: str, vs_currency: str, days: int) -> MarketChart: ...

    async def test_connection(self) -> bool: ...

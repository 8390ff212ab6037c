import pytest
from tenacity import wait_none

from portfolio_api.core.cache import TTLCache
from portfolio_api.sources.coingecko import CoinGeckoMarketSource

from fakes import BITCOIN, CHART, ETHEREUM


class StubCoinGeckoAPI:
    """Stands in for pycoingecko.CoinGeckoAPI."""

    def __init__(self, markets=None, ping_reply=None):
        self.markets = markets if markets is not None else [BITCOIN, ETHEREUM]
        self.ping_reply = ping_reply or {"gecko_says": "(V3) To the Moon!"}
        self.market_calls = []

    def get_coins_markets(self, vs_currency, **kwargs):
        self.market_calls.append({"vs_currency": vs_currency, **kwargs})
        return self.markets

    def get_coin_market_chart_by_id(self, id, vs_currency, days, **kwargs):
        return CHART

    def ping(self):
        return self.ping_reply


@pytest.mark.asyncio
async def test_markets_are_validated_and_cached():
    stub = StubCoinGeckoAPI()
    source = CoinGeckoMarketSource(cache=TTLCache(), client=stub)

    first = await source.get_markets(["bitcoin", "ethereum"], "jpy")
    second = await source.get_markets(["bitcoin", "ethereum"], "jpy")

    assert [e.id for e in first] == ["bitcoin", "ethereum"]
    assert second == first
    assert len(stub.market_calls) == 1
    assert stub.market_calls[0]["ids"] == "bitcoin,ethereum"
    assert stub.market_calls[0]["vs_currency"] == "jpy"


@pytest.mark.asyncio
async def test_invalid_market_entries_are_skipped():
    broken = {"id": "cardano", "symbol": "ada", "name": "Cardano", "current_price": None}
    source = CoinGeckoMarketSource(cache=TTLCache(), client=StubCoinGeckoAPI(markets=[broken, BITCOIN]))

    entries = await source.get_markets(["cardano", "bitcoin"], "jpy")
    assert [e.id for e in entries] == ["bitcoin"]


@pytest.mark.asyncio
async def test_market_chart():
    source = CoinGeckoMarketSource(cache=TTLCache(), client=StubCoinGeckoAPI())
    chart = await source.get_market_chart("bitcoin", "jpy", 7)
    assert len(chart.prices) == 3
    assert len(chart.market_caps) == 2


@pytest.mark.asyncio
async def test_connection():
    ok = CoinGeckoMarketSource(cache=TTLCache(), client=StubCoinGeckoAPI())
    assert await ok.test_connection() is True

    wrong = CoinGeckoMarketSource(cache=TTLCache(), client=StubCoinGeckoAPI(ping_reply={"gecko_says": "?"}))
    assert await wrong.test_connection() is False


class FlakyCoinGeckoAPI(StubCoinGeckoAPI):
    def __init__(self, failures, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures

    def get_coins_markets(self, vs_currency, **kwargs):
        if self.failures:
            self.failures -= 1
            self.market_calls.append(None)
            raise ConnectionError("429 Too Many Requests")
        return super().get_coins_markets(vs_currency, **kwargs)


@pytest.mark.asyncio
async def test_transient_failure_is_retried():
    stub = FlakyCoinGeckoAPI(failures=1)
    source = CoinGeckoMarketSource(cache=TTLCache(), client=stub, retry_wait=wait_none())

    entries = await source.get_markets(["bitcoin"], "jpy")

    assert [e.id for e in entries] == ["bitcoin", "ethereum"]
    assert len(stub.market_calls) == 2


@pytest.mark.asyncio
async def test_retries_are_bounded_by_attempts():
    stub = FlakyCoinGeckoAPI(failures=5)
    source = CoinGeckoMarketSource(cache=TTLCache(), client=stub, retry_attempts=2, retry_wait=wait_none())

    with pytest.raises(ConnectionError):
        await source.get_markets(["bitcoin"], "jpy")
    assert len(stub.market_calls) == 2
    assert source.cache.size() == 0

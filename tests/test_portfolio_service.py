import asyncio

import pytest

from portfolio_api.core.errors import AssetNotSupportedError, UpstreamError
from portfolio_api.services.portfolio_service import FetchState

from fakes import FakeBalanceSource, FakeMarketSource, make_service


@pytest.mark.parametrize(
    "balance_ok, market_ok, expected",
    [
        (True, True, FetchState.BOTH_SUCCEEDED),
        (False, True, FetchState.BALANCE_FAILED_ONLY),
        (True, False, FetchState.MARKET_FAILED_ONLY),
        (False, False, FetchState.BOTH_FAILED),
    ],
)
def test_fetch_state_classification(balance_ok, market_ok, expected):
    assert FetchState.classify(balance_ok, market_ok) is expected


@pytest.mark.asyncio
async def test_summary_live():
    result = await make_service().get_portfolio_summary()

    assert result.is_fallback is False
    assert result.data.total_value == pytest.approx(1234567)
    assert [a.id for a in result.data.assets] == ["btc", "eth"]


@pytest.mark.asyncio
async def test_summary_requests_every_mapped_market():
    market = FakeMarketSource()
    await make_service(market=market).get_portfolio_summary()
    assert market.requested_ids == [["bitcoin", "cardano", "ethereum"]]


@pytest.mark.asyncio
async def test_summary_both_failed_uses_fallback(balance_down, market_down):
    result = await make_service(balance_down, market_down).get_portfolio_summary()

    assert result.is_fallback is True
    assert result.data.total_value == 1666667


@pytest.mark.asyncio
async def test_summary_market_failed_uses_fallback(market_down):
    result = await make_service(market=market_down).get_portfolio_summary()
    assert result.is_fallback is True


@pytest.mark.asyncio
async def test_summary_empty_market_data_uses_fallback():
    result = await make_service(market=FakeMarketSource(entries=[])).get_portfolio_summary()
    assert result.is_fallback is True


@pytest.mark.asyncio
async def test_summary_balance_failed_is_live_and_empty(balance_down):
    result = await make_service(balance=balance_down).get_portfolio_summary()

    assert result.is_fallback is False
    assert result.data.total_value == 0
    assert result.data.assets == []


@pytest.mark.asyncio
async def test_sources_are_fetched_concurrently():
    started = []
    release = asyncio.Event()

    class SlowBalance(FakeBalanceSource):
        async def get_balance(self):
            started.append("balance")
            await release.wait()
            return await super().get_balance()

    class SlowMarket(FakeMarketSource):
        async def get_markets(self, ids, vs_currency):
            started.append("market")
            if len(started) == 2:
                release.set()
            await release.wait()
            return await super().get_markets(ids, vs_currency)

    result = await asyncio.wait_for(
        make_service(SlowBalance(), SlowMarket()).get_portfolio_summary(), timeout=2
    )
    assert sorted(started) == ["balance", "market"]
    assert result.is_fallback is False


@pytest.mark.asyncio
async def test_assets_live_and_fallback(balance_down, market_down):
    live = await make_service().get_assets()
    assert live.is_fallback is False
    assert [a.amount for a in live.data] == [0.5, 2.0]

    fallback = await make_service(balance_down, market_down).get_assets()
    assert fallback.is_fallback is True
    assert [a.id for a in fallback.data] == ["btc", "eth"]


@pytest.mark.asyncio
async def test_asset_detail_live():
    result = await make_service().get_asset_detail("BTC")

    assert result.is_fallback is False
    detail = result.data
    assert detail.amount == 0.5
    assert detail.value == pytest.approx(1000000)
    assert len(detail.price_history) == 3


@pytest.mark.asyncio
async def test_asset_detail_balance_failed_has_zero_amount(balance_down):
    result = await make_service(balance=balance_down).get_asset_detail("eth")

    assert result.is_fallback is False
    assert result.data.amount == 0
    assert result.data.value == 0
    assert result.data.supply.total == 120000000


@pytest.mark.asyncio
async def test_asset_detail_chart_failure_gives_empty_history():
    market = FakeMarketSource(chart_error=UpstreamError("coingecko", "timeout"))
    result = await make_service(market=market).get_asset_detail("btc")

    assert result.is_fallback is False
    assert result.data.price_history == []


@pytest.mark.asyncio
async def test_asset_detail_market_failed_uses_fallback(market_down):
    result = await make_service(market=market_down).get_asset_detail("eth")

    assert result.is_fallback is True
    assert result.data.current_price == 117283.5


@pytest.mark.asyncio
async def test_asset_detail_unsupported_id():
    balance = FakeBalanceSource()
    with pytest.raises(AssetNotSupportedError):
        await make_service(balance=balance).get_asset_detail("xrp")
    assert balance.calls == 0


@pytest.mark.asyncio
async def test_check_connections():
    report = await make_service().check_connections()
    assert report.overall == "success"
    assert [r.service for r in report.results] == ["CoinGecko", "Coincheck"]

    partial = await make_service(balance=FakeBalanceSource(connected=False)).check_connections()
    assert partial.overall == "partial"
    assert partial.results[1].status == "error"

    down = await make_service(FakeBalanceSource(connected=False), FakeMarketSource(connected=False)).check_connections()
    assert down.overall == "error"


@pytest.mark.asyncio
async def test_summary_with_overflowing_holding_degrades():
    balance = FakeBalanceSource(payload={"success": True, "btc": "1e303", "eth": "2.0"})
    result = await make_service(balance=balance).get_portfolio_summary()

    assert result.is_fallback is False
    assert [a.id for a in result.data.assets] == ["eth"]
    assert result.data.total_value == pytest.approx(234567)
    assert result.data.assets[0].ratio == pytest.approx(1.0)

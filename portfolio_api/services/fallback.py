"""
Placeholder portfolio data served when live sources are unavailable.

The figures are illustrative only. They keep the dashboard rendering and are always
returned tagged as fallback; they must never be read as account data.
"""
from datetime import datetime, timezone
from typing import List

from portfolio_api.schemas.portfolio import (
    AssetDetail,
    AssetSummary,
    NormalizedAsset,
    PortfolioSummary,
    PriceHistoryPoint,
)

FALLBACK_TOTAL_VALUE = 1666667

_DETAIL_FIXTURES = {
    "btc": {
        "name": "Bitcoin",
        "amount": 0.5,
        "value": 1000000,
        "current_price": 2000000,
        "change_percent_24h": 5.2,
        "history": (1900000, 1950000, 2000000),
        "market_cap": 39000000000000,
        "volume_24h": 2500000000000,
        "rank": 1,
    },
    "eth": {
        "name": "Ethereum",
        "amount": 2,
        "value": 234567,
        "current_price": 117283.5,
        "change_percent_24h": -2.1,
        "history": (115000, 119000, 117283.5),
        "market_cap": 14000000000000,
        "volume_24h": 1200000000000,
        "rank": 2,
    },
}

_HISTORY_DATES = (
    datetime(2024, 7, 1, tzinfo=timezone.utc),
    datetime(2024, 7, 2, tzinfo=timezone.utc),
    datetime(2024, 7, 3, tzinfo=timezone.utc),
)


def fallback_portfolio() -> PortfolioSummary:
    assets = [
        AssetSummary(
            id="btc",
            name="Bitcoin",
            symbol="BTC",
            value=1000000,
            ratio=0.6,
            change_24h=100000,
            change_percent_24h=5.2,
            amount=0.5,
            current_price=2000000,
        ),
        AssetSummary(
            id="eth",
            name="Ethereum",
            symbol="ETH",
            value=666667,
            ratio=0.4,
            change_24h=-5000,
            change_percent_24h=-2.1,
            amount=2,
            current_price=333333.5,
        ),
    ]
    return PortfolioSummary(
        total_value=FALLBACK_TOTAL_VALUE,
        total_change_24h=95000,
        total_change_percent_24h=2.4,
        assets=assets,
        last_updated=datetime.now(timezone.utc),
    )


def fallback_assets() -> List[NormalizedAsset]:
    return [
        NormalizedAsset(
            id=asset_id,
            name=fixture["name"],
            symbol=asset_id.upper(),
            amount=fixture["amount"],
            value=fixture["value"],
            current_price=fixture["current_price"],
            change_percent_24h=fixture["change_percent_24h"],
        )
        for asset_id, fixture in _DETAIL_FIXTURES.items()
    ]


def fallback_asset_detail(asset_id: str) -> AssetDetail:
    asset_id = asset_id.lower()
    fixture = _DETAIL_FIXTURES.get(asset_id)
    if fixture is None:
        return AssetDetail(
            id=asset_id,
            name=asset_id.upper(),
            symbol=asset_id.upper(),
            amount=0,
            value=0,
            current_price=0,
            price_history=[PriceHistoryPoint(date=d, price=0) for d in _HISTORY_DATES],
        )

    return AssetDetail(
        id=asset_id,
        name=fixture["name"],
        symbol=asset_id.upper(),
        amount=fixture["amount"],
        value=fixture["value"],
        current_price=fixture["current_price"],
        change_percent_24h=fixture["change_percent_24h"],
        price_history=[
            PriceHistoryPoint(date=d, price=p) for d, p in zip(_HISTORY_DATES, fixture["history"])
        ],
        market_cap=fixture["market_cap"],
        volume_24h=fixture["volume_24h"],
        rank=fixture["rank"],
    )

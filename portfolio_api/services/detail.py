from datetime import datetime, timezone
from typing import List, Optional, Sequence

from portfolio_api.schemas.portfolio import AssetDetail, Extremum, PriceHistoryPoint, Supply
from portfolio_api.schemas.upstream import MarketChart, RawMarketEntry


def _value_at(series: Sequence[Sequence[Optional[float]]], index: int) -> Optional[float]:
    if index >= len(series) or len(series[index]) < 2:
        return None
    return series[index][1]


def to_price_history(chart: MarketChart) -> List[PriceHistoryPoint]:
    """
    One point per price sample. Volume and market cap come from the same position
    in their series; a missing position leaves the field empty.
    """
    points = []
    for index, pair in enumerate(chart.prices):
        if len(pair) < 2 or pair[0] is None or pair[1] is None:
            continue
        points.append(
            PriceHistoryPoint(
                date=datetime.fromtimestamp(pair[0] / 1000, tz=timezone.utc),
                price=pair[1],
                volume=_value_at(chart.total_volumes, index),
                market_cap=_value_at(chart.market_caps, index),
            )
        )
    return points


def _extremum(value: Optional[float], date: Optional[str], change: Optional[float]) -> Optional[Extremum]:
    if value is None:
        return None
    return Extremum(value=value, date=date, change_percentage=change)


def to_asset_detail(
    market: RawMarketEntry,
    amount: float,
    price_history: List[PriceHistoryPoint],
) -> AssetDetail:
    total_supply = market.total_supply
    if total_supply is None:
        total_supply = market.circulating_supply

    return AssetDetail(
        id=market.symbol.lower(),
        name=market.name,
        symbol=market.symbol.upper(),
        amount=amount,
        value=amount * market.current_price,
        current_price=market.current_price,
        change_24h=market.price_change_24h,
        change_percent_24h=market.price_change_percentage_24h,
        price_history=price_history,
        market_cap=market.market_cap,
        volume_24h=market.total_volume,
        rank=market.market_cap_rank,
        supply=Supply(
            circulating=market.circulating_supply,
            total=total_supply,
            max=market.max_supply,
        ),
        ath=_extremum(market.ath, market.ath_date, market.ath_change_percentage),
        atl=_extremum(market.atl, market.atl_date, market.atl_change_percentage),
        last_updated=market.last_updated,
    )

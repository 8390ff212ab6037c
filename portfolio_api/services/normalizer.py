"""
Joins exchange balances with market snapshots into NormalizedAsset records.

Best-effort: holdings that are zero, unparseable, unmapped
or have no market snapshot are dropped, never reported as errors.
"""
import math
from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from portfolio_api.core.logging_config import get_logger
from portfolio_api.schemas.portfolio import NormalizedAsset
from portfolio_api.schemas.upstream import RawBalance, RawMarketEntry

logger = get_logger("normalizer")


def parse_amount(raw: str) -> Optional[float]:
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount):
        return None
    return amount


def normalize_holdings(
    balance: Optional[RawBalance],
    markets: Iterable[RawMarketEntry],
    currency_map: Mapping[str, str],
    reporting_currency: str = "jpy",
) -> List[NormalizedAsset]:
    if balance is None:
        return []

    by_id: Dict[str, RawMarketEntry] = {}
    for entry in markets:
        by_id.setdefault(entry.id, entry)

    assets = []
    for code, raw_amount in balance.holdings.items():
        if code == reporting_currency:
            continue

        amount = parse_amount(raw_amount)
        if amount is None or amount <= 0:
            continue

        market_id = currency_map.get(code)
        if market_id is None:
            logger.debug("unmapped_currency", currency=code)
            continue

        market = by_id.get(market_id)
        if market is None:
            logger.debug("market_not_found", currency=code, market_id=market_id)
            continue

        try:
            asset = NormalizedAsset(
                id=code,
                name=market.name,
                symbol=code.upper(),
                amount=amount,
                value=amount * market.current_price,
                current_price=market.current_price,
                change_24h=market.price_change_24h,
                change_percent_24h=market.price_change_percentage_24h,
            )
        except ValidationError as e:
            logger.warning("invalid_asset", currency=code, error=str(e))
            continue
        assets.append(asset)

    return assets


def holding_amount(
    balance: Optional[RawBalance],
    asset_id: str,
    market: RawMarketEntry,
    currency_map: Mapping[str, str],
    reporting_currency: str = "jpy",
) -> float:
    """Held amount of one asset, or 0 when the balance is unknown or holds none."""
    for asset in normalize_holdings(balance, [market], currency_map, reporting_currency):
        if asset.id == asset_id:
            return asset.amount
    return 0.0

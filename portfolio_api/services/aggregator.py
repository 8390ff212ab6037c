from datetime import datetime, timezone
from typing import Sequence

from portfolio_api.schemas.portfolio import AssetSummary, NormalizedAsset, PortfolioSummary


def build_portfolio_summary(assets: Sequence[NormalizedAsset]) -> PortfolioSummary:
    """
    Reduces normalized assets to portfolio totals.

    Ratios and the 24h percent change are both weighted by value / total value;
    with a zero total every ratio is 0 and the weighted change is 0.
    total_change_24h is the absolute change in the reporting currency (sum of change_24h * amount).
    """
    total_value = sum(asset.value for asset in assets)

    summaries = []
    weighted_change = 0.0
    for asset in assets:
        ratio = asset.value / total_value if total_value > 0 else 0.0
        weighted_change += ratio * (asset.change_percent_24h or 0.0)
        summaries.append(AssetSummary(**asset.model_dump(), ratio=min(ratio, 1.0)))

    return PortfolioSummary(
        total_value=total_value,
        total_change_24h=sum((asset.change_24h or 0.0) * asset.amount for asset in assets),
        total_change_percent_24h=weighted_change,
        assets=summaries,
        last_updated=datetime.now(timezone.utc),
    )

"""
Internal portfolio shapes produced by the normalizer, aggregator and detail transformer.
Attributes are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def camelize(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=camelize, populate_by_name=True)


class NormalizedAsset(CamelModel):
    id: str = Field(..., description="Balance currency code, e.g. btc")
    name: str
    symbol: str = Field(..., description="e.g. BTC")
    amount: float = Field(..., ge=0)
    value: float = Field(..., ge=0, description="amount * current_price in the reporting currency")
    current_price: float = Field(..., ge=0)
    change_24h: Optional[float] = None
    change_percent_24h: Optional[float] = None

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)


class AssetSummary(NormalizedAsset):
    ratio: float = Field(..., ge=0, le=1)


class PortfolioSummary(CamelModel):
    total_value: float = 0.0
    total_change_24h: float = 0.0
    total_change_percent_24h: float = 0.0
    assets: List[AssetSummary] = Field(default_factory=list)
    last_updated: datetime


class PriceHistoryPoint(CamelModel):
    date: datetime
    price: float
    volume: Optional[float] = None
    market_cap: Optional[float] = None


class Supply(CamelModel):
    circulating: Optional[float] = None
    total: Optional[float] = None
    max: Optional[float] = None


class Extremum(CamelModel):
    value: Optional[float] = None
    date: Optional[str] = None
    change_percentage: Optional[float] = None


class AssetDetail(NormalizedAsset):
    price_history: List[PriceHistoryPoint] = Field(default_factory=list)
    market_cap: Optional[float] = None
    volume_24h: Optional[float] = None
    rank: Optional[int] = None
    supply: Optional[Supply] = None
    ath: Optional[Extremum] = None
    atl: Optional[Extremum] = None
    last_updated: Optional[str] = None

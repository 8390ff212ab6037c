from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from portfolio_api.schemas.portfolio import CamelModel, Extremum, Supply


class AssetShare(CamelModel):
    id: str
    name: str
    symbol: str
    value: float
    ratio: float


class PortfolioSummaryResponse(CamelModel):
    total_value: float
    assets: List[AssetShare]
    is_fallback: bool = False


class AssetListItem(CamelModel):
    id: str
    name: str
    symbol: str
    amount: float
    value: float
    current_price: float
    change_24h: float = Field(0.0, description="24h change in percent")


class AssetListResponse(CamelModel):
    assets: List[AssetListItem]
    is_fallback: bool = False


class PricePoint(CamelModel):
    date: datetime
    price: float


class AssetDetailResponse(CamelModel):
    id: str
    name: str
    symbol: str
    amount: float
    value: float
    current_price: float
    change_24h: float = Field(0.0, description="24h change in percent")
    price_history: List[PricePoint]
    market_cap: float = 0.0
    volume_24h: float = 0.0
    rank: int = 0
    supply: Optional[Supply] = None
    ath: Optional[Extremum] = None
    atl: Optional[Extremum] = None
    is_fallback: bool = False


class ConnectionTestResult(CamelModel):
    service: str
    status: Literal["success", "error"]
    message: str
    timestamp: datetime


class ConnectionReport(CamelModel):
    overall: Literal["success", "partial", "error"]
    results: List[ConnectionTestResult]

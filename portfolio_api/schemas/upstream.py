"""
Shapes of the two upstream APIs as they arrive on the wire.
Coincheck reports balances as decimal strings keyed by currency code;
CoinGecko field names are kept verbatim so payloads validate without renaming.
"""
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class RawBalance(BaseModel):
    success: bool = True
    holdings: Dict[str, str] = Field(default_factory=dict, description="currency code -> amount as decimal string")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RawBalance":
        holdings = {
            str(code).lower(): str(amount)
            for code, amount in payload.items()
            if code != "success" and amount is not None
        }
        return cls(success=bool(payload.get("success", True)), holdings=holdings)


class RawMarketEntry(BaseModel):
    id: str
    symbol: str
    name: str
    current_price: float = Field(..., ge=0)
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = None
    total_volume: Optional[float] = None
    price_change_24h: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    ath: Optional[float] = None
    ath_change_percentage: Optional[float] = None
    ath_date: Optional[str] = None
    atl: Optional[float] = None
    atl_change_percentage: Optional[float] = None
    atl_date: Optional[str] = None
    last_updated: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class MarketChart(BaseModel):
    """[timestamp_ms, value] series, aligned by position."""
    prices: List[List[Optional[float]]] = Field(default_factory=list)
    market_caps: List[List[Optional[float]]] = Field(default_factory=list)
    total_volumes: List[List[Optional[float]]] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

"""
Dashboard read endpoints.
Every view answers 200 with best-effort data; `isFallback` marks placeholder responses.
"""
from fastapi import APIRouter, Depends

from portfolio_api.core.context import get_portfolio_service
from portfolio_api.schemas.responses import (
    AssetDetailResponse,
    AssetListItem,
    AssetListResponse,
    AssetShare,
    ConnectionReport,
    PortfolioSummaryResponse,
    PricePoint,
)
from portfolio_api.services.portfolio_service import PortfolioService

router = APIRouter(prefix="/api")


@router.get("/portfolio-summary", response_model=PortfolioSummaryResponse)
async def get_portfolio_summary(service: PortfolioService = Depends(get_portfolio_service)):
    result = await service.get_portfolio_summary()
    summary = result.data
    return PortfolioSummaryResponse(
        total_value=summary.total_value,
        assets=[
            AssetShare(id=a.id, name=a.name, symbol=a.symbol, value=a.value, ratio=a.ratio)
            for a in summary.assets
        ],
        is_fallback=result.is_fallback,
    )


@router.get("/assets", response_model=AssetListResponse)
async def get_assets(service: PortfolioService = Depends(get_portfolio_service)):
    result = await service.get_assets()
    return AssetListResponse(
        assets=[
            AssetListItem(
                id=a.id,
                name=a.name,
                symbol=a.symbol,
                amount=a.amount,
                value=a.value,
                current_price=a.current_price,
                change_24h=a.change_percent_24h or 0.0,
            )
            for a in result.data
        ],
        is_fallback=result.is_fallback,
    )


@router.get("/assets/{asset_id}", response_model=AssetDetailResponse, response_model_exclude_none=True)
async def get_asset_detail(asset_id: str, service: PortfolioService = Depends(get_portfolio_service)):
    """
    Single asset with its price history over the configured window.
    Unsupported ids answer 404.
    """
    result = await service.get_asset_detail(asset_id)
    detail = result.data
    return AssetDetailResponse(
        id=detail.id,
        name=detail.name,
        symbol=detail.symbol,
        amount=detail.amount,
        value=detail.value,
        current_price=detail.current_price,
        change_24h=detail.change_percent_24h or 0.0,
        price_history=[PricePoint(date=p.date, price=p.price) for p in detail.price_history],
        market_cap=detail.market_cap or 0.0,
        volume_24h=detail.volume_24h or 0.0,
        rank=detail.rank or 0,
        supply=detail.supply,
        ath=detail.ath,
        atl=detail.atl,
        is_fallback=result.is_fallback,
    )


@router.get("/test-connections", response_model=ConnectionReport)
async def test_connections(service: PortfolioService = Depends(get_portfolio_service)):
    """
    Probes both upstream APIs.
    """
    return await service.check_connections()

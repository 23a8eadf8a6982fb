from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..models.documents import ListingType, PropertyType
from ..models.schemas import AnalyticsReport, TrendSeries
from ..services.container import ServiceContainer, get_container
from ..services.trends_service import TrendPeriod

router = APIRouter()


@router.get("/analytics", response_model=AnalyticsReport)
async def market_analytics(
    country: str = Query(..., description="Country code of the market slice"),
    city: Optional[str] = Query(None),
    property_type: Optional[PropertyType] = Query(None),
    listing_type: Optional[ListingType] = Query(None),
    container: ServiceContainer = Depends(get_container),
):
    """Average/median price, price per area, days on market and popular features"""
    return await container.analytics_service.get_analytics(country, city, property_type, listing_type)


@router.get("/analytics/trends", response_model=TrendSeries)
async def market_trends(
    country: str = Query(..., description="Country code of the market slice"),
    city: Optional[str] = Query(None),
    period: TrendPeriod = Query(TrendPeriod.MONTH),
    property_type: Optional[PropertyType] = Query(None),
    listing_type: Optional[ListingType] = Query(None),
    container: ServiceContainer = Depends(get_container),
):
    """Bucketed average price and listing count over the selected period"""
    return await container.trends_service.get_trends(country, city, period, property_type, listing_type)

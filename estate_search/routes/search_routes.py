from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from ..models.documents import GeoPoint, ListingType, PropertyType
from ..models.query import SearchQuery, SortField, SortOrder
from ..models.schemas import SearchResult
from ..services.container import ServiceContainer, get_container

router = APIRouter()


def search_query_params(
    q: Optional[str] = Query(None, description="Free-text query"),
    ids: List[str] = Query([], description="Restrict to these property ids"),
    property_type: List[PropertyType] = Query([], description="Property types (any of)"),
    listing_type: List[ListingType] = Query([], description="Listing types (any of)"),
    price_min: Optional[float] = Query(None),
    price_max: Optional[float] = Query(None),
    bedrooms_min: Optional[int] = Query(None),
    bedrooms_max: Optional[int] = Query(None),
    bathrooms_min: Optional[int] = Query(None),
    bathrooms_max: Optional[int] = Query(None),
    floor_area_min: Optional[float] = Query(None),
    floor_area_max: Optional[float] = Query(None),
    country: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, description="Radius around lat/lon"),
    feature: List[str] = Query([], description="Feature flags as name or name:false"),
    amenity: List[str] = Query([], description="Amenities (any of)"),
    sort_by: Optional[SortField] = Query(None),
    sort_order: SortOrder = Query(SortOrder.DESC),
    page: int = Query(1, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size"),
) -> SearchQuery:
    features = {}
    for flag in feature:
        name, _, value = flag.partition(":")
        features[name] = value.lower() != "false"

    return SearchQuery(
        text=q,
        ids=ids,
        property_types=property_type,
        listing_types=listing_type,
        price_min=price_min,
        price_max=price_max,
        bedrooms_min=bedrooms_min,
        bedrooms_max=bedrooms_max,
        bathrooms_min=bathrooms_min,
        bathrooms_max=bathrooms_max,
        floor_area_min=floor_area_min,
        floor_area_max=floor_area_max,
        country=country,
        city=city,
        location=GeoPoint(lat=lat, lon=lon) if lat is not None and lon is not None else None,
        radius_km=radius_km,
        features=features,
        amenities=amenity,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@router.get("/search", response_model=SearchResult)
async def search_properties(
    query: SearchQuery = Depends(search_query_params),
    container: ServiceContainer = Depends(get_container),
):
    """Faceted property search with filters, sorting and pagination"""
    return await container.search_service.search(query)

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel

from .documents import GeoPoint, ListingType, PropertyType, PropertyView


class SortField(str, Enum):
    RELEVANCE = "relevance"
    PRICE = "price"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    VIEW_COUNT = "view_count"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SearchQuery(BaseModel):
    """Structured search request. Bounds are checked by the query builder."""

    text: Optional[str] = None
    ids: List[str] = []
    property_types: List[PropertyType] = []
    listing_types: List[ListingType] = []
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    bedrooms_min: Optional[int] = None
    bedrooms_max: Optional[int] = None
    bathrooms_min: Optional[int] = None
    bathrooms_max: Optional[int] = None
    floor_area_min: Optional[float] = None
    floor_area_max: Optional[float] = None
    country: Optional[str] = None
    city: Optional[str] = None
    location: Optional[GeoPoint] = None
    radius_km: Optional[float] = None
    features: Dict[str, bool] = {}
    amenities: List[str] = []
    sort_by: Optional[SortField] = None
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: Optional[int] = None


class UserPreferences(BaseModel):
    preferred_property_types: List[PropertyType] = []
    price_range_min: Optional[float] = None
    price_range_max: Optional[float] = None


class SavedSearch(BaseModel):
    criteria: SearchQuery
    updated_at: datetime


class UserProfile(BaseModel):
    id: str
    preferences: Optional[UserPreferences] = None
    favorites: List[PropertyView] = []
    recent_searches: List[SavedSearch] = []

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from .documents import ListingType, PropertyType, SearchDocument


class SearchHit(SearchDocument):
    score: Optional[float] = None


class PriceBucket(BaseModel):
    from_: Optional[float] = Field(None, alias="from")
    to: Optional[float] = None
    count: int

    model_config = {"populate_by_name": True}


class TermBucket(BaseModel):
    key: str
    count: int


class Aggregations(BaseModel):
    property_types: Dict[str, int] = {}
    listing_types: Dict[str, int] = {}
    price_ranges: List[PriceBucket] = []
    cities: List[TermBucket] = []
    countries: List[TermBucket] = []
    amenities: List[TermBucket] = []
    features: Dict[str, int] = {}


class SearchResult(BaseModel):
    properties: List[SearchHit]
    total: int
    page: int
    limit: int
    total_pages: int
    aggregations: Optional[Aggregations] = None


class PriceDistribution(BaseModel):
    min: float = 0.0
    max: float = 0.0
    ranges: List[PriceBucket] = []


class PopularFeature(BaseModel):
    feature: str
    count: int
    percentage: float


class AnalyticsReport(BaseModel):
    average_price: float = 0.0
    median_price: float = 0.0
    price_per_area: float = 0.0
    listing_count: int = 0
    average_days_on_market: float = 0.0
    price_distribution: PriceDistribution = Field(default_factory=PriceDistribution)
    popular_features: List[PopularFeature] = []


class TrendPoint(BaseModel):
    date: str
    average_price: float
    listing_count: int


class TrendSeries(BaseModel):
    period: str
    data: List[TrendPoint]
    change_percentage: float


class RecommendationAddress(BaseModel):
    city: str
    country: str


class RecommendationItem(BaseModel):
    id: str
    title: str
    price: float
    currency: str
    property_type: PropertyType
    listing_type: ListingType
    image: Optional[str] = None
    address: RecommendationAddress
    score: float
    match_reason: str


class IndexStatus(BaseModel):
    index: str
    state: str
    indexed: Optional[int] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    index_state: str
    indexes_available: List[str]


class DetailedHealthResponse(HealthResponse):
    document_count: Optional[int] = None
    store: Dict[str, Any] = {}
    configuration: Dict[str, Any] = {}

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class PropertyType(str, Enum):
    APARTMENT = "APARTMENT"
    HOUSE = "HOUSE"
    COMMERCIAL = "COMMERCIAL"
    LAND = "LAND"


class ListingType(str, Enum):
    SALE = "SALE"
    RENT = "RENT"


class PropertyStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    SOLD = "SOLD"
    RENTED = "RENTED"
    INACTIVE = "INACTIVE"


# Boolean feature flags carried on every document, in display order
TRACKED_FEATURES = (
    "garden",
    "parking",
    "garage",
    "balcony",
    "terrace",
    "elevator",
    "air_conditioning",
    "furnished",
    "pet_friendly",
)


class Address(BaseModel):
    street: str = ""
    city: str = ""
    postcode: str = ""
    county: Optional[str] = None
    country: str = ""


class GeoPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class PropertyFeatures(BaseModel):
    garden: bool = False
    parking: bool = False
    garage: bool = False
    balcony: bool = False
    terrace: bool = False
    elevator: bool = False
    air_conditioning: bool = False
    furnished: bool = False
    pet_friendly: bool = False
    build_year: Optional[int] = None
    energy_rating: Optional[str] = None


class PropertyImage(BaseModel):
    url: str
    is_main: bool = False


class OwnerSummary(BaseModel):
    id: str
    name: str
    company: Optional[str] = None


class SearchDocument(BaseModel):
    """Flattened, denormalized projection of a property as stored in the index"""

    id: str
    title: str
    description: str = ""
    price: float
    currency: str
    property_type: PropertyType
    listing_type: ListingType
    status: PropertyStatus
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floor_area: Optional[float] = None
    address: Address
    location: Optional[GeoPoint] = None
    features: PropertyFeatures = Field(default_factory=PropertyFeatures)
    amenities: List[str] = []
    images: List[PropertyImage] = []
    owner: OwnerSummary
    view_count: int = 0
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None


# Canonical-store views. These mirror what the system of record returns with
# all relations joined in; they are inputs to the indexer and recommender.

class FeatureRecord(BaseModel):
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floor_area: Optional[float] = None
    garden: Optional[bool] = None
    parking: Optional[bool] = None
    garage: Optional[bool] = None
    balcony: Optional[bool] = None
    terrace: Optional[bool] = None
    elevator: Optional[bool] = None
    air_conditioning: Optional[bool] = None
    furnished: Optional[bool] = None
    pet_friendly: Optional[bool] = None
    build_year: Optional[int] = None
    energy_rating: Optional[str] = None


class ImageRecord(BaseModel):
    url: str
    is_main: bool = False
    order: int = 0


class OwnerRecord(BaseModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    company: Optional[str] = None


class PropertyView(BaseModel):
    id: str
    title: str
    description: str = ""
    price: float
    currency: str = "EUR"
    property_type: PropertyType
    listing_type: ListingType
    status: PropertyStatus
    is_active: bool = True
    address: Optional[Address] = None
    location: Optional[GeoPoint] = None
    features: Optional[FeatureRecord] = None
    amenities: List[str] = []
    images: List[ImageRecord] = []
    owner: OwnerRecord
    view_count: int = 0
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None

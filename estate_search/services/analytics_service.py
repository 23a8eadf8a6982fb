import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from ..config.settings import Settings, settings as default_settings
from ..exceptions import QueryValidationError
from ..models.documents import ListingType, PropertyType, TRACKED_FEATURES
from ..models.query_spec import (
    Bool, Clause, DaysSince, ExpressionAvgAgg, FiltersAgg, Match, MetricAgg, PercentilesAgg,
    QuerySpec, RangeAgg, Ratio, Term, Terms,
)
from ..models.schemas import AnalyticsReport, PopularFeature, PriceDistribution
from .document_store import DocumentStore
from .query_builder import edges_to_ranges
from .search_service import parse_range_buckets

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _value(agg: Optional[Dict[str, Any]]) -> float:
    """Metric value, or 0 for empty slices (the engine reports null)"""
    if not agg or agg.get("value") is None:
        return 0.0
    value = float(agg["value"])
    return 0.0 if math.isnan(value) else value


def slice_filters(
    eligible_statuses,
    country: str,
    city: Optional[str] = None,
    property_type: Optional[Union[PropertyType, str]] = None,
    listing_type: Optional[Union[ListingType, str]] = None,
) -> List[Clause]:
    """Eligibility plus the geographic/type slice shared by analytics and trends"""
    if not country or not country.strip():
        raise QueryValidationError.single("country", "is required")
    clauses: List[Clause] = [
        Terms("status", tuple(eligible_statuses)),
        Term("address.country", country),
    ]
    if city:
        clauses.append(Match("address.city", city))
    if property_type:
        clauses.append(Term("property_type", PropertyType(property_type).value))
    if listing_type:
        clauses.append(Term("listing_type", ListingType(listing_type).value))
    return clauses


class AnalyticsService:
    """Point-in-time market statistics for a country/city/type slice"""

    def __init__(self, store: DocumentStore, config: Settings = default_settings, clock: Clock = utc_now):
        self.store = store
        self.index_name = config.index_name
        self.eligible_statuses = tuple(config.eligible_statuses)
        self.distribution_ranges = edges_to_ranges(config.distribution_price_edges)
        self.clock = clock

    def build_spec(self, filters: List[Clause], now: datetime) -> QuerySpec:
        return QuerySpec(
            query=Bool(filter=tuple(filters)),
            size=0,
            aggregations={
                "average_price": MetricAgg("avg", "price"),
                "median_price": PercentilesAgg("price", (50.0,)),
                "min_price": MetricAgg("min", "price"),
                "max_price": MetricAgg("max", "price"),
                "price_per_area": ExpressionAvgAgg(Ratio("price", "floor_area")),
                "listing_count": MetricAgg("value_count", "id"),
                "price_distribution": RangeAgg("price", self.distribution_ranges),
                "popular_features": FiltersAgg(tuple(
                    (name, Term(f"features.{name}", True)) for name in TRACKED_FEATURES
                )),
                "days_on_market": ExpressionAvgAgg(DaysSince("published_at", now)),
            },
        )

    async def get_analytics(
        self,
        country: str,
        city: Optional[str] = None,
        property_type: Optional[Union[PropertyType, str]] = None,
        listing_type: Optional[Union[ListingType, str]] = None,
    ) -> AnalyticsReport:
        try:
            filters = slice_filters(self.eligible_statuses, country, city, property_type, listing_type)
        except ValueError as e:
            raise QueryValidationError.single("type", str(e)) from e

        spec = self.build_spec(filters, self.clock())
        response = await self.store.search(self.index_name, spec)
        aggs = response.get("aggregations") or {}

        listing_count = int(_value(aggs.get("listing_count")))
        median = (aggs.get("median_price") or {}).get("values", {}).get("50.0")
        logger.debug("Analytics for %s/%s: %d listings", country, city or "*", listing_count)

        feature_buckets = (aggs.get("popular_features") or {}).get("buckets", {})
        popular_features = sorted(
            (
                PopularFeature(
                    feature=name,
                    count=bucket["doc_count"],
                    percentage=bucket["doc_count"] / listing_count * 100 if listing_count else 0.0,
                )
                for name, bucket in feature_buckets.items()
            ),
            key=lambda feature: feature.count,
            reverse=True,
        )

        return AnalyticsReport(
            average_price=_value(aggs.get("average_price")),
            median_price=_value({"value": median}),
            price_per_area=_value(aggs.get("price_per_area")),
            listing_count=listing_count,
            average_days_on_market=_value(aggs.get("days_on_market")),
            price_distribution=PriceDistribution(
                min=_value(aggs.get("min_price")),
                max=_value(aggs.get("max_price")),
                ranges=parse_range_buckets(aggs.get("price_distribution")),
            ),
            popular_features=popular_features,
        )

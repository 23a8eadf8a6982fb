from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from pydantic import ValidationError

from ..config.settings import Settings, settings as default_settings
from ..exceptions import QueryValidationError
from ..models.documents import TRACKED_FEATURES
from ..models.query import SearchQuery, SortField, SortOrder
from ..models.query_spec import (
    Aggregation, Bool, Clause, FiltersAgg, FullText, GeoDistance, Match, QuerySpec, Range,
    RangeAgg, Sort, Term, Terms, TermsAgg,
)

TEXT_FIELDS: Tuple[Tuple[str, float], ...] = (
    ("title", 3.0),
    ("description", 2.0),
    ("address.street", 1.0),
    ("address.city", 2.0),
    ("address.country", 1.0),
)

SORT_FIELDS = {
    SortField.PRICE: "price",
    SortField.CREATED_AT: "created_at",
    SortField.UPDATED_AT: "updated_at",
    SortField.VIEW_COUNT: "view_count",
    SortField.TITLE: "title.keyword",
}

# (query attribute prefix, document field)
RANGE_FIELDS = (
    ("price", "price"),
    ("bedrooms", "bedrooms"),
    ("bathrooms", "bathrooms"),
    ("floor_area", "floor_area"),
)


def edges_to_ranges(edges) -> Tuple[Tuple[Optional[float], Optional[float]], ...]:
    """(100, 200) -> ((None, 100), (100, 200), (200, None))"""
    bounds = [None, *edges, None]
    return tuple((bounds[i], bounds[i + 1]) for i in range(len(bounds) - 1))


class QueryBuilder:
    """Translates search requests into engine-agnostic QuerySpecs"""

    def __init__(self, config: Settings = default_settings):
        self.default_page_size = config.default_page_size
        self.max_page_size = config.max_page_size
        self.facet_size = config.facet_size
        self.facet_price_ranges = edges_to_ranges(config.facet_price_edges)
        self.eligible_statuses = tuple(config.eligible_statuses)

    def coerce(self, query: Union[SearchQuery, Mapping[str, Any]]) -> SearchQuery:
        """Accept a SearchQuery or a plain mapping; mapping errors become QueryValidationError"""
        if isinstance(query, SearchQuery):
            return query
        try:
            return SearchQuery.model_validate(query)
        except ValidationError as e:
            raise QueryValidationError([
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in e.errors()
            ]) from e

    def page_limit(self, query: SearchQuery) -> int:
        return self.default_page_size if query.limit is None else query.limit

    def validate(self, query: SearchQuery) -> None:
        errors: List[Dict[str, str]] = []

        if query.page < 1:
            errors.append({"field": "page", "message": "must be at least 1"})
        limit = self.page_limit(query)
        if not 1 <= limit <= self.max_page_size:
            errors.append({"field": "limit", "message": f"must be between 1 and {self.max_page_size}"})

        for prefix, _ in RANGE_FIELDS:
            low = getattr(query, f"{prefix}_min")
            high = getattr(query, f"{prefix}_max")
            if low is not None and high is not None and low > high:
                errors.append({"field": f"{prefix}_min", "message": f"must not exceed {prefix}_max"})

        if query.radius_km is not None and query.radius_km <= 0:
            errors.append({"field": "radius_km", "message": "must be positive"})

        for name in query.features:
            if name not in TRACKED_FEATURES:
                errors.append({"field": f"features.{name}", "message": "unknown feature"})

        if errors:
            raise QueryValidationError(errors)

    def eligibility_filter(self) -> Clause:
        return Terms("status", self.eligible_statuses)

    def text_clause(self, text: str) -> FullText:
        return FullText(text, TEXT_FIELDS, fuzziness="AUTO")

    def filters(self, query: SearchQuery) -> List[Clause]:
        clauses: List[Clause] = [self.eligibility_filter()]

        if query.ids:
            clauses.append(Terms("id", tuple(query.ids)))
        if query.property_types:
            clauses.append(Terms("property_type", tuple(t.value for t in query.property_types)))
        if query.listing_types:
            clauses.append(Terms("listing_type", tuple(t.value for t in query.listing_types)))

        for prefix, field in RANGE_FIELDS:
            low = getattr(query, f"{prefix}_min")
            high = getattr(query, f"{prefix}_max")
            if low is not None or high is not None:
                clauses.append(Range(field, gte=low, lte=high))

        if query.country:
            clauses.append(Term("address.country", query.country))
        if query.city:
            clauses.append(Match("address.city", query.city))

        if query.location is not None and query.radius_km:
            clauses.append(GeoDistance("location", query.location.lat, query.location.lon, query.radius_km))

        for name, value in query.features.items():
            clauses.append(Term(f"features.{name}", value))

        if query.amenities:
            clauses.append(Terms("amenities", tuple(query.amenities)))

        return clauses

    def sort(self, query: SearchQuery) -> Tuple[Sort, ...]:
        if query.sort_by is None:
            return (Sort("updated_at", SortOrder.DESC.value),)
        if query.sort_by == SortField.RELEVANCE:
            return (Sort("_score", SortOrder.DESC.value),)
        return (Sort(SORT_FIELDS[query.sort_by], query.sort_order.value),)

    def facet_aggregations(self) -> Dict[str, Aggregation]:
        return {
            "property_types": TermsAgg("property_type"),
            "listing_types": TermsAgg("listing_type"),
            "price_ranges": RangeAgg("price", self.facet_price_ranges),
            "cities": TermsAgg("address.city.keyword", size=self.facet_size),
            "countries": TermsAgg("address.country", size=self.facet_size),
            "amenities": TermsAgg("amenities", size=self.facet_size),
            "features": FiltersAgg(tuple(
                (name, Term(f"features.{name}", True)) for name in TRACKED_FEATURES
            )),
        }

    def build(self, query: SearchQuery) -> QuerySpec:
        """Validate and translate; nothing invalid gets past this point"""
        self.validate(query)
        limit = self.page_limit(query)
        must: Tuple[Clause, ...] = (self.text_clause(query.text),) if query.text and query.text.strip() else ()

        return QuerySpec(
            query=Bool(must=must, filter=tuple(self.filters(query))),
            sort=self.sort(query),
            offset=(query.page - 1) * limit,
            size=limit,
            aggregations=self.facet_aggregations(),
        )

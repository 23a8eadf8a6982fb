import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Union

from ..config.settings import Settings, settings as default_settings
from ..models.query import SearchQuery
from ..models.schemas import Aggregations, PriceBucket, SearchHit, SearchResult, TermBucket
from .document_store import DocumentStore
from .query_builder import QueryBuilder

logger = logging.getLogger(__name__)


def parse_term_counts(agg: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """Terms buckets as a key -> count map"""
    if not agg:
        return {}
    return {str(bucket["key"]): bucket["doc_count"] for bucket in agg.get("buckets", [])}


def parse_term_buckets(agg: Optional[Dict[str, Any]]) -> List[TermBucket]:
    if not agg:
        return []
    return [TermBucket(key=str(b["key"]), count=b["doc_count"]) for b in agg.get("buckets", [])]


def parse_range_buckets(agg: Optional[Dict[str, Any]]) -> List[PriceBucket]:
    if not agg:
        return []
    return [
        PriceBucket(from_=b.get("from"), to=b.get("to"), count=b["doc_count"])
        for b in agg.get("buckets", [])
    ]


def parse_filter_counts(agg: Optional[Dict[str, Any]]) -> Dict[str, int]:
    if not agg:
        return {}
    return {name: bucket["doc_count"] for name, bucket in agg.get("buckets", {}).items()}


def parse_hit(hit: Dict[str, Any]) -> SearchHit:
    return SearchHit(**hit["_source"], score=hit.get("_score"))


def total_hits(response: Dict[str, Any]) -> int:
    total = response["hits"]["total"]
    return total["value"] if isinstance(total, dict) else int(total)


class SearchService:
    """Executes property searches and parses hits and facets into typed results"""

    def __init__(
        self,
        store: DocumentStore,
        builder: Optional[QueryBuilder] = None,
        config: Settings = default_settings,
    ):
        self.store = store
        self.builder = builder or QueryBuilder(config)
        self.index_name = config.index_name

    def parse_aggregations(self, aggs: Optional[Dict[str, Any]]) -> Optional[Aggregations]:
        if aggs is None:
            return None
        return Aggregations(
            property_types=parse_term_counts(aggs.get("property_types")),
            listing_types=parse_term_counts(aggs.get("listing_types")),
            price_ranges=parse_range_buckets(aggs.get("price_ranges")),
            cities=parse_term_buckets(aggs.get("cities")),
            countries=parse_term_buckets(aggs.get("countries")),
            amenities=parse_term_buckets(aggs.get("amenities")),
            features=parse_filter_counts(aggs.get("features")),
        )

    async def search(self, query: Union[SearchQuery, Mapping[str, Any]]) -> SearchResult:
        """Validate, execute and parse a property search"""
        query = self.builder.coerce(query)
        spec = self.builder.build(query)

        response = await self.store.search(self.index_name, spec)

        total = total_hits(response)
        properties = [parse_hit(hit) for hit in response["hits"]["hits"]]
        logger.debug("Search matched %d properties, returning %d", total, len(properties))

        return SearchResult(
            properties=properties,
            total=total,
            page=query.page,
            limit=spec.size,
            total_pages=math.ceil(total / spec.size),
            aggregations=self.parse_aggregations(response.get("aggregations")),
        )

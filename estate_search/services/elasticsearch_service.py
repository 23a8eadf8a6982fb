import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from elasticsearch import AsyncElasticsearch, NotFoundError
from elasticsearch.helpers import async_bulk

from ..config.settings import Settings, settings as default_settings
from ..models.query_spec import (
    Aggregation, Bool, Clause, DateHistogramAgg, DaysSince, ExpressionAvgAgg, FilterAgg,
    FiltersAgg, FullText, GeoDistance, Match, MetricAgg, PercentilesAgg, QuerySpec, Range,
    RangeAgg, Ratio, Term, Terms, TermsAgg,
)
from .date_buckets import to_epoch_millis
from .document_store import DocumentStore

logger = logging.getLogger(__name__)

RATIO_SCRIPT = (
    "double d = doc[params.denominator].size() > 0 && doc[params.denominator].value > 0"
    " ? doc[params.denominator].value : 1;"
    " return doc[params.numerator].value / d;"
)

DAYS_SINCE_SCRIPT = (
    "if (doc[params.field].size() == 0) { return 0; }"
    " return (params.now - doc[params.field].value.toInstant().toEpochMilli()) / 86400000.0;"
)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _weighted(field: str, weight: float) -> str:
    return field if weight == 1 else f"{field}^{weight:g}"


def clause_to_es(clause: Clause) -> Dict[str, Any]:
    """Translate one QuerySpec clause into the Elasticsearch query DSL"""
    if isinstance(clause, Term):
        if clause.boost is None:
            return {"term": {clause.field: _plain(clause.value)}}
        return {"term": {clause.field: {"value": _plain(clause.value), "boost": clause.boost}}}

    if isinstance(clause, Terms):
        body: Dict[str, Any] = {clause.field: [_plain(v) for v in clause.values]}
        if clause.boost is not None:
            body["boost"] = clause.boost
        return {"terms": body}

    if isinstance(clause, Range):
        bounds = {
            name: _plain(value)
            for name, value in (("gte", clause.gte), ("lte", clause.lte), ("lt", clause.lt))
            if value is not None
        }
        return {"range": {clause.field: bounds}}

    if isinstance(clause, GeoDistance):
        return {
            "geo_distance": {
                "distance": f"{clause.distance_km:g}km",
                clause.field: {"lat": clause.lat, "lon": clause.lon},
            }
        }

    if isinstance(clause, FullText):
        return {
            "multi_match": {
                "query": clause.query,
                "fields": [_weighted(field, weight) for field, weight in clause.fields],
                "type": "best_fields",
                "fuzziness": clause.fuzziness,
            }
        }

    if isinstance(clause, Match):
        return {"match": {clause.field: {"query": clause.query, "operator": clause.operator}}}

    if isinstance(clause, Bool):
        body = {}
        for occur in ("must", "filter", "should", "must_not"):
            clauses = getattr(clause, occur)
            if clauses:
                body[occur] = [clause_to_es(sub) for sub in clauses]
        if clause.minimum_should_match is not None:
            body["minimum_should_match"] = clause.minimum_should_match
        return {"bool": body}

    raise TypeError(f"Unsupported clause: {type(clause).__name__}")


def _expression_script(expression) -> Dict[str, Any]:
    if isinstance(expression, Ratio):
        return {
            "source": RATIO_SCRIPT,
            "params": {"numerator": expression.numerator, "denominator": expression.denominator},
        }
    if isinstance(expression, DaysSince):
        return {
            "source": DAYS_SINCE_SCRIPT,
            "params": {"field": expression.field, "now": to_epoch_millis(expression.now)},
        }
    raise TypeError(f"Unsupported expression: {type(expression).__name__}")


def _sub_aggs(aggs: Tuple[Tuple[str, Aggregation], ...]) -> Dict[str, Any]:
    return {name: aggregation_to_es(sub) for name, sub in aggs}


def aggregation_to_es(agg: Aggregation) -> Dict[str, Any]:
    if isinstance(agg, TermsAgg):
        return {"terms": {"field": agg.field, "size": agg.size}}

    if isinstance(agg, RangeAgg):
        ranges = []
        for start, end in agg.ranges:
            bucket = {}
            if start is not None:
                bucket["from"] = start
            if end is not None:
                bucket["to"] = end
            ranges.append(bucket)
        return {"range": {"field": agg.field, "ranges": ranges}}

    if isinstance(agg, FiltersAgg):
        return {"filters": {"filters": {name: clause_to_es(clause) for name, clause in agg.filters}}}

    if isinstance(agg, MetricAgg):
        return {agg.kind: {"field": agg.field}}

    if isinstance(agg, PercentilesAgg):
        return {"percentiles": {"field": agg.field, "percents": list(agg.percents)}}

    if isinstance(agg, ExpressionAvgAgg):
        return {"avg": {"script": _expression_script(agg.expression)}}

    if isinstance(agg, FilterAgg):
        body: Dict[str, Any] = {"filter": clause_to_es(agg.clause)}
        if agg.aggs:
            body["aggs"] = _sub_aggs(agg.aggs)
        return body

    if isinstance(agg, DateHistogramAgg):
        body = {
            "date_histogram": {
                "field": agg.field,
                "calendar_interval": agg.interval,
                "min_doc_count": 0,
                "extended_bounds": {
                    "min": to_epoch_millis(agg.bounds_min),
                    "max": to_epoch_millis(agg.bounds_max),
                },
            }
        }
        if agg.aggs:
            body["aggs"] = _sub_aggs(agg.aggs)
        return body

    raise TypeError(f"Unsupported aggregation: {type(agg).__name__}")


def build_search_body(spec: QuerySpec) -> Dict[str, Any]:
    """Full request body for ``search``"""
    body: Dict[str, Any] = {
        "query": clause_to_es(spec.query),
        "from": spec.offset,
        "size": spec.size,
        "track_total_hits": True,
    }
    if spec.sort:
        body["sort"] = [{sort.field: {"order": sort.order}} for sort in spec.sort]
    if spec.aggregations:
        body["aggs"] = {name: aggregation_to_es(agg) for name, agg in spec.aggregations.items()}
    return body


class ElasticsearchService(DocumentStore):
    """Document store backed by an Elasticsearch cluster"""

    def __init__(self, config: Settings = default_settings, client: Optional[AsyncElasticsearch] = None):
        self.client = client or AsyncElasticsearch(
            hosts=[config.elasticsearch_url],
            basic_auth=config.elasticsearch_auth,
            request_timeout=config.elasticsearch_timeout,
        )
        self.refresh = config.refresh_on_write

    async def create_index(self, name: str, definition: Dict[str, Any]) -> None:
        try:
            if await self.client.indices.exists(index=name):
                return
            await self.client.indices.create(
                index=name,
                settings=definition.get("settings"),
                mappings=definition["mappings"],
            )
            logger.info("Created Elasticsearch index: %s", name)
        except Exception:
            logger.exception("Failed to create Elasticsearch index %s", name)
            raise

    async def delete_index(self, name: str) -> None:
        try:
            if await self.client.indices.exists(index=name):
                await self.client.indices.delete(index=name)
                logger.info("Deleted Elasticsearch index: %s", name)
        except Exception:
            logger.exception("Failed to delete Elasticsearch index %s", name)
            raise

    async def index_exists(self, name: str) -> bool:
        return bool(await self.client.indices.exists(index=name))

    async def index_document(self, name: str, doc_id: str, document: Dict[str, Any]) -> None:
        try:
            await self.client.index(index=name, id=doc_id, document=document, refresh=self.refresh)
        except Exception:
            logger.exception("Failed to index document %s in %s", doc_id, name)
            raise

    async def bulk_index(self, name: str, documents: Iterable[Tuple[str, Dict[str, Any]]]) -> int:
        actions: List[Dict[str, Any]] = [
            {"_op_type": "index", "_index": name, "_id": doc_id, "_source": document}
            for doc_id, document in documents
        ]
        try:
            indexed, _ = await async_bulk(self.client, actions, refresh=self.refresh)
        except Exception:
            logger.exception("Failed to bulk index %d documents in %s", len(actions), name)
            raise
        return indexed

    async def delete_document(self, name: str, doc_id: str) -> bool:
        try:
            await self.client.delete(index=name, id=doc_id, refresh=self.refresh)
        except NotFoundError:
            logger.debug("Document %s already absent from %s", doc_id, name)
            return False
        except Exception:
            logger.exception("Failed to delete document %s from %s", doc_id, name)
            raise
        return True

    async def search(self, name: str, spec: QuerySpec) -> Dict[str, Any]:
        """Execute a QuerySpec against the index"""
        body = build_search_body(spec)
        offset = body.pop("from")
        try:
            response = await self.client.search(index=name, from_=offset, **body)
        except Exception:
            logger.exception("Search failed in %s", name)
            raise
        return response.body

    async def count(self, name: str) -> int:
        response = await self.client.count(index=name)
        return response["count"]

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.close()

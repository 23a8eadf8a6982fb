import copy
import logging
import statistics
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models.query_spec import (
    Aggregation, DateHistogramAgg, DaysSince, ExpressionAvgAgg, FilterAgg, FiltersAgg,
    MetricAgg, PercentilesAgg, QuerySpec, RangeAgg, Ratio, Sort, TermsAgg,
)
from .clause_evaluator import evaluate, get_path, matches
from .date_buckets import (
    bucket_label, iter_buckets, next_interval, parse_datetime, to_epoch_millis,
)
from .document_store import DocumentStore

logger = logging.getLogger(__name__)

Hit = Tuple[Dict[str, Any], float]


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed document store that evaluates QuerySpecs directly.

    Used for tests and local runs without a cluster. Documents are deep-copied
    on the way in and out so callers never share state with the store.
    """

    def __init__(self):
        self._indexes: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._definitions: Dict[str, Dict[str, Any]] = {}

    async def create_index(self, name: str, definition: Dict[str, Any]) -> None:
        if name in self._indexes:
            return
        self._indexes[name] = {}
        self._definitions[name] = copy.deepcopy(definition)
        logger.info("Created in-memory index: %s", name)

    async def delete_index(self, name: str) -> None:
        if self._indexes.pop(name, None) is not None:
            self._definitions.pop(name, None)
            logger.info("Deleted in-memory index: %s", name)

    async def index_exists(self, name: str) -> bool:
        return name in self._indexes

    async def index_document(self, name: str, doc_id: str, document: Dict[str, Any]) -> None:
        self._indexes.setdefault(name, {})[doc_id] = copy.deepcopy(document)

    async def bulk_index(self, name: str, documents: Iterable[Tuple[str, Dict[str, Any]]]) -> int:
        index = self._indexes.setdefault(name, {})
        indexed = 0
        for doc_id, document in documents:
            index[doc_id] = copy.deepcopy(document)
            indexed += 1
        return indexed

    async def delete_document(self, name: str, doc_id: str) -> bool:
        return self._indexes.get(name, {}).pop(doc_id, None) is not None

    async def count(self, name: str) -> int:
        return len(self._require(name))

    async def ping(self) -> bool:
        return True

    async def search(self, name: str, spec: QuerySpec) -> Dict[str, Any]:
        hits: List[Tuple[str, Dict[str, Any], float]] = []
        for doc_id, source in self._require(name).items():
            score = evaluate(spec.query, source)
            if score is not None:
                hits.append((doc_id, source, score))

        hits = _sort_hits(hits, spec.sort)
        page = hits[spec.offset:spec.offset + spec.size]
        sources = [source for _, source, _ in hits]

        response: Dict[str, Any] = {
            "hits": {
                "total": {"value": len(hits), "relation": "eq"},
                "hits": [
                    {"_id": doc_id, "_source": copy.deepcopy(source), "_score": score}
                    for doc_id, source, score in page
                ],
            },
        }
        if spec.aggregations:
            response["aggregations"] = {
                agg_name: _aggregate(agg, sources) for agg_name, agg in spec.aggregations.items()
            }
        return response

    def _require(self, name: str) -> Dict[str, Dict[str, Any]]:
        if name not in self._indexes:
            raise LookupError(f"no such index [{name}]")
        return self._indexes[name]


def _sort_value(hit: Tuple[str, Dict[str, Any], float], field: str) -> Any:
    if field == "_score":
        return hit[2]
    value = get_path(hit[1], field)
    if isinstance(value, str) and field.endswith("_at"):
        return parse_datetime(value)
    return value


def _sort_hits(hits, sorts: Tuple[Sort, ...]):
    if not sorts:
        sorts = (Sort("_score", "desc"),)
    # apply the least significant key first; sorted() is stable
    for sort in reversed(sorts):
        present = [h for h in hits if _sort_value(h, sort.field) is not None]
        missing = [h for h in hits if _sort_value(h, sort.field) is None]
        present.sort(key=lambda h: _sort_value(h, sort.field), reverse=sort.order == "desc")
        hits = present + missing
    return hits


def _numbers(sources: List[Dict[str, Any]], field: str) -> List[float]:
    values = []
    for source in sources:
        value = get_path(source, field)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            values.append(float(value))
    return values


def _percentile(values: List[float], percent: float) -> Optional[float]:
    if not values:
        return None
    ordered = sorted(values)
    rank = (len(ordered) - 1) * percent / 100.0
    lower = int(rank)
    upper = min(lower + 1, len(ordered) - 1)
    return ordered[lower] + (ordered[upper] - ordered[lower]) * (rank - lower)


def _expression_value(expression, source: Dict[str, Any]) -> Optional[float]:
    if isinstance(expression, Ratio):
        numerator = get_path(source, expression.numerator)
        if numerator is None:
            return None
        denominator = get_path(source, expression.denominator)
        if not denominator or denominator <= 0:
            denominator = 1
        return float(numerator) / float(denominator)
    if isinstance(expression, DaysSince):
        value = get_path(source, expression.field)
        if value is None:
            return 0.0
        elapsed = parse_datetime(expression.now) - parse_datetime(value)
        return elapsed.total_seconds() / 86400.0
    raise TypeError(f"Unsupported expression: {type(expression).__name__}")


def _range_key(start: Optional[float], end: Optional[float]) -> str:
    return f"{'*' if start is None else float(start)}-{'*' if end is None else float(end)}"


def _aggregate(agg: Aggregation, sources: List[Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(agg, TermsAgg):
        counts: Counter = Counter()
        for source in sources:
            value = get_path(source, agg.field)
            for item in set(value) if isinstance(value, list) else ([] if value is None else [value]):
                counts[item] += 1
        ordered = sorted(counts.items(), key=lambda kv: (-kv[1], str(kv[0])))
        return {"buckets": [{"key": key, "doc_count": count} for key, count in ordered[:agg.size]]}

    if isinstance(agg, RangeAgg):
        values = _numbers(sources, agg.field)
        buckets = []
        for start, end in agg.ranges:
            bucket: Dict[str, Any] = {"key": _range_key(start, end)}
            if start is not None:
                bucket["from"] = float(start)
            if end is not None:
                bucket["to"] = float(end)
            bucket["doc_count"] = sum(
                1 for v in values if (start is None or v >= start) and (end is None or v < end)
            )
            buckets.append(bucket)
        return {"buckets": buckets}

    if isinstance(agg, FiltersAgg):
        return {
            "buckets": {
                name: {"doc_count": sum(1 for s in sources if matches(clause, s))}
                for name, clause in agg.filters
            }
        }

    if isinstance(agg, MetricAgg):
        if agg.kind == "value_count":
            return {"value": sum(1 for s in sources if get_path(s, agg.field) is not None)}
        values = _numbers(sources, agg.field)
        if not values:
            return {"value": None}
        if agg.kind == "avg":
            return {"value": statistics.fmean(values)}
        if agg.kind == "min":
            return {"value": min(values)}
        if agg.kind == "max":
            return {"value": max(values)}
        raise ValueError(f"Unsupported metric: {agg.kind}")

    if isinstance(agg, PercentilesAgg):
        values = _numbers(sources, agg.field)
        return {"values": {str(float(p)): _percentile(values, p) for p in agg.percents}}

    if isinstance(agg, ExpressionAvgAgg):
        values = [v for v in (_expression_value(agg.expression, s) for s in sources) if v is not None]
        return {"value": statistics.fmean(values) if values else None}

    if isinstance(agg, FilterAgg):
        selected = [s for s in sources if matches(agg.clause, s)]
        result: Dict[str, Any] = {"doc_count": len(selected)}
        for name, sub in agg.aggs:
            result[name] = _aggregate(sub, selected)
        return result

    if isinstance(agg, DateHistogramAgg):
        return _date_histogram(agg, sources)

    raise TypeError(f"Unsupported aggregation: {type(agg).__name__}")


def _date_histogram(agg: DateHistogramAgg, sources: List[Dict[str, Any]]) -> Dict[str, Any]:
    dated = []
    for source in sources:
        value = get_path(source, agg.field)
        if value is not None:
            dated.append((parse_datetime(value), source))

    buckets = []
    for start in iter_buckets(agg.bounds_min, agg.bounds_max, agg.interval):
        end = next_interval(start, agg.interval)
        members = [source for moment, source in dated if start <= moment < end]
        bucket: Dict[str, Any] = {
            "key": to_epoch_millis(start),
            "key_as_string": bucket_label(start, agg.interval),
            "doc_count": len(members),
        }
        for name, sub in agg.aggs:
            bucket[name] = _aggregate(sub, members)
        buckets.append(bucket)
    return {"buckets": buckets}

import logging
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..config.settings import Settings, settings as default_settings
from ..exceptions import QueryValidationError
from ..models.documents import ListingType, PropertyType
from ..models.query_spec import Bool, DateHistogramAgg, FilterAgg, MetricAgg, QuerySpec, Range
from ..models.schemas import TrendPoint, TrendSeries
from .analytics_service import Clock, slice_filters, utc_now
from .date_buckets import bucket_label, floor_to_interval, from_epoch_millis
from .document_store import DocumentStore

logger = logging.getLogger(__name__)


class TrendPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


# period -> (bucket interval, lookback window)
PERIODS = {
    TrendPeriod.WEEK: ("day", timedelta(days=7)),
    TrendPeriod.MONTH: ("day", timedelta(days=30)),
    TrendPeriod.QUARTER: ("week", timedelta(days=90)),
    TrendPeriod.YEAR: ("month", timedelta(days=365)),
}


def change_percentage(latest: float, baseline: float) -> float:
    if not baseline:
        return 0.0
    return (latest - baseline) / baseline * 100


def _avg(agg: Optional[Dict[str, Any]]) -> float:
    value = (agg or {}).get("value")
    if value is None or math.isnan(value):
        return 0.0
    return float(value)


class TrendsService:
    """Time-bucketed price and volume history with a period-over-period change"""

    def __init__(self, store: DocumentStore, config: Settings = default_settings, clock: Clock = utc_now):
        self.store = store
        self.index_name = config.index_name
        self.eligible_statuses = tuple(config.eligible_statuses)
        self.clock = clock

    def build_spec(self, filters, interval: str, window_start: datetime, latest_start: datetime, now: datetime) -> QuerySpec:
        return QuerySpec(
            query=Bool(filter=tuple(filters) + (Range("published_at", gte=window_start, lte=now),)),
            size=0,
            aggregations={
                "trends": DateHistogramAgg(
                    "published_at",
                    interval,
                    bounds_min=window_start,
                    bounds_max=now,
                    aggs=(
                        ("average_price", MetricAgg("avg", "price")),
                        ("listing_count", MetricAgg("value_count", "id")),
                    ),
                ),
                "previous_period": FilterAgg(
                    Range("published_at", lt=latest_start),
                    aggs=(("average_price", MetricAgg("avg", "price")),),
                ),
            },
        )

    async def get_trends(
        self,
        country: str,
        city: Optional[str] = None,
        period: Union[TrendPeriod, str] = TrendPeriod.MONTH,
        property_type: Optional[Union[PropertyType, str]] = None,
        listing_type: Optional[Union[ListingType, str]] = None,
    ) -> TrendSeries:
        try:
            period = TrendPeriod(period)
        except ValueError as e:
            raise QueryValidationError.single("period", str(e)) from e
        try:
            filters = slice_filters(self.eligible_statuses, country, city, property_type, listing_type)
        except ValueError as e:
            raise QueryValidationError.single("type", str(e)) from e

        interval, lookback = PERIODS[period]
        now = self.clock()
        window_start = floor_to_interval(now - lookback, interval)
        latest_start = floor_to_interval(now, interval)

        spec = self.build_spec(filters, interval, window_start, latest_start, now)
        response = await self.store.search(self.index_name, spec)
        aggs = response.get("aggregations") or {}

        data: List[TrendPoint] = [
            TrendPoint(
                date=bucket_label(from_epoch_millis(bucket["key"]), interval),
                average_price=_avg(bucket.get("average_price")),
                listing_count=int((bucket.get("listing_count") or {}).get("value") or 0),
            )
            for bucket in (aggs.get("trends") or {}).get("buckets", [])
        ]

        latest = data[-1].average_price if data else 0.0
        baseline = _avg((aggs.get("previous_period") or {}).get("average_price"))
        logger.debug("Trends %s for %s: %d buckets, baseline %.2f", period.value, country, len(data), baseline)

        return TrendSeries(
            period=period.value,
            data=data,
            change_percentage=change_percentage(latest, baseline),
        )

from datetime import datetime, timezone
from typing import Iterator

from dateutil.parser import isoparse
from dateutil.relativedelta import MO, relativedelta


STEPS = {
    "day": relativedelta(days=1),
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
}
INTERVALS = tuple(STEPS)


def parse_datetime(value) -> datetime:
    """ISO string or datetime to an aware UTC datetime"""
    parsed = value if isinstance(value, datetime) else isoparse(str(value))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def floor_to_interval(moment: datetime, interval: str) -> datetime:
    """Start of the calendar bucket containing ``moment`` (weeks start on Monday)"""
    day = parse_datetime(moment).replace(hour=0, minute=0, second=0, microsecond=0)
    if interval == "day":
        return day
    if interval == "week":
        return day + relativedelta(weekday=MO(-1))
    if interval == "month":
        return day + relativedelta(day=1)
    raise ValueError(f"Unsupported interval: {interval}")


def next_interval(start: datetime, interval: str) -> datetime:
    try:
        return start + STEPS[interval]
    except KeyError:
        raise ValueError(f"Unsupported interval: {interval}") from None


def iter_buckets(bounds_min: datetime, bounds_max: datetime, interval: str) -> Iterator[datetime]:
    """Bucket starts covering [bounds_min, bounds_max], both ends included"""
    current = floor_to_interval(bounds_min, interval)
    last = floor_to_interval(bounds_max, interval)
    while current <= last:
        yield current
        current = next_interval(current, interval)


def to_epoch_millis(moment: datetime) -> int:
    return int(parse_datetime(moment).timestamp() * 1000)


def from_epoch_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def bucket_label(start: datetime, interval: str) -> str:
    if interval == "month":
        return start.strftime("%Y-%m")
    return start.strftime("%Y-%m-%d")

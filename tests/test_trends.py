"""Tests for bucketed price trends and the period-over-period change."""

from datetime import datetime, timedelta, timezone

import pytest

from factories import NOW, indexed_container, make_view, run
from estate_search.exceptions import QueryValidationError
from estate_search.services.trends_service import TrendPeriod, TrendsService, change_percentage


def at(month, day, hour=12):
    return datetime(2026, month, day, hour, tzinfo=timezone.utc)


def trends_for(views):
    container = indexed_container(views)
    return TrendsService(container.document_store, container.config, clock=lambda: NOW)


@pytest.mark.parametrize("latest,baseline,expected", [
    (110.0, 100.0, 10.0),
    (50.0, 100.0, -50.0),
    (0.0, 100.0, -100.0),
    (250.0, 0.0, 0.0),
])
def test_change_percentage(latest, baseline, expected):
    assert change_percentage(latest, baseline) == pytest.approx(expected)


def test_weekly_series_and_change():
    service = trends_for([
        make_view("a", price=200000.0, published_at=at(10, 9)),
        make_view("b", price=400000.0, published_at=at(10, 10)),
        make_view("c", price=330000.0, published_at=at(10, 15, hour=10)),
        make_view("old", price=9000000.0, published_at=at(9, 1)),
        make_view("unpublished", price=9000000.0),
    ])

    series = run(service.get_trends("DE", period="week"))

    assert series.period == "week"
    assert [point.date for point in series.data] == [f"2026-10-{day:02d}" for day in range(8, 16)]
    counts = {point.date: point.listing_count for point in series.data}
    assert counts["2026-10-09"] == 1
    assert counts["2026-10-12"] == 0
    assert series.data[-1].average_price == 330000.0
    assert series.data[2].average_price == 400000.0
    assert series.change_percentage == pytest.approx(10.0)


def test_no_baseline_means_no_change():
    service = trends_for([make_view("fresh", price=300000.0, published_at=NOW - timedelta(hours=1))])

    series = run(service.get_trends("DE", period=TrendPeriod.WEEK))

    assert series.change_percentage == 0.0
    assert series.data[-1].listing_count == 1


def test_empty_latest_bucket_with_baseline():
    service = trends_for([make_view("earlier", price=300000.0, published_at=at(10, 12))])

    series = run(service.get_trends("DE", period="week"))

    assert series.data[-1].listing_count == 0
    assert series.change_percentage == pytest.approx(-100.0)


def test_month_uses_daily_buckets():
    series = run(trends_for([]).get_trends("DE", period="month"))

    assert len(series.data) == 31
    assert series.data[0].date == "2026-09-15"
    assert series.data[-1].date == "2026-10-15"
    assert all(point.listing_count == 0 and point.average_price == 0.0 for point in series.data)


def test_quarter_uses_weeks_starting_on_monday():
    series = run(trends_for([]).get_trends("DE", period="quarter"))

    starts = [datetime.strptime(point.date, "%Y-%m-%d") for point in series.data]
    assert all(start.weekday() == 0 for start in starts)
    assert all(b - a == timedelta(weeks=1) for a, b in zip(starts, starts[1:]))
    assert series.data[-1].date == "2026-10-12"


def test_year_uses_monthly_buckets():
    series = run(trends_for([make_view("p", price=1.0, published_at=at(3, 3))]).get_trends("DE", period="year"))

    labels = [point.date for point in series.data]
    assert labels[0] == "2025-10"
    assert labels[-1] == "2026-10"
    assert len(labels) == 13
    assert dict((p.date, p.listing_count) for p in series.data)["2026-03"] == 1


def test_slice_filters_apply():
    service = trends_for([
        make_view("berlin", price=100.0, published_at=at(10, 14)),
        make_view("paris", price=100.0, published_at=at(10, 14), city="Paris", country="FR"),
    ])

    series = run(service.get_trends("FR", city="Paris", period="week"))

    assert sum(point.listing_count for point in series.data) == 1



def test_city_slice_ignores_case_and_accents():
    service = trends_for([
        make_view("koeln", price=100.0, published_at=at(10, 14), city="Köln"),
        make_view("bonn", price=100.0, published_at=at(10, 14), city="Bonn"),
    ])

    series = run(service.get_trends("DE", city="koln", period="week"))

    assert sum(point.listing_count for point in series.data) == 1

def test_unknown_period_is_rejected():
    with pytest.raises(QueryValidationError) as exc_info:
        run(trends_for([]).get_trends("DE", period="decade"))
    assert exc_info.value.errors[0]["field"] == "period"


def test_country_is_required():
    with pytest.raises(QueryValidationError):
        run(trends_for([]).get_trends("", period="week"))

"""Tests for market analytics over a country/city/type slice."""

from datetime import timedelta

import pytest

from factories import NOW, indexed_container, make_view, run
from estate_search.exceptions import QueryValidationError
from estate_search.models.documents import PropertyStatus, PropertyType
from estate_search.services.analytics_service import AnalyticsService


@pytest.fixture
def analytics():
    container = indexed_container([
        make_view("a", price=300000.0, floor_area=100.0, published_at=NOW - timedelta(days=10),
                  features={"garden": True, "parking": True}),
        make_view("b", price=500000.0, floor_area=125.0, published_at=NOW - timedelta(days=20),
                  features={"garden": True}),
        make_view("c", price=400000.0, floor_area=80.0, city="Hamburg"),
        make_view("paris", price=900000.0, city="Paris", country="FR"),
        make_view("sold", price=1.0, status=PropertyStatus.SOLD),
    ])
    return AnalyticsService(container.document_store, container.config, clock=lambda: NOW)


def test_country_statistics(analytics):
    report = run(analytics.get_analytics("DE"))

    assert report.listing_count == 3
    assert report.average_price == pytest.approx(400000.0)
    assert report.median_price == pytest.approx(400000.0)
    assert report.price_per_area == pytest.approx(4000.0)
    # the unpublished listing contributes zero days
    assert report.average_days_on_market == pytest.approx(10.0)


def test_price_distribution(analytics):
    distribution = run(analytics.get_analytics("DE")).price_distribution

    assert distribution.min == 300000.0
    assert distribution.max == 500000.0
    counts = {(bucket.from_, bucket.to): bucket.count for bucket in distribution.ranges}
    assert counts[(300000.0, 500000.0)] == 2
    assert counts[(500000.0, 750000.0)] == 1
    assert counts[(None, 100000.0)] == 0
    assert counts[(2000000.0, None)] == 0


def test_popular_features_sorted_by_count(analytics):
    features = run(analytics.get_analytics("DE")).popular_features

    assert [(f.feature, f.count) for f in features[:2]] == [("garden", 2), ("parking", 1)]
    assert features[0].percentage == pytest.approx(200 / 3)
    assert all(f.count == 0 and f.percentage == 0 for f in features[2:])


def test_city_slice(analytics):
    report = run(analytics.get_analytics("DE", city="Hamburg"))

    assert report.listing_count == 1
    assert report.average_price == 400000.0
    assert report.average_days_on_market == 0.0



def test_city_slice_ignores_case(analytics):
    assert run(analytics.get_analytics("DE", city="hamburg")).listing_count == 1
    assert run(analytics.get_analytics("DE", city="HAMBURG")).average_price == 400000.0

def test_empty_slice_reports_zeros(analytics):
    report = run(analytics.get_analytics("DE", property_type=PropertyType.LAND))

    assert report.listing_count == 0
    assert report.average_price == 0.0
    assert report.median_price == 0.0
    assert report.price_per_area == 0.0
    assert report.average_days_on_market == 0.0
    assert report.price_distribution.min == 0.0
    assert report.price_distribution.max == 0.0
    assert all(bucket.count == 0 for bucket in report.price_distribution.ranges)
    assert all(f.percentage == 0.0 for f in report.popular_features)


def test_missing_floor_area_counts_as_one():
    container = indexed_container([make_view("plot", price=50000.0, floor_area=None, property_type=PropertyType.LAND)])
    analytics = AnalyticsService(container.document_store, container.config, clock=lambda: NOW)

    assert run(analytics.get_analytics("DE")).price_per_area == 50000.0


@pytest.mark.parametrize("country", ["", "   "])
def test_country_is_required(analytics, country):
    with pytest.raises(QueryValidationError) as exc_info:
        run(analytics.get_analytics(country))
    assert exc_info.value.errors[0]["field"] == "country"


def test_unknown_property_type_is_rejected(analytics):
    with pytest.raises(QueryValidationError):
        run(analytics.get_analytics("DE", property_type="CASTLE"))

"""Tests for the in-memory document store and clause evaluation."""

import pytest

from factories import run
from estate_search.models.query_spec import (
    Bool, DateHistogramAgg, FilterAgg, FullText, Match, MetricAgg, PercentilesAgg, QuerySpec,
    Range, RangeAgg, Sort, Term, Terms, TermsAgg,
)
from estate_search.services.clause_evaluator import (
    allowed_edits, edit_distance, evaluate, fold, get_path, haversine_km,
)
from estate_search.services.date_buckets import floor_to_interval, iter_buckets, next_interval, parse_datetime
from estate_search.services.memory_store import InMemoryDocumentStore

DOCS = {
    "a": {"id": "a", "price": 300.0, "tags": ["pool", "gym"], "address": {"city": "Berlin"},
          "published_at": "2026-10-01T08:00:00Z"},
    "b": {"id": "b", "price": 100.0, "tags": ["pool"], "address": {"city": "Berlin"},
          "published_at": "2026-10-03T08:00:00Z"},
    "c": {"id": "c", "tags": [], "address": {"city": "Hamburg"}},
}


@pytest.fixture
def store():
    store = InMemoryDocumentStore()
    run(store.create_index("docs", {"mappings": {}}))
    run(store.bulk_index("docs", DOCS.items()))
    return store


def search(store, query=Bool(), **kwargs):
    return run(store.search("docs", QuerySpec(query=query, **kwargs)))


def ids(response):
    return [hit["_id"] for hit in response["hits"]["hits"]]


def test_get_path_ignores_keyword_suffix():
    assert get_path(DOCS["a"], "address.city.keyword") == "Berlin"
    assert get_path(DOCS["a"], "address.postcode") is None


def test_fuzziness_follows_token_length():
    assert [allowed_edits(token) for token in ("ab", "abcde", "abcdef")] == [0, 1, 2]
    assert edit_distance("garden", "gardn") == 1


def test_haversine_berlin_munich():
    assert haversine_km(52.52, 13.405, 48.1351, 11.582) == pytest.approx(504, abs=5)


def test_searching_a_missing_index_fails():
    with pytest.raises(LookupError):
        run(InMemoryDocumentStore().search("nope", QuerySpec(query=Bool())))


def test_documents_are_copied(store):
    hit = search(store)["hits"]["hits"][0]
    hit["_source"]["price"] = -1

    assert all(h["_source"].get("price") != -1 for h in search(store)["hits"]["hits"])


def test_missing_sort_values_go_last(store):
    assert ids(search(store, sort=(Sort("price", "asc"),))) == ["b", "a", "c"]
    assert ids(search(store, sort=(Sort("price", "desc"),))) == ["a", "b", "c"]


def test_offset_and_size_page_after_sorting(store):
    response = search(store, sort=(Sort("price", "asc"),), offset=1, size=1)

    assert ids(response) == ["a"]
    assert response["hits"]["total"]["value"] == 3


def test_terms_on_array_field(store):
    assert set(ids(search(store, Bool(filter=(Terms("tags", ("gym",)),))))) == {"a"}
    assert set(ids(search(store, Bool(filter=(Term("tags", "pool"),))))) == {"a", "b"}


def test_should_only_requires_one_match(store):
    query = Bool(should=(Term("address.city", "Hamburg"), Term("tags", "gym")))
    assert set(ids(search(store, query))) == {"a", "c"}


def test_full_text_scores_weighted_best_field():
    doc = {"title": "Garden house", "description": "house with a garden"}
    clause = FullText("garden house", (("title", 3.0), ("description", 1.0)))

    assert evaluate(clause, doc) == 6.0
    assert evaluate(FullText("gardn", (("title", 1.0),)), doc) == 1.0
    assert evaluate(FullText("castle", (("title", 1.0),)), doc) is None


def test_range_with_date_bounds(store):
    query = Bool(filter=(Range("published_at", gte=parse_datetime("2026-10-02T00:00:00Z")),))
    assert ids(search(store, query)) == ["b"]


def test_aggregations_are_shaped_like_the_engine(store):
    response = search(store, size=0, aggregations={
        "tags": TermsAgg("tags"),
        "prices": RangeAgg("price", ((None, 200.0), (200.0, None))),
        "avg": MetricAgg("avg", "price"),
        "count": MetricAgg("value_count", "price"),
        "median": PercentilesAgg("price"),
        "berlin": FilterAgg(Term("address.city", "Berlin"), aggs=(("top", MetricAgg("max", "price")),)),
    })
    aggs = response["aggregations"]

    assert response["hits"]["hits"] == []
    assert aggs["tags"]["buckets"] == [{"key": "pool", "doc_count": 2}, {"key": "gym", "doc_count": 1}]
    assert [b["doc_count"] for b in aggs["prices"]["buckets"]] == [1, 1]
    assert aggs["prices"]["buckets"][0] == {"key": "*-200.0", "to": 200.0, "doc_count": 1}
    assert aggs["avg"] == {"value": 200.0}
    assert aggs["count"] == {"value": 2}
    assert aggs["median"] == {"values": {"50.0": 200.0}}
    assert aggs["berlin"] == {"doc_count": 2, "top": {"value": 300.0}}


def test_date_histogram_fills_empty_buckets(store):
    agg = DateHistogramAgg(
        "published_at", "day",
        bounds_min=parse_datetime("2026-09-30T00:00:00Z"),
        bounds_max=parse_datetime("2026-10-03T23:00:00Z"),
        aggs=(("avg", MetricAgg("avg", "price")),),
    )
    buckets = search(store, size=0, aggregations={"h": agg})["aggregations"]["h"]["buckets"]

    assert [b["key_as_string"] for b in buckets] == ["2026-09-30", "2026-10-01", "2026-10-02", "2026-10-03"]
    assert [b["doc_count"] for b in buckets] == [0, 1, 0, 1]
    assert buckets[0]["avg"] == {"value": None}
    assert buckets[3]["avg"] == {"value": 100.0}


def test_week_and_month_flooring():
    thursday = parse_datetime("2026-10-15T12:00:00Z")

    assert floor_to_interval(thursday, "week").isoformat() == "2026-10-12T00:00:00+00:00"
    assert floor_to_interval(thursday, "month").isoformat() == "2026-10-01T00:00:00+00:00"
    months = list(iter_buckets(parse_datetime("2025-11-20T00:00:00Z"), thursday, "month"))
    assert [m.strftime("%Y-%m") for m in months] == [
        "2025-11", "2025-12", "2026-01", "2026-02", "2026-03", "2026-04", "2026-05",
        "2026-06", "2026-07", "2026-08", "2026-09", "2026-10",
    ]


def test_delete_document_reports_presence(store):
    assert run(store.delete_document("docs", "a")) is True
    assert run(store.delete_document("docs", "a")) is False
    assert run(store.count("docs")) == 2


def test_fold_strips_case_and_diacritics():
    assert fold("Köln") == "koln"
    assert fold("SÃO PAULO") == "sao paulo"


def test_match_is_case_and_accent_insensitive():
    doc = {"address": {"city": "Frankfurt am Main"}}

    assert evaluate(Match("address.city", "FRANKFURT am main"), doc) == 3.0
    assert evaluate(Match("address.city", "frankfurt oder"), doc) is None
    assert evaluate(Match("address.city", "frankfurt oder", operator="or"), doc) == 1.0
    assert evaluate(Match("address.city", "ZÜRICH"), {"address": {"city": "Zurich"}}) == 1.0
    assert evaluate(Match("address.city", ""), doc) is None


def test_match_filter_in_store(store):
    assert set(ids(search(store, Bool(filter=(Match("address.city", "berlin"),))))) == {"a", "b"}


def test_iso_parsing_normalises_to_utc():
    assert parse_datetime("2026-10-01T08:00:00Z").isoformat() == "2026-10-01T08:00:00+00:00"
    assert parse_datetime("2026-10-01T10:00:00+02:00").isoformat() == "2026-10-01T08:00:00+00:00"
    assert parse_datetime("2026-10-01").isoformat() == "2026-10-01T00:00:00+00:00"


def test_interval_steps_cross_year_and_month_ends():
    december = parse_datetime("2025-12-01T00:00:00Z")

    assert next_interval(december, "month").isoformat() == "2026-01-01T00:00:00+00:00"
    assert next_interval(parse_datetime("2026-02-23T00:00:00Z"), "week").strftime("%Y-%m-%d") == "2026-03-02"
    assert next_interval(parse_datetime("2028-02-28T00:00:00Z"), "day").strftime("%Y-%m-%d") == "2028-02-29"
    with pytest.raises(ValueError):
        next_interval(december, "decade")


def test_monday_is_its_own_week_start():
    monday = parse_datetime("2026-10-12T23:59:00Z")
    assert floor_to_interval(monday, "week").isoformat() == "2026-10-12T00:00:00+00:00"

"""Tests for environment-driven settings, logging setup and the service container."""

import json
import logging

import pytest

from factories import make_settings, make_view, run
from estate_search.config.logging_config import build_logging_config
from estate_search.config.settings import DEFAULT_RECOMMENDATION_BOOSTS, Settings
from estate_search.models.query import UserProfile
from estate_search.services.canonical_store import InMemoryCanonicalStore
from estate_search.services.container import ServiceContainer, create_document_store
from estate_search.services.memory_store import InMemoryDocumentStore


def test_defaults(monkeypatch):
    for name in ("DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE", "ELIGIBLE_STATUSES", "RECOMMENDATION_BOOSTS_FILE"):
        monkeypatch.delenv(name, raising=False)
    config = Settings()

    assert config.default_page_size == 10
    assert config.max_page_size == 100
    assert config.eligible_statuses == ["ACTIVE", "PENDING"]
    assert config.facet_price_edges == (100000.0, 200000.0, 500000.0, 1000000.0)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PROPERTY_INDEX", "listings-v2")
    monkeypatch.setenv("DISTRIBUTION_PRICE_EDGES", "1000, 5000")
    monkeypatch.setenv("RECOMMENDATION_BOOST_FAVORITE_CITY", "2.4")
    config = Settings()

    assert config.index_name == "listings-v2"
    assert config.distribution_price_edges == (1000.0, 5000.0)
    assert config.recommendation_boosts["favorite_city"] == 2.4
    assert config.recommendation_boosts["common_feature"] == DEFAULT_RECOMMENDATION_BOOSTS["common_feature"]


def test_boosts_file(monkeypatch, tmp_path):
    path = tmp_path / "boosts.json"
    path.write_text(json.dumps({"preferred_type": 1.2, "bogus": 9}), encoding="utf-8")
    monkeypatch.setenv("RECOMMENDATION_BOOSTS_FILE", str(path))

    boosts = Settings().recommendation_boosts

    assert boosts["preferred_type"] == 1.2
    assert "bogus" not in boosts


def test_unreadable_boosts_file_keeps_defaults(monkeypatch, tmp_path, caplog):
    monkeypatch.setenv("RECOMMENDATION_BOOSTS_FILE", str(tmp_path / "missing.json"))
    for name in DEFAULT_RECOMMENDATION_BOOSTS:
        monkeypatch.delenv(f"RECOMMENDATION_BOOST_{name.upper()}", raising=False)

    with caplog.at_level(logging.WARNING):
        boosts = Settings().recommendation_boosts

    assert boosts == DEFAULT_RECOMMENDATION_BOOSTS
    assert "missing.json" in caplog.text


def test_elasticsearch_auth_needs_both_parts():
    config = make_settings(elasticsearch_username="elastic", elasticsearch_password=None)
    assert config.elasticsearch_auth is None

    config.elasticsearch_password = "secret"
    assert config.elasticsearch_auth == ("elastic", "secret")


def test_logging_config_levels():
    config = build_logging_config("DEBUG")

    assert config["loggers"]["estate_search"]["level"] == "DEBUG"
    assert config["loggers"]["elastic_transport"]["level"] == "WARNING"


def test_document_store_selection():
    assert isinstance(create_document_store(make_settings(document_store="memory")), InMemoryDocumentStore)
    with pytest.raises(ValueError):
        create_document_store(make_settings(document_store="sqlite"))


def test_canonical_seed_file(tmp_path):
    view = make_view("seeded")
    path = tmp_path / "seed.json"
    path.write_text(json.dumps({
        "properties": [view.model_dump(mode="json")],
        "users": [UserProfile(id="u1").model_dump(mode="json")],
    }), encoding="utf-8")

    container = ServiceContainer(make_settings(canonical_seed_file=str(path)))

    assert isinstance(container.canonical_store, InMemoryCanonicalStore)
    assert run(container.canonical_store.get_property_by_id("seeded")).title == view.title
    assert run(container.canonical_store.get_user_profile("u1")) is not None
    assert run(container.indexer.rebuild_all()) == 1

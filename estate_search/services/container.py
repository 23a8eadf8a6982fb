from typing import Optional

from ..config.settings import Settings, settings as default_settings
from .analytics_service import AnalyticsService
from .canonical_store import CanonicalStore, InMemoryCanonicalStore
from .document_store import DocumentStore
from .elasticsearch_service import ElasticsearchService
from .health_service import HealthService
from .indexer import IndexerService
from .memory_store import InMemoryDocumentStore
from .query_builder import QueryBuilder
from .recommendation_service import RecommendationService
from .search_service import SearchService
from .trends_service import TrendsService


def create_document_store(config: Settings) -> DocumentStore:
    if config.document_store == "memory":
        return InMemoryDocumentStore()
    if config.document_store == "elasticsearch":
        return ElasticsearchService(config)
    raise ValueError(f"Unknown DOCUMENT_STORE: {config.document_store}")


def create_canonical_store(config: Settings) -> CanonicalStore:
    if config.canonical_seed_file:
        return InMemoryCanonicalStore.from_json_file(config.canonical_seed_file, config.eligible_statuses)
    return InMemoryCanonicalStore(eligible_statuses=config.eligible_statuses)


class ServiceContainer:
    """Dependency injection container for managing service instances"""

    def __init__(
        self,
        config: Settings = default_settings,
        document_store: Optional[DocumentStore] = None,
        canonical_store: Optional[CanonicalStore] = None,
    ):
        self.config = config
        self._document_store = document_store or create_document_store(config)
        self._canonical_store = canonical_store or create_canonical_store(config)

        self._query_builder = QueryBuilder(config)
        self._indexer = IndexerService(self._document_store, self._canonical_store, config)
        self._search_service = SearchService(self._document_store, self._query_builder, config)
        self._analytics_service = AnalyticsService(self._document_store, config)
        self._trends_service = TrendsService(self._document_store, config)
        self._recommendation_service = RecommendationService(self._document_store, self._canonical_store, config)
        self._health_service = HealthService(self._document_store, self._indexer, config)

    @property
    def document_store(self) -> DocumentStore:
        return self._document_store

    @property
    def canonical_store(self) -> CanonicalStore:
        return self._canonical_store

    @property
    def indexer(self) -> IndexerService:
        return self._indexer

    @property
    def search_service(self) -> SearchService:
        return self._search_service

    @property
    def analytics_service(self) -> AnalyticsService:
        return self._analytics_service

    @property
    def trends_service(self) -> TrendsService:
        return self._trends_service

    @property
    def recommendation_service(self) -> RecommendationService:
        return self._recommendation_service

    @property
    def health_service(self) -> HealthService:
        return self._health_service

    async def close(self) -> None:
        await self._document_store.close()


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Process-wide container, built on first use"""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container

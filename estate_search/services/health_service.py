import logging
from datetime import datetime, timezone

from ..config.settings import Settings, settings as default_settings
from ..models.schemas import DetailedHealthResponse, HealthResponse
from .document_store import DocumentStore
from .indexer import IndexerService

logger = logging.getLogger(__name__)


class HealthService:
    """Service class for health checks and system status"""

    def __init__(self, store: DocumentStore, indexer: IndexerService, config: Settings = default_settings):
        self.store = store
        self.indexer = indexer
        self.config = config

    async def get_health_status(self) -> HealthResponse:
        """Store reachability, index presence and the indexer lifecycle state"""
        index_name = self.config.index_name
        reachable = await self.store.ping()
        available = [index_name] if reachable and await self.store.index_exists(index_name) else []

        if not reachable:
            logger.warning("Document store did not answer ping")
            status = "ERROR: document store unreachable"
        elif not available:
            status = "DEGRADED: index missing"
        elif self.indexer.state.value != "ready":
            status = f"DEGRADED: index {self.indexer.state.value}"
        else:
            status = "OK"

        return HealthResponse(
            status=status,
            timestamp=datetime.now(timezone.utc).isoformat(),
            index_state=self.indexer.state.value,
            indexes_available=available,
        )

    async def get_detailed_status(self) -> DetailedHealthResponse:
        """Health plus document count and effective configuration"""
        health = await self.get_health_status()
        document_count = None
        if health.indexes_available:
            document_count = await self.store.count(self.config.index_name)

        return DetailedHealthResponse(
            **health.model_dump(),
            document_count=document_count,
            store={
                "backend": self.config.document_store,
                "url": self.config.elasticsearch_url if self.config.document_store == "elasticsearch" else None,
                "index": self.config.index_name,
            },
            configuration={
                "default_page_size": self.config.default_page_size,
                "max_page_size": self.config.max_page_size,
                "facet_size": self.config.facet_size,
                "eligible_statuses": list(self.config.eligible_statuses),
                "rebuild_batch_size": self.config.rebuild_batch_size,
                "recommendation_boosts": self.config.recommendation_boosts,
                "api_version": self.config.api_version,
            },
        )

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Tuple

from ..models.query_spec import QuerySpec


class DocumentStore(ABC):
    """Port to a query/aggregation-capable document index.

    ``search`` answers in the Elasticsearch response shape: ``hits.total.value``,
    ``hits.hits[]`` with ``_id``/``_source``/``_score``, and ``aggregations``
    keyed by the names used in the QuerySpec. Implementations must be safe to share
    between concurrent requests and keep no per-request state.
    """

    @abstractmethod
    async def create_index(self, name: str, definition: Dict[str, Any]) -> None:
        """Create the index with its settings/mappings if it does not exist"""

    @abstractmethod
    async def delete_index(self, name: str) -> None:
        """Delete the index if it exists"""

    @abstractmethod
    async def index_exists(self, name: str) -> bool:
        ...

    @abstractmethod
    async def index_document(self, name: str, doc_id: str, document: Dict[str, Any]) -> None:
        """Insert or replace one document"""

    @abstractmethod
    async def bulk_index(self, name: str, documents: Iterable[Tuple[str, Dict[str, Any]]]) -> int:
        """Insert or replace many documents; raises if any of them fails"""

    @abstractmethod
    async def delete_document(self, name: str, doc_id: str) -> bool:
        """Delete by id. Returns False when there was nothing to delete."""

    @abstractmethod
    async def search(self, name: str, spec: QuerySpec) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def count(self, name: str) -> int:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        return None

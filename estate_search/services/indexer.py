import logging
import math
from enum import Enum
from typing import Any, Dict, Optional

from ..config.settings import Settings, settings as default_settings
from ..exceptions import RebuildError
from ..models.documents import (
    Address, OwnerSummary, PropertyFeatures, PropertyImage, PropertyView, SearchDocument,
    TRACKED_FEATURES,
)
from .canonical_store import CanonicalStore
from .document_store import DocumentStore
from .index_mapping import property_index_definition

logger = logging.getLogger(__name__)


class IndexState(str, Enum):
    READY = "ready"
    REBUILDING = "rebuilding"
    NEEDS_REBUILD = "needs_rebuild"


def build_document(view: PropertyView) -> SearchDocument:
    """Flatten a canonical property view into its search document"""
    record = view.features
    flags: Dict[str, Any] = {name: bool(getattr(record, name, None)) for name in TRACKED_FEATURES}
    features = PropertyFeatures(
        **flags,
        build_year=record.build_year if record else None,
        energy_rating=record.energy_rating if record else None,
    )
    owner_name = " ".join(part for part in (view.owner.first_name, view.owner.last_name) if part)

    return SearchDocument(
        id=view.id,
        title=view.title,
        description=view.description,
        price=float(view.price),
        currency=view.currency,
        property_type=view.property_type,
        listing_type=view.listing_type,
        status=view.status,
        bedrooms=record.bedrooms if record else None,
        bathrooms=record.bathrooms if record else None,
        floor_area=float(record.floor_area) if record and record.floor_area is not None else None,
        address=view.address or Address(),
        location=view.location,
        features=features,
        amenities=list(view.amenities),
        images=[
            PropertyImage(url=image.url, is_main=image.is_main)
            for image in sorted(view.images, key=lambda image: image.order)
        ],
        owner=OwnerSummary(id=view.owner.id, name=owner_name, company=view.owner.company),
        view_count=view.view_count,
        created_at=view.created_at,
        updated_at=view.updated_at,
        published_at=view.published_at,
    )


def to_source(document: SearchDocument) -> Dict[str, Any]:
    return document.model_dump(mode="json", exclude_none=True)


class IndexerService:
    """Owns the property index: single-document upserts, removals and full rebuilds.

    No other component writes to the index.
    """

    def __init__(
        self,
        store: DocumentStore,
        canonical: CanonicalStore,
        config: Settings = default_settings,
    ):
        self.store = store
        self.canonical = canonical
        self.index_name = config.index_name
        self.batch_size = config.rebuild_batch_size
        self.eligible_statuses = set(config.eligible_statuses)
        self.state = IndexState.READY

    def is_eligible(self, view: PropertyView) -> bool:
        return view.is_active and view.status.value in self.eligible_statuses

    async def ensure_index(self) -> None:
        await self.store.create_index(self.index_name, property_index_definition())

    async def index_one(self, property_id: str) -> Optional[SearchDocument]:
        """Upsert the document for one property. Returns None when nothing was indexed."""
        view = await self.canonical.get_property_by_id(property_id)
        if view is None:
            logger.warning("Property not found for indexing: %s", property_id)
            return None

        if not self.is_eligible(view):
            logger.info("Property %s is not eligible (status %s), removing from index", property_id, view.status.value)
            await self.remove(property_id)
            return None

        document = build_document(view)
        await self.store.index_document(self.index_name, document.id, to_source(document))
        logger.info("Indexed property: %s", property_id)
        return document

    async def remove(self, property_id: str) -> bool:
        removed = await self.store.delete_document(self.index_name, property_id)
        if removed:
            logger.info("Deleted property from index: %s", property_id)
        return removed

    async def on_property_created(self, property_id: str) -> Optional[SearchDocument]:
        return await self.index_one(property_id)

    async def on_property_updated(self, property_id: str) -> Optional[SearchDocument]:
        return await self.index_one(property_id)

    async def on_property_deleted(self, property_id: str) -> bool:
        return await self.remove(property_id)

    async def rebuild_all(self) -> int:
        """Drop, recreate and repopulate the index batch by batch.

        Not atomic: readers can observe an empty or partial index while this
        runs. A failing batch stops the rebuild, keeps what was already
        committed and leaves the index in the ``needs_rebuild`` state.
        """
        self.state = IndexState.REBUILDING
        try:
            await self.store.delete_index(self.index_name)
            await self.store.create_index(self.index_name, property_index_definition())
            views = await self.canonical.list_eligible_properties()
        except Exception:
            self.state = IndexState.NEEDS_REBUILD
            logger.exception("Rebuild of %s failed before indexing started", self.index_name)
            raise

        documents = []
        for view in views:
            if not self.is_eligible(view):
                logger.warning("Skipping ineligible property %s during rebuild", view.id)
                continue
            document = build_document(view)
            documents.append((document.id, to_source(document)))

        total_batches = math.ceil(len(documents) / self.batch_size)
        indexed = 0
        for number, start in enumerate(range(0, len(documents), self.batch_size), start=1):
            batch = documents[start:start + self.batch_size]
            try:
                await self.store.bulk_index(self.index_name, batch)
            except Exception as e:
                self.state = IndexState.NEEDS_REBUILD
                logger.error("Rebuild batch %d of %d failed: %s", number, total_batches, e)
                raise RebuildError(number, total_batches, indexed) from e
            indexed += len(batch)
            logger.info("Indexed batch %d of %d", number, total_batches)

        self.state = IndexState.READY
        logger.info("Reindexed %d properties into %s", indexed, self.index_name)
        return indexed

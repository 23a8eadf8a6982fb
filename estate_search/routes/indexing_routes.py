from fastapi import APIRouter, Depends

from ..models.schemas import IndexStatus
from ..services.container import ServiceContainer, get_container

router = APIRouter()


@router.post("/index/properties/{property_id}", response_model=IndexStatus)
async def index_property(property_id: str, container: ServiceContainer = Depends(get_container)):
    """Property created or updated: re-project it into the index"""
    document = await container.indexer.on_property_updated(property_id)
    return IndexStatus(
        index=container.config.index_name,
        state=container.indexer.state.value,
        indexed=1 if document else 0,
    )


@router.delete("/index/properties/{property_id}", response_model=IndexStatus)
async def remove_property(property_id: str, container: ServiceContainer = Depends(get_container)):
    """Property deleted: drop its document (no-op when absent)"""
    await container.indexer.on_property_deleted(property_id)
    return IndexStatus(index=container.config.index_name, state=container.indexer.state.value)


@router.post("/index/rebuild", response_model=IndexStatus)
async def rebuild_index(container: ServiceContainer = Depends(get_container)):
    """
    Drop and repopulate the whole index from the canonical store.

    The index is empty or partial while this runs. A failed batch leaves the
    state at ``needs_rebuild``.
    """
    indexed = await container.indexer.rebuild_all()
    return IndexStatus(index=container.config.index_name, state=container.indexer.state.value, indexed=indexed)

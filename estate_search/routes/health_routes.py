from fastapi import APIRouter, Depends
from ..models.schemas import DetailedHealthResponse, HealthResponse
from ..services.container import ServiceContainer, get_container

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(container: ServiceContainer = Depends(get_container)):
    """
    Liveness of the search subsystem.

    Reports:
    - OK, DEGRADED or ERROR status
    - Indexer lifecycle state (ready, rebuilding, needs_rebuild)
    - Whether the property index exists
    """
    return await container.health_service.get_health_status()


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(container: ServiceContainer = Depends(get_container)):
    """Health plus document count, store backend and effective search settings"""
    return await container.health_service.get_detailed_status()

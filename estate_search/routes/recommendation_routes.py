from typing import List
from fastapi import APIRouter, Depends, Query

from ..models.schemas import RecommendationItem
from ..services.container import ServiceContainer, get_container

router = APIRouter()


@router.get("/recommendations/{user_id}", response_model=List[RecommendationItem])
async def recommendations(
    user_id: str,
    limit: int = Query(10, description="Number of recommendations"),
    container: ServiceContainer = Depends(get_container),
):
    """Personalised listings, excluding the user's favourites"""
    return await container.recommendation_service.get_recommendations(user_id, limit)

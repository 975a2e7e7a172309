"""
StoreHub Backend: JSON API Routes
==================================

What:  The endpoints the front end calls from script: type-ahead search,
       the map's nearby stores, and the heart button.

    GET  /api/search?q=...              → top stores by text relevance
    GET  /api/stores/near?lng=..&lat=.. → stores within the radius
    POST /api/stores/{id}/heart         → toggled user
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Query

from storehub.dependencies import get_current_user, get_store_repository, get_user_repository
from storehub.models.user import User
from storehub.schemas.common import ErrorResponse, UserResponse
from storehub.schemas.store import StoreNearItem, StoreResponse, StoreSearchItem
from storehub.services.store_repository import StoreRepository
from storehub.services.user_repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["API"])


@router.get(
    "/search",
    response_model=List[StoreSearchItem],
    summary="Full-text store search",
    description="Matches store names and descriptions; best matches first.",
)
async def search_stores(
    q: str = Query(default="", max_length=200, description="Search terms"),
    stores: StoreRepository = Depends(get_store_repository),
) -> List[StoreSearchItem]:
    hits = await stores.search_by_text(q)
    return [
        StoreSearchItem(**StoreResponse.model_validate(store).model_dump(), score=score)
        for store, score in hits
    ]


@router.get(
    "/stores/near",
    response_model=List[StoreNearItem],
    responses={400: {"description": "Coordinates out of range", "model": ErrorResponse}},
    summary="Stores near a point",
    description="Stores within the configured radius (10km by default), nearest first.",
)
async def map_stores(
    lng: float = Query(..., description="Longitude of the center"),
    lat: float = Query(..., description="Latitude of the center"),
    stores: StoreRepository = Depends(get_store_repository),
) -> List[StoreNearItem]:
    nearby = await stores.list_near(lng, lat)
    return [StoreNearItem.model_validate(store) for store in nearby]


@router.post(
    "/stores/{store_id}/heart",
    response_model=UserResponse,
    responses={
        403: {"description": "Not signed in", "model": ErrorResponse},
        404: {"description": "Unknown store", "model": ErrorResponse},
    },
    summary="Heart or unheart a store",
)
async def heart_store(
    store_id: uuid.UUID,
    user: User = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
) -> UserResponse:
    updated = await users.toggle_favorite(user.id, store_id)
    return UserResponse.model_validate(updated)

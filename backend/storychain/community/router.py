"""Community router.

Endpoints:
    GET  /api/community/stats  - Story, author and heart totals
    GET  /api/community/picks  - Featured stories
    POST /api/community/picks  - Feature a story (moderator or admin)
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from storychain.auth.dependencies import require_moderator
from storychain.auth.schemas import User
from storychain.db import get_database
from storychain.errors import NotFoundError

from .schemas import CommunityStats, FeaturedPick, FeaturedPickCreate
from .service import CommunityService

router = APIRouter(prefix="/api/community", tags=["community"])


def _service() -> CommunityService:
    return CommunityService(get_database())


@router.get("/stats", response_model=CommunityStats)
def community_stats() -> CommunityStats:
    return _service().stats()


@router.get("/picks", response_model=List[FeaturedPick])
def featured_picks(limit: int = Query(10, ge=1, le=50)) -> List[FeaturedPick]:
    return _service().picks(limit)


@router.post("/picks", response_model=FeaturedPick, status_code=201)
def add_featured_pick(
    request: FeaturedPickCreate, user: User = Depends(require_moderator)
) -> FeaturedPick:
    try:
        return _service().add_pick(request.storyId, request.reason, user.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

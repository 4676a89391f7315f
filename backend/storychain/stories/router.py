"""Stories router.

Endpoints:
    POST /api/stories                  - Add a story (new chain when chainId is omitted)
    GET  /api/stories/chains           - Latest chains, optionally for one room
    GET  /api/stories/chain/{chain_id} - Stories of one chain, by sequence
    GET  /api/stories/next-chain-id    - Id the next new chain would get
    POST /api/stories/{story_id}/heart - Toggle the caller's heart
    GET  /api/stories/{story_id}       - One story

A committed story is pushed to its room as ``new-story`` over /ws.
Database work runs in the threadpool so /ws traffic keeps flowing.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi.concurrency import run_in_threadpool

from storychain.auth.dependencies import get_approved_user
from storychain.auth.schemas import User
from storychain.config import get_config
from storychain.db import get_database
from storychain.errors import ConflictError, InvalidInputError, NotFoundError
from storychain.realtime.dispatcher import dispatcher

from .schemas import MAX_CHAIN_ID, HeartResult, NextChainId, Story, StoryChain, StoryCreate
from .service import StoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stories", tags=["stories"])


def _service() -> StoryService:
    return StoryService(get_database(), get_config().stories.max_content_length)


@router.post("", response_model=Story, status_code=201)
async def create_story(request: StoryCreate, user: User = Depends(get_approved_user)) -> Story:
    try:
        story = await run_in_threadpool(
            _service().create,
            user,
            request.content,
            chain_id=request.chainId,
            room_id=request.roomId,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    delivered = await dispatcher.announce_story(
        story.model_dump(mode="json"), story.chainId, story.roomId
    )
    logger.debug(f"[stories] new-story for chain {story.chainId} reached {delivered} client(s)")
    return story


@router.get("/chains", response_model=List[StoryChain])
def list_chains(
    limit: Optional[int] = Query(None, ge=1, le=100),
    roomId: Optional[str] = Query(None, description="Only chains of this room"),
) -> List[StoryChain]:
    if limit is None:
        limit = get_config().stories.default_chain_limit
    return _service().chains(limit=limit, room_id=roomId)


@router.get("/chain/{chain_id}", response_model=List[Story])
def get_chain(chain_id: int = Path(..., ge=1, le=MAX_CHAIN_ID)) -> List[Story]:
    return _service().chain(chain_id)


@router.get("/next-chain-id", response_model=NextChainId)
def next_chain_id() -> NextChainId:
    return NextChainId(chainId=_service().next_chain_id())


@router.post("/{story_id}/heart", response_model=HeartResult)
def toggle_heart(story_id: str, user: User = Depends(get_approved_user)) -> HeartResult:
    """Heart the story, or remove the caller's heart if already given."""
    try:
        return _service().toggle_heart(story_id, user.id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{story_id}", response_model=Story)
def get_story(story_id: str) -> Story:
    try:
        return _service().get(story_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

"""Rooms router.

Endpoints:
    POST /api/rooms              - Create a room
    GET  /api/rooms/public       - Public rooms, newest first
    GET  /api/rooms/code/{code}  - Look up a room by join code
    GET  /api/rooms/{room_id}    - One room
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from storychain.auth.dependencies import get_approved_user
from storychain.auth.schemas import User
from storychain.config import get_config
from storychain.db import get_database
from storychain.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from storychain.realtime.registry import registry

from .schemas import Room, RoomCreate
from .service import RoomService

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


def _service() -> RoomService:
    settings = get_config().rooms
    return RoomService(
        get_database(),
        member_count=registry.count,
        code_length=settings.code_length,
        max_rooms_per_user=settings.max_rooms_per_user,
    )


@router.post("", response_model=Room, status_code=201)
def create_room(request: RoomCreate, user: User = Depends(get_approved_user)) -> Room:
    try:
        return _service().create(user.id, request)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.get("/public", response_model=List[Room])
def public_rooms() -> List[Room]:
    return _service().list_public()


@router.get("/code/{code}", response_model=Room)
def room_by_code(code: str) -> Room:
    try:
        return _service().get_by_code(code)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{room_id}", response_model=Room)
def get_room(room_id: str) -> Room:
    try:
        return _service().get(room_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

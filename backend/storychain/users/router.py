"""Users router.

Endpoints:
    GET /api/users/{user_id}          - Profile (contributions, XP, level, badges)
    GET /api/users/{user_id}/stories  - Stories written by the user, newest first
"""
from typing import List

from fastapi import APIRouter, HTTPException

from storychain.auth.schemas import User
from storychain.auth.service import UserService
from storychain.db import get_database
from storychain.errors import NotFoundError
from storychain.stories.schemas import Story
from storychain.stories.service import StoryService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}", response_model=User)
def get_user(user_id: str) -> User:
    try:
        return UserService(get_database()).get(user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{user_id}/stories", response_model=List[Story])
def user_stories(user_id: str) -> List[Story]:
    db = get_database()
    if UserService(db).find(user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    return StoryService(db).by_author(user_id)

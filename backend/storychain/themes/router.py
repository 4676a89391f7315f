"""Themes router.

Endpoints:
    GET  /api/themes        - All themes
    GET  /api/themes/daily  - Theme of the day
    POST /api/themes        - Add a theme (moderator or admin)
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from storychain.auth.dependencies import require_moderator
from storychain.auth.schemas import User
from storychain.db import get_database
from storychain.errors import NotFoundError

from .schemas import Theme, ThemeCreate
from .service import ThemeService

router = APIRouter(prefix="/api/themes", tags=["themes"])


def _service() -> ThemeService:
    return ThemeService(get_database())


@router.get("", response_model=List[Theme])
def list_themes() -> List[Theme]:
    return _service().list_themes()


@router.get("/daily", response_model=Theme)
def daily_theme() -> Theme:
    try:
        return _service().daily()
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=Theme, status_code=201)
def create_theme(request: ThemeCreate, user: User = Depends(require_moderator)) -> Theme:
    return _service().create(request)

"""Pydantic schemas for story rooms."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Room(BaseModel):
    """A story room; ``memberCount`` is the number of live connections."""
    id: str
    name: str
    code: str
    prompt: Optional[str] = None
    isPrivate: bool = False
    isThemed: bool = False
    theme: Optional[str] = None
    creatorId: str
    memberCount: int = 0
    createdAt: datetime


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    prompt: Optional[str] = Field(default=None, max_length=500)
    isPrivate: bool = False
    isThemed: bool = False
    theme: Optional[str] = Field(default=None, max_length=100)

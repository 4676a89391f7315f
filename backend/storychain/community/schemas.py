"""Pydantic schemas for community stats and featured picks."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from storychain.stories.schemas import Story


class CommunityStats(BaseModel):
    totalStories: int
    activeUsers: int
    totalHearts: int
    dailyContributions: int


class FeaturedPick(BaseModel):
    """A story highlighted by a moderator (the "cookies picks")."""
    id: int
    storyId: str
    reason: str
    pickedBy: str
    createdAt: datetime
    story: Optional[Story] = None


class FeaturedPickCreate(BaseModel):
    storyId: str
    reason: str = Field(..., min_length=1, max_length=300)

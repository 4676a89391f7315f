"""Pydantic schemas for writing themes."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Theme(BaseModel):
    id: int
    title: str
    prompt: str
    description: Optional[str] = None
    createdAt: datetime


class ThemeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    prompt: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=500)

"""Pydantic schemas for stories, chains and hearts."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

# Chain ids are stored as BIGINT but kept within a signed 32-bit range on input.
MAX_CHAIN_ID = 2**31 - 1


class Story(BaseModel):
    """One contribution to a chain.

    Attributes:
        sequence: Position within the chain, assigned by the server (1-based).
        roomId: None for stories in the global chain.
    """
    id: str
    chainId: int
    roomId: Optional[str] = None
    content: str
    authorId: str
    authorName: str
    sequence: int
    hearts: int = 0
    comments: int = 0
    createdAt: datetime


class StoryChain(BaseModel):
    """All stories sharing a chain id, ordered by sequence."""
    chainId: int
    roomId: Optional[str] = None
    stories: List[Story]
    totalHearts: int
    totalComments: int
    contributorCount: int
    createdAt: datetime
    updatedAt: datetime


class StoryCreate(BaseModel):
    content: str = Field(..., description="Story text")
    chainId: Optional[int] = Field(
        default=None, ge=1, le=MAX_CHAIN_ID, description="Existing chain; omit to start one"
    )
    roomId: Optional[str] = Field(default=None, description="Room; omit for the global chain")


class HeartResult(BaseModel):
    hearted: bool
    hearts: int


class NextChainId(BaseModel):
    chainId: int

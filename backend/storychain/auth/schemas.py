"""Pydantic schemas for accounts, roles and login."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    """Account role, ordered community < moderator < admin.

    Attributes:
        COMMUNITY: Regular storyteller.
        MODERATOR: Can curate themes and featured picks.
        ADMIN: Can also moderate accounts.
    """
    COMMUNITY = "community"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK = {
    UserRole.COMMUNITY: 1,
    UserRole.MODERATOR: 2,
    UserRole.ADMIN: 3,
}


class UserStatus(str, Enum):
    """Moderation state of an account."""
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


class User(BaseModel):
    """Public view of an account (never carries the password hash)."""
    id: str
    username: str
    email: str
    role: UserRole = UserRole.COMMUNITY
    status: UserStatus = UserStatus.PENDING
    contributionsCount: int = 0
    experiencePoints: int = 0
    level: int = 1
    heartsReceived: int = 0
    badges: List[str] = Field(default_factory=list)
    createdAt: datetime
    updatedAt: datetime


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str
    user: User


class RegisterResponse(BaseModel):
    message: str
    user: User


class StatusUpdate(BaseModel):
    status: UserStatus


class RoleUpdate(BaseModel):
    role: UserRole


class MessageResponse(BaseModel):
    message: str


class UserList(BaseModel):
    users: List[User]
    total: Optional[int] = None

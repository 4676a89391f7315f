"""FastAPI dependencies resolving the caller from a Bearer token."""
import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storychain.db import get_database
from storychain.errors import InvalidCredentialsError

from .schemas import User, UserRole, UserStatus
from .security import decode_token
from .service import UserService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve_user(token: str) -> User:
    try:
        payload = decode_token(token)
    except InvalidCredentialsError as exc:
        raise _unauthorized(str(exc))

    # Reload so that role/status changes and deletions apply immediately
    user = UserService(get_database()).find(payload["sub"])
    if user is None:
        raise _unauthorized("User not found")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    if credentials is None:
        raise _unauthorized("Access token required")
    return _resolve_user(credentials.credentials)


async def get_approved_user(user: User = Depends(get_current_user)) -> User:
    """Only approved accounts may write content."""
    if user.status != UserStatus.APPROVED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is not approved",
        )
    return user


def require_role(role: UserRole) -> Callable:
    """Build a dependency that admits users at or above *role*."""

    async def _check(user: User = Depends(get_approved_user)) -> User:
        if user.role.rank < role.rank:
            logger.warning("[auth] %s (%s) denied: needs %s", user.id, user.role.value, role.value)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check


require_admin = require_role(UserRole.ADMIN)
require_moderator = require_role(UserRole.MODERATOR)

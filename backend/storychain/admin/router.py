"""Admin moderation router.

Endpoints (admin token required):
    GET    /api/admin/users                     - List all accounts
    PATCH  /api/admin/users/{user_id}/status    - Set status
    POST   /api/admin/users/{user_id}/{action}  - approve | suspend | reject
    PATCH  /api/admin/users/{user_id}/role      - Set role
    DELETE /api/admin/users/{user_id}           - Delete an account
"""
import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException

from storychain.auth.dependencies import require_admin
from storychain.auth.schemas import (
    MessageResponse,
    RoleUpdate,
    StatusUpdate,
    User,
    UserList,
    UserStatus,
)
from storychain.auth.service import UserService
from storychain.db import get_database
from storychain.errors import NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

_ACTION_STATUS = {
    "approve": UserStatus.APPROVED,
    "suspend": UserStatus.SUSPENDED,
    "reject": UserStatus.REJECTED,
}


def _service() -> UserService:
    return UserService(get_database())


@router.get("/users", response_model=UserList)
def list_users(admin: User = Depends(require_admin)) -> UserList:
    users = _service().list_users()
    return UserList(users=users, total=len(users))


@router.patch("/users/{user_id}/status", response_model=User)
def update_status(
    user_id: str, request: StatusUpdate, admin: User = Depends(require_admin)
) -> User:
    try:
        user = _service().set_status(user_id, request.status)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info("[admin] %s set status of %s to %s", admin.id, user_id, request.status.value)
    return user


@router.post("/users/{user_id}/{action}", response_model=User)
def moderate(
    user_id: str,
    action: Literal["approve", "suspend", "reject"],
    admin: User = Depends(require_admin),
) -> User:
    """Shortcut for the three moderation buttons of the admin panel."""
    try:
        user = _service().set_status(user_id, _ACTION_STATUS[action])
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info("[admin] %s: %s %s", admin.id, action, user_id)
    return user


@router.patch("/users/{user_id}/role", response_model=User)
def update_role(
    user_id: str, request: RoleUpdate, admin: User = Depends(require_admin)
) -> User:
    try:
        user = _service().set_role(user_id, request.role)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info("[admin] %s set role of %s to %s", admin.id, user_id, request.role.value)
    return user


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: str, admin: User = Depends(require_admin)) -> MessageResponse:
    try:
        _service().delete(user_id, acting_user_id=admin.id)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return MessageResponse(message="User deleted successfully")

"""Auth router for local accounts.

Endpoints:
    POST /api/auth/register      - Create an account (pending approval by default)
    POST /api/auth/login         - Exchange email + password for a JWT
    GET  /api/auth/me            - Current user
    POST /api/auth/create-admin  - Bootstrap the first admin account
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from storychain.config import get_config
from storychain.db import get_database
from storychain.errors import AccountStatusError, ConflictError, InvalidCredentialsError

from .dependencies import get_current_user
from .schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    User,
    UserStatus,
)
from .security import create_access_token
from .service import UserService, token_claims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _service() -> UserService:
    return UserService(get_database())


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(request: RegisterRequest) -> RegisterResponse:
    """Create a community account.

    New accounts wait for admin approval unless ``auth.require_approval``
    is disabled.
    """
    needs_approval = get_config().auth.require_approval
    try:
        user = _service().register(
            request.username,
            request.email,
            request.password,
            status=UserStatus.PENDING if needs_approval else UserStatus.APPROVED,
        )
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    message = (
        "Account created successfully. Please wait for admin approval."
        if needs_approval
        else "Account created successfully."
    )
    return RegisterResponse(message=message, user=user)


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest) -> LoginResponse:
    """Verify credentials and return a signed access token."""
    try:
        user = _service().authenticate(request.email, request.password)
    except (InvalidCredentialsError, AccountStatusError) as e:
        raise HTTPException(status_code=401, detail=str(e))

    logger.info("[auth] Login for %s", user.id)
    return LoginResponse(token=create_access_token(token_claims(user)), user=user)


@router.get("/me")
def me(user: User = Depends(get_current_user)) -> dict:
    """Return the account behind the Bearer token."""
    return {"user": user.model_dump(mode="json")}


@router.post("/create-admin", response_model=RegisterResponse, status_code=201)
def create_admin(request: RegisterRequest) -> RegisterResponse:
    """Create the first admin. Refused once any admin exists."""
    try:
        user = _service().create_admin(request.username, request.email, request.password)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info("[auth] Bootstrap admin created: %s", user.id)
    return RegisterResponse(message="Admin account created successfully", user=user)

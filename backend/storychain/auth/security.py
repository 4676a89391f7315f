"""Password hashing and JWT helpers."""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from storychain.config import get_config
from storychain.errors import InvalidCredentialsError

# Bcrypt only looks at the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt (cost from ``auth.bcrypt_rounds``)."""
    rounds = rounds or get_config().auth.bcrypt_rounds
    password_bytes = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed JWT access token."""
    config = get_config()
    to_encode = data.copy()

    if expires_delta is None:
        expires_delta = timedelta(minutes=config.auth.token_expire_minutes)
    to_encode.update({"exp": datetime.utcnow() + expires_delta, "type": "access"})

    return jwt.encode(
        to_encode,
        config.secrets.jwt.secret_key,
        algorithm=config.secrets.jwt.algorithm,
    )


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: Bad signature, expired, or not an access token.
    """
    config = get_config()
    try:
        payload = jwt.decode(
            token,
            config.secrets.jwt.secret_key,
            algorithms=[config.secrets.jwt.algorithm],
        )
    except JWTError as exc:
        raise InvalidCredentialsError("Invalid or expired token") from exc

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidCredentialsError("Invalid token type")
    return payload

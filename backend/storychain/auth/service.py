"""UserService: DuckDB-backed accounts, login and moderation."""
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from storychain.db import Database
from storychain.errors import (
    AccountStatusError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
)

from .schemas import User, UserRole, UserStatus
from .security import hash_password, verify_password

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, username, email, role, status, contributions_count, experience_points, "
    "level, hearts_received, badges, created_at, updated_at"
)

_STATUS_MESSAGES = {
    UserStatus.PENDING: "Account pending approval. Please wait for admin approval.",
    UserStatus.REJECTED: "Account access denied. Contact admin for more information.",
    UserStatus.SUSPENDED: "Account suspended. Contact admin for more information.",
}

XP_PER_CONTRIBUTION = 10
XP_PER_LEVEL = 100


def level_for(experience_points: int) -> int:
    return 1 + max(experience_points, 0) // XP_PER_LEVEL


def row_to_user(row: tuple) -> User:
    return User(
        id=row[0],
        username=row[1],
        email=row[2],
        role=UserRole(row[3]),
        status=UserStatus(row[4]),
        contributionsCount=row[5],
        experiencePoints=row[6],
        level=row[7],
        heartsReceived=row[8],
        badges=list(row[9] or []),
        createdAt=row[10],
        updatedAt=row[11],
    )


class UserService:
    """Account operations over the shared database."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # -----------------------------------------------------------------------
    # Registration & login
    # -----------------------------------------------------------------------

    def register(
        self,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.COMMUNITY,
        status: UserStatus = UserStatus.PENDING,
        require_no_admin: bool = False,
    ) -> User:
        """Create an account.

        With ``require_no_admin`` the insert is refused once any admin exists;
        the check runs in the same transaction as the insert.

        Raises:
            ConflictError: The email or the username is already in use, or an
                admin exists and ``require_no_admin`` is set.
        """
        username = username.strip()
        email = email.strip().lower()
        password_hash = hash_password(password)
        user_id = str(uuid.uuid4())
        now = datetime.utcnow()

        with self._db.transaction() as conn:
            if require_no_admin and conn.execute(
                "SELECT 1 FROM users WHERE role = ?", [UserRole.ADMIN.value]
            ).fetchone():
                raise ConflictError("Admin account already exists")
            if conn.execute("SELECT 1 FROM users WHERE email = ?", [email]).fetchone():
                raise ConflictError("User already exists with this email")
            if conn.execute(
                "SELECT 1 FROM users WHERE lower(username) = lower(?)", [username]
            ).fetchone():
                raise ConflictError("Username is already taken")
            conn.execute(
                """
                INSERT INTO users (id, username, email, password_hash, role, status,
                                   badges, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [user_id, username, email, password_hash, role.value, status.value,
                 [], now, now],
            )

        logger.info("[UserService] Registered %s (%s) role=%s status=%s",
                    username, user_id, role.value, status.value)
        return self.get(user_id)

    def create_admin(self, username: str, email: str, password: str) -> User:
        """Bootstrap the first admin account.

        Raises:
            ConflictError: An admin already exists.
        """
        return self.register(
            username,
            email,
            password,
            role=UserRole.ADMIN,
            status=UserStatus.APPROVED,
            require_no_admin=True,
        )

    def authenticate(self, email: str, password: str) -> User:
        """Check credentials and account status.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            AccountStatusError: The account is pending, suspended or rejected.
        """
        row = self._db.fetchone(
            f"SELECT {_COLUMNS}, password_hash FROM users WHERE email = ?",
            [email.strip().lower()],
        )
        if row is None or not verify_password(password, row[-1]):
            raise InvalidCredentialsError("Invalid email or password")

        user = row_to_user(row[:-1])
        if user.status in _STATUS_MESSAGES:
            logger.info("[UserService] Login refused for %s: status=%s", user.id, user.status.value)
            raise AccountStatusError(_STATUS_MESSAGES[user.status])
        return user

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def find(self, user_id: str) -> Optional[User]:
        row = self._db.fetchone(f"SELECT {_COLUMNS} FROM users WHERE id = ?", [user_id])
        return row_to_user(row) if row else None

    def get(self, user_id: str) -> User:
        user = self.find(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def list_users(self) -> List[User]:
        rows = self._db.fetchall(f"SELECT {_COLUMNS} FROM users ORDER BY created_at ASC")
        return [row_to_user(r) for r in rows]

    # -----------------------------------------------------------------------
    # Moderation
    # -----------------------------------------------------------------------

    def set_status(self, user_id: str, status: UserStatus) -> User:
        self._update_field(user_id, "status", status.value)
        logger.info("[UserService] Status of %s set to %s", user_id, status.value)
        return self.get(user_id)

    def set_role(self, user_id: str, role: UserRole) -> User:
        self._update_field(user_id, "role", role.value)
        logger.info("[UserService] Role of %s set to %s", user_id, role.value)
        return self.get(user_id)

    def delete(self, user_id: str, acting_user_id: str) -> None:
        """Delete an account.

        Raises:
            PermissionDeniedError: An admin tried to delete their own account.
            NotFoundError: No such user.
        """
        if user_id == acting_user_id:
            raise PermissionDeniedError("Cannot delete your own account")
        with self._db.transaction() as conn:
            deleted = conn.execute(
                "DELETE FROM users WHERE id = ? RETURNING id", [user_id]
            ).fetchone()
            if deleted is None:
                raise NotFoundError("User not found")
        logger.info("[UserService] Deleted user %s (by %s)", user_id, acting_user_id)

    def _update_field(self, user_id: str, column: str, value: str) -> None:
        with self._db.transaction() as conn:
            updated = conn.execute(
                f"UPDATE users SET {column} = ?, updated_at = ? WHERE id = ? RETURNING id",
                [value, datetime.utcnow(), user_id],
            ).fetchone()
            if updated is None:
                raise NotFoundError("User not found")


def token_claims(user: User) -> dict:
    """Claims embedded in an access token for *user*."""
    return {
        "sub": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role.value,
        "status": user.status.value,
    }

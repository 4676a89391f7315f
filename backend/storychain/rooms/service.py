"""RoomService: room creation and lookup by id or join code."""
import logging
import secrets
import string
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from storychain.db import Database
from storychain.errors import InvalidInputError, NotFoundError, PermissionDeniedError

from .schemas import Room, RoomCreate

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits

_COLUMNS = "id, name, code, prompt, is_private, is_themed, theme, creator_id, created_at"

# Collisions are astronomically rare; a handful of retries is plenty
_MAX_CODE_ATTEMPTS = 10


def generate_code(length: int) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class RoomService:
    """Room operations over the shared database.

    Args:
        db: Shared database.
        member_count: Callable returning the live member count of a room id.
        code_length: Length of generated join codes.
        max_rooms_per_user: Rooms a single account may create.
    """

    def __init__(
        self,
        db: Database,
        member_count: Callable[[str], int] = lambda room_id: 0,
        code_length: int = 6,
        max_rooms_per_user: int = 10,
    ) -> None:
        self._db = db
        self._member_count = member_count
        self._code_length = code_length
        self._max_rooms_per_user = max_rooms_per_user

    def _to_room(self, row: tuple) -> Room:
        return Room(
            id=row[0],
            name=row[1],
            code=row[2],
            prompt=row[3],
            isPrivate=row[4],
            isThemed=row[5],
            theme=row[6],
            creatorId=row[7],
            memberCount=self._member_count(row[0]),
            createdAt=row[8],
        )

    def create(self, creator_id: str, request: RoomCreate) -> Room:
        """Create a room with a fresh, unique join code.

        Raises:
            InvalidInputError: Themed room without a theme.
            PermissionDeniedError: The creator reached the room limit.
        """
        name = request.name.strip()
        if not name:
            raise InvalidInputError("Room name cannot be empty")
        theme = request.theme.strip() if request.theme else None
        if request.isThemed and not theme:
            raise InvalidInputError("Themed rooms need a theme")

        room_id = str(uuid.uuid4())
        with self._db.transaction() as conn:
            owned = conn.execute(
                "SELECT COUNT(*) FROM rooms WHERE creator_id = ?", [creator_id]
            ).fetchone()[0]
            if owned >= self._max_rooms_per_user:
                raise PermissionDeniedError(
                    f"Room limit reached ({self._max_rooms_per_user} per user)"
                )

            for _ in range(_MAX_CODE_ATTEMPTS):
                code = generate_code(self._code_length)
                if conn.execute("SELECT 1 FROM rooms WHERE code = ?", [code]).fetchone() is None:
                    break
            else:
                raise RuntimeError("Could not allocate a unique room code")

            conn.execute(
                f"INSERT INTO rooms ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [room_id, name, code, request.prompt, request.isPrivate,
                 request.isThemed, theme, creator_id, datetime.utcnow()],
            )

        logger.info("[RoomService] Room %s (%s) created by %s", room_id, code, creator_id)
        return self.get(room_id)

    def find(self, room_id: str) -> Optional[Room]:
        row = self._db.fetchone(f"SELECT {_COLUMNS} FROM rooms WHERE id = ?", [room_id])
        return self._to_room(row) if row else None

    def get(self, room_id: str) -> Room:
        room = self.find(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    def get_by_code(self, code: str) -> Room:
        row = self._db.fetchone(
            f"SELECT {_COLUMNS} FROM rooms WHERE code = ?", [code.strip().upper()]
        )
        if row is None:
            raise NotFoundError("Room not found")
        return self._to_room(row)

    def list_public(self) -> List[Room]:
        rows = self._db.fetchall(
            f"SELECT {_COLUMNS} FROM rooms WHERE NOT is_private ORDER BY created_at DESC"
        )
        return [self._to_room(r) for r in rows]

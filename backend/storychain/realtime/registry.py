"""Room registry for the real-time channel.

Tracks which live connections belong to which room. A connection is a
member of at most one room at a time; joining a new room detaches it
from the previous one. Rooms that lose their last member are dropped.

Thread Safety:
    Designed for a single asyncio event loop. Every mutation completes
    without an ``await``, so concurrent handlers never observe a
    half-applied membership change. It is NOT safe to share across threads.
"""
import logging
from typing import Dict, FrozenSet, List, Optional, Set

from .connection import Connection

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Mapping between room ids and their member connections.

    Invariants:
        - A connection appears in at most one room's member set.
        - ``_room_of[conn] == room`` iff ``conn in _members[room]``.
        - No room maps to an empty member set.
    """

    def __init__(self) -> None:
        self._members: Dict[str, Set[Connection]] = {}
        self._room_of: Dict[Connection, str] = {}

    def register(self, connection: Connection, room_id: str) -> None:
        """Place a connection in a room, detaching it from any previous room.

        Re-registering into the room it is already in is a no-op.
        """
        current = self._room_of.get(connection)
        if current == room_id:
            return
        if current is not None:
            self._detach(connection, current)

        self._members.setdefault(room_id, set()).add(connection)
        self._room_of[connection] = room_id
        logger.debug(
            f"[Registry] {connection.id} joined {room_id} "
            f"(from {current}, {len(self._members[room_id])} member(s))"
        )

    def unregister(self, connection: Connection) -> None:
        """Remove a connection from whatever room it is in. Idempotent."""
        current = self._room_of.pop(connection, None)
        if current is None:
            return
        self._remove_member(connection, current)
        logger.debug(f"[Registry] {connection.id} left {current}")

    def members_of(self, room_id: str) -> FrozenSet[Connection]:
        """Snapshot of a room's members; empty for unknown rooms.

        The snapshot does not change if the registry is mutated afterwards.
        """
        return frozenset(self._members.get(room_id, ()))

    def room_of(self, connection: Connection) -> Optional[str]:
        return self._room_of.get(connection)

    def count(self, room_id: str) -> int:
        return len(self._members.get(room_id, ()))

    def rooms(self) -> List[str]:
        return list(self._members)

    def clear(self) -> None:
        self._members.clear()
        self._room_of.clear()

    def _detach(self, connection: Connection, room_id: str) -> None:
        del self._room_of[connection]
        self._remove_member(connection, room_id)

    def _remove_member(self, connection: Connection, room_id: str) -> None:
        members = self._members.get(room_id)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._members[room_id]
            logger.debug(f"[Registry] Room {room_id} is empty, dropped")


# Process-wide registry shared by the WebSocket endpoint and the HTTP routers
registry = RoomRegistry()

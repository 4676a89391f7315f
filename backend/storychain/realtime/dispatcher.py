"""Fan-out of JSON payloads to every open connection in a room."""
import asyncio
import logging
from typing import Any, Dict, Optional

from .connection import Connection
from .messages import new_story_payload, room_key
from .registry import RoomRegistry, registry

logger = logging.getLogger(__name__)


class BroadcastDispatcher:
    """Delivers payloads to the members of a room.

    The dispatcher reads a snapshot of the room and never mutates the
    registry; connections that fail to receive are left for their own
    handler to unregister when the socket closes.
    """

    def __init__(self, room_registry: RoomRegistry) -> None:
        self.registry = room_registry

    async def broadcast(self, room_id: str, payload: Dict[str, Any]) -> int:
        """Send ``payload`` to every open member of ``room_id`` concurrently.

        Args:
            room_id: Room to deliver to.
            payload: JSON-serializable message.

        Returns:
            Number of connections the payload was delivered to.
        """
        targets = [conn for conn in self.registry.members_of(room_id) if conn.is_open]
        if not targets:
            return 0

        results = await asyncio.gather(
            *[self._safe_send(conn, payload) for conn in targets],
            return_exceptions=True,
        )
        delivered = sum(1 for ok in results if ok is True)
        if delivered < len(targets):
            logger.info(
                f"[Broadcast] {payload.get('type')} to {room_id}: "
                f"{delivered}/{len(targets)} delivered"
            )
        return delivered

    async def announce_story(
        self, story: Dict[str, Any], chain_id: int, room_id: Optional[str]
    ) -> int:
        """Broadcast a committed story as ``new-story`` to its room."""
        return await self.broadcast(room_key(room_id), new_story_payload(story, chain_id))

    async def _safe_send(self, connection: Connection, payload: Dict[str, Any]) -> bool:
        try:
            await connection.send_json(payload)
            return True
        except Exception as e:
            logger.debug(f"[Broadcast] Failed to send to {connection.id}: {e}")
            return False


dispatcher = BroadcastDispatcher(registry)

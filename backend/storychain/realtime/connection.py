"""A single live WebSocket channel and the identity attached to it."""
import uuid
from typing import Any, Dict, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState


class Connection:
    """One client session on the real-time channel.

    ``user_id`` and ``room_id`` stay None until the client sends join-room;
    only the connection's own handler assigns them. Instances hash by
    identity so they can live in registry sets.
    """

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None) -> None:
        self.id = connection_id or str(uuid.uuid4())
        self.websocket = websocket
        self.user_id: Optional[str] = None
        self.room_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        """True while both sides of the channel are still connected."""
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, payload: Dict[str, Any]) -> None:
        await self.websocket.send_json(payload)

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, user_id={self.user_id!r}, room_id={self.room_id!r})"

"""Per-connection state machine for the real-time channel.

States:
    OPEN_UNJOINED -> OPEN_JOINED   on a valid join-room
    OPEN_JOINED   -> OPEN_JOINED   on join-room to any room (replace)
    any           -> CLOSED        when the channel closes, for any reason

Frames are processed one at a time, in arrival order. A bad frame is
logged and dropped without touching the connection's state.
"""
import logging
from enum import Enum
from typing import Any, Dict, Optional, Union

from fastapi import WebSocket, WebSocketDisconnect

from .connection import Connection
from .dispatcher import BroadcastDispatcher
from .messages import (
    JoinRoomMessage,
    MalformedMessageError,
    StoryAddedMessage,
    UnrecognizedMessageError,
    joined_payload,
    new_story_payload,
    parse_inbound,
)
from .registry import RoomRegistry

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    OPEN_UNJOINED = "open_unjoined"
    OPEN_JOINED = "open_joined"
    CLOSED = "closed"


class ConnectionHandler:
    """Owns one Connection from accept to close."""

    def __init__(
        self,
        websocket: WebSocket,
        room_registry: RoomRegistry,
        broadcast_dispatcher: BroadcastDispatcher,
    ) -> None:
        self.connection = Connection(websocket)
        self.registry = room_registry
        self.dispatcher = broadcast_dispatcher
        self.state = ConnectionState.OPEN_UNJOINED

    async def run(self) -> None:
        """Accept the socket and process frames until it closes."""
        websocket = self.connection.websocket
        await websocket.accept()
        logger.info(f"[WS] Connection {self.connection.id} opened")

        try:
            while True:
                raw = await self._receive_frame()
                if raw is None:
                    continue
                await self.handle_text(raw)
        except WebSocketDisconnect as e:
            logger.info(
                f"[WS] Connection {self.connection.id} closed "
                f"(code={e.code}, room={self.connection.room_id})"
            )
        finally:
            self.close()

    async def _receive_frame(self) -> Optional[Union[str, bytes]]:
        message = await self.connection.websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes")

    async def handle_text(self, raw: Union[str, bytes]) -> None:
        """Interpret one inbound frame."""
        if self.state is ConnectionState.CLOSED:
            return

        try:
            message = parse_inbound(raw)
        except UnrecognizedMessageError as e:
            logger.warning(f"[WS] {self.connection.id}: dropped frame, {e}")
            return
        except MalformedMessageError as e:
            logger.warning(f"[WS] {self.connection.id}: dropped malformed frame, {e}")
            return

        if isinstance(message, JoinRoomMessage):
            await self._on_join(message)
        elif isinstance(message, StoryAddedMessage):
            await self._on_story_added(message)

    def close(self) -> None:
        """Unregister unconditionally and enter the terminal state. Idempotent."""
        self.registry.unregister(self.connection)
        self.state = ConnectionState.CLOSED

    async def _on_join(self, message: JoinRoomMessage) -> None:
        conn = self.connection
        previous = conn.room_id
        self.registry.register(conn, message.roomId)
        conn.user_id = message.userId
        conn.room_id = message.roomId
        self.state = ConnectionState.OPEN_JOINED

        if previous and previous != message.roomId:
            logger.info(f"[WS] {message.userId} moved {previous} -> {message.roomId}")
        else:
            logger.info(f"[WS] {message.userId} joined {message.roomId}")

        await self._send(joined_payload(message.roomId, message.userId, conn.id))

    async def _on_story_added(self, message: StoryAddedMessage) -> None:
        room_id = self.registry.room_of(self.connection)
        if room_id is None:
            logger.debug(f"[WS] {self.connection.id}: story-added before join-room, dropped")
            return
        delivered = await self.dispatcher.broadcast(
            room_id, new_story_payload(message.story, message.chainId)
        )
        logger.debug(f"[WS] Relayed chain {message.chainId} to {delivered} peer(s) in {room_id}")

    async def _send(self, payload: Dict[str, Any]) -> None:
        if not self.connection.is_open:
            return
        try:
            await self.connection.send_json(payload)
        except Exception as e:
            logger.debug(f"[WS] Failed to send {payload.get('type')} to {self.connection.id}: {e}")

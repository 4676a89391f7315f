"""WebSocket endpoint for live story updates.

    WebSocket /ws - join a room and receive new-story notifications
"""
from fastapi import APIRouter, WebSocket

from .dispatcher import dispatcher
from .handler import ConnectionHandler
from .registry import registry

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def story_socket(websocket: WebSocket) -> None:
    await ConnectionHandler(websocket, registry, dispatcher).run()

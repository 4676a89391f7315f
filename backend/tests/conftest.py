"""Shared test fixtures and configuration for backend tests."""
import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from storychain.auth.schemas import UserRole, UserStatus
from storychain.auth.security import create_access_token
from storychain.auth.service import UserService, token_claims
from storychain.config import IN_MEMORY_DB, AppConfig, AuthSettings, DatabaseSettings, reset_config, set_config
from storychain.db import Database
from storychain.main import app
from storychain.realtime.registry import registry


@pytest.fixture(autouse=True)
def in_memory_database():
    """Fresh in-memory DuckDB and default config for every test.

    bcrypt runs at its minimum cost so that account-heavy tests stay fast.
    """
    Database.reset_instance()
    set_config(AppConfig(
        database=DatabaseSettings(path=IN_MEMORY_DB),
        auth=AuthSettings(bcrypt_rounds=4),
    ))
    db = Database.get_instance(IN_MEMORY_DB)
    yield db
    registry.clear()
    Database.reset_instance()
    reset_config()


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app."""
    return TestClient(app)


def _on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


@pytest.fixture
def track_event_loop(monkeypatch):
    """Wrap ``target.name`` and record, per call, whether it ran on the event loop.

    Blocking work (bcrypt, DuckDB, rendering) must land in the threadpool,
    where there is no running loop.
    """

    def _track(target: Any, name: str) -> List[bool]:
        calls: List[bool] = []
        original = getattr(target, name)

        def wrapper(*args, **kwargs):
            calls.append(_on_event_loop())
            return original(*args, **kwargs)

        monkeypatch.setattr(target, name, wrapper)
        return calls

    return _track


@pytest.fixture
def make_user(in_memory_database):
    """Create an account directly in the database and return (user, auth headers)."""

    def _make(
        username: str = "alice",
        role: UserRole = UserRole.COMMUNITY,
        status: UserStatus = UserStatus.APPROVED,
        password: str = "secret123",
    ):
        user = UserService(in_memory_database).register(
            username, f"{username}@example.com", password, role=role, status=status
        )
        token = create_access_token(token_claims(user))
        return user, {"Authorization": f"Bearer {token}"}

    return _make


class FakeWebSocket:
    """Stand-in for a Starlette WebSocket.

    ``inbox`` holds text frames returned by ``receive()`` in order; once it
    is drained the socket reports a client disconnect.
    """

    def __init__(self, inbox: Optional[List[Any]] = None, fail_sends: bool = False) -> None:
        self.inbox = list(inbox or [])
        self.sent: List[Dict[str, Any]] = []
        self.fail_sends = fail_sends
        self.accepted = False
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING

    def open(self) -> "FakeWebSocket":
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        return self

    def drop(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED

    async def accept(self) -> None:
        self.accepted = True
        self.open()

    async def receive(self) -> Dict[str, Any]:
        if not self.inbox:
            self.drop()
            return {"type": "websocket.disconnect", "code": 1000}
        frame = self.inbox.pop(0)
        if isinstance(frame, bytes):
            return {"type": "websocket.receive", "bytes": frame}
        if not isinstance(frame, str):
            frame = json.dumps(frame)
        return {"type": "websocket.receive", "text": frame}

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(data)


@pytest.fixture
def fake_ws():
    """Factory for open FakeWebSocket instances."""

    def _make(inbox: Optional[List[Any]] = None, fail_sends: bool = False) -> FakeWebSocket:
        return FakeWebSocket(inbox, fail_sends=fail_sends).open()

    return _make

"""Wire format of the real-time channel.

Inbound frames are JSON objects tagged by ``type``:
    - join-room:   {"type": "join-room", "userId": str, "roomId": str}
    - story-added: {"type": "story-added", "story": {...}, "chainId": int}

Outbound frames:
    - joined:      acknowledgement of a join-room
    - new-story:   {"type": "new-story", "story": {...}, "chainId": int}
"""
import json
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

# Stories without a room belong to the global chain and broadcast here
GLOBAL_ROOM_ID = "global"


class JoinRoomMessage(BaseModel):
    """Establish or replace this connection's room membership."""
    type: Literal["join-room"]
    userId: str = Field(..., min_length=1)
    roomId: str = Field(..., min_length=1)


class StoryAddedMessage(BaseModel):
    """Client-originated trigger to relay a story to the sender's room."""
    type: Literal["story-added"]
    story: Dict[str, Any]
    chainId: int


InboundMessage = Annotated[
    Union[JoinRoomMessage, StoryAddedMessage],
    Field(discriminator="type"),
]

KNOWN_TYPES = frozenset({"join-room", "story-added"})

_inbound = TypeAdapter(InboundMessage)


class MalformedMessageError(ValueError):
    """An inbound frame that is not JSON, not an object, or fails its schema."""


class UnrecognizedMessageError(MalformedMessageError):
    """A well-formed object whose ``type`` this server does not handle."""

    def __init__(self, message_type: Any) -> None:
        super().__init__(f"unrecognized message type: {message_type!r}")
        self.message_type = message_type


def parse_inbound(raw: Union[str, bytes]) -> Union[JoinRoomMessage, StoryAddedMessage]:
    """Decode one inbound frame.

    Raises:
        UnrecognizedMessageError: The ``type`` tag is missing or unknown.
        MalformedMessageError: Anything else wrong with the frame.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedMessageError(f"invalid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedMessageError("frame is not a JSON object")

    message_type = data.get("type")
    if message_type not in KNOWN_TYPES:
        raise UnrecognizedMessageError(message_type)

    try:
        return _inbound.validate_python(data)
    except ValidationError as exc:
        raise MalformedMessageError(
            f"invalid {message_type} payload: {exc.error_count()} error(s)"
        ) from exc


def room_key(room_id: Optional[str]) -> str:
    """Registry key for a story's room (None means the global chain)."""
    return room_id or GLOBAL_ROOM_ID


def new_story_payload(story: Dict[str, Any], chain_id: int) -> Dict[str, Any]:
    return {"type": "new-story", "story": story, "chainId": chain_id}


def joined_payload(room_id: str, user_id: str, connection_id: str) -> Dict[str, Any]:
    return {
        "type": "joined",
        "roomId": room_id,
        "userId": user_id,
        "connectionId": connection_id,
    }

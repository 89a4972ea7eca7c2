"""Broker names, message envelopes and queue-request (de)serialisation."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .errors import InternalError, InvalidQueueRequest
from .models import QueueRequest, _format_timestamp, _parse_timestamp, current_timestamp

QUEUE_REQUEST_QUEUE = "matchmaking.queue_requests"
PLAYER_EVENTS_EXCHANGE = "matchmaking.player_events"
GAME_EVENTS_EXCHANGE = "matchmaking.game_events"

PLAYER_JOINED_ROUTING_KEY = "player.joined"
PLAYER_LEFT_ROUTING_KEY = "player.left"
GAME_STARTING_ROUTING_KEY = "game.starting"


class MessageKind(Enum):
    """The kinds of message carried over the broker."""

    QUEUE_REQUEST = "QueueRequest"
    PLAYER_JOINED_LOBBY = "PlayerJoinedLobby"
    PLAYER_LEFT_LOBBY = "PlayerLeftLobby"
    GAME_STARTING = "GameStarting"


_ROUTING_KEYS = {
    MessageKind.QUEUE_REQUEST: "queue.request",
    MessageKind.PLAYER_JOINED_LOBBY: PLAYER_JOINED_ROUTING_KEY,
    MessageKind.PLAYER_LEFT_LOBBY: PLAYER_LEFT_ROUTING_KEY,
    MessageKind.GAME_STARTING: GAME_STARTING_ROUTING_KEY,
}


def _jsonable(message: Any) -> Any:
    to_dict = getattr(message, "to_dict", None)
    return to_dict() if callable(to_dict) else message


def _dumps(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), allow_nan=False).encode("utf-8")


@dataclass
class MessageEnvelope:
    """A payload wrapped with correlation id, timestamp and routing key."""

    payload: Any
    routing_key: str
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=current_timestamp)

    def to_bytes(self) -> bytes:
        """Encode the envelope as compact JSON."""
        try:
            return _dumps(
                {
                    "payload": _jsonable(self.payload),
                    "correlation_id": self.correlation_id,
                    "timestamp": _format_timestamp(self.timestamp),
                    "routing_key": self.routing_key,
                }
            )
        except (TypeError, ValueError) as exc:
            raise InternalError(f"Failed to serialize message: {exc}") from exc

    @classmethod
    def from_bytes(cls, data: bytes) -> MessageEnvelope:
        """Decode an envelope; the payload is left as decoded JSON."""
        try:
            raw = json.loads(data)
            return cls(
                payload=raw["payload"],
                routing_key=str(raw["routing_key"]),
                correlation_id=str(raw["correlation_id"]),
                timestamp=_parse_timestamp(raw["timestamp"]),
            )
        except (TypeError, ValueError, KeyError) as exc:
            raise InvalidQueueRequest(f"Failed to deserialize message: {exc}") from exc


def validate_queue_request(request: QueueRequest) -> None:
    """Raise InvalidQueueRequest if the request is not acceptable."""
    if not request.player_id:
        raise InvalidQueueRequest("Player ID cannot be empty")
    if request.current_rating.rating < 0.0:
        raise InvalidQueueRequest("Rating cannot be negative")
    if request.current_rating.uncertainty < 0.0:
        raise InvalidQueueRequest("Uncertainty cannot be negative")


def serialize_queue_request(request: QueueRequest) -> bytes:
    """Validate a queue request and encode it as JSON bytes."""
    validate_queue_request(request)
    try:
        return _dumps(request.to_dict())
    except (TypeError, ValueError) as exc:
        raise InternalError(f"Failed to serialize queue request: {exc}") from exc


def deserialize_queue_request(data: bytes) -> QueueRequest:
    """Decode and validate a queue request from JSON bytes."""
    try:
        request = QueueRequest.from_dict(json.loads(data))
    except (TypeError, ValueError, KeyError) as exc:
        raise InvalidQueueRequest(f"Failed to deserialize queue request: {exc}") from exc
    validate_queue_request(request)
    return request


def serialize_message(message: Any) -> bytes:
    """Encode any message (or plain JSON value) as JSON bytes."""
    try:
        return _dumps(_jsonable(message))
    except (TypeError, ValueError) as exc:
        raise InternalError(f"Failed to serialize message: {exc}") from exc


def get_routing_key(kind: MessageKind) -> str:
    """Return the routing key used for a kind of message."""
    return _ROUTING_KEYS[MessageKind(kind)]
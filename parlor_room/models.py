"""Core matchmaking data types and their JSON-ready forms."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class PlayerType(str, Enum):
    """Whether a participant is a person or a bot."""

    HUMAN = "Human"
    BOT = "Bot"


class LobbyType(str, Enum):
    """Kinds of lobby a player can queue for."""

    GENERAL = "General"
    ALL_BOT = "AllBot"


def current_timestamp() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def generate_lobby_id() -> uuid.UUID:
    """Return a fresh random lobby identifier."""
    return uuid.uuid4()


_ISO_PARTS = re.compile(r"^(.*?T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(.*)$")


def _format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(text: Any) -> datetime:
    if not isinstance(text, str):
        raise TypeError(f"timestamp must be a string, not {type(text).__name__}")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    match = _ISO_PARTS.match(text)
    if match:
        fraction = (match.group(2) or "")[:6]
        text = match.group(1) + (f".{fraction.ljust(6, '0')}" if fraction else "") + match.group(3)
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass
class PlayerRating:
    """A skill rating with its uncertainty."""

    rating: float
    uncertainty: float

    def to_dict(self) -> dict[str, Any]:
        return {"rating": self.rating, "uncertainty": self.uncertainty}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PlayerRating:
        return cls(rating=float(data["rating"]), uncertainty=float(data["uncertainty"]))


@dataclass
class Player:
    """A participant seated in a lobby."""

    id: str
    player_type: PlayerType
    rating: PlayerRating
    joined_at: datetime = field(default_factory=current_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "player_type": self.player_type.value,
            "rating": self.rating.to_dict(),
            "joined_at": _format_timestamp(self.joined_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Player:
        return cls(
            id=str(data["id"]),
            player_type=PlayerType(data["player_type"]),
            rating=PlayerRating.from_dict(data["rating"]),
            joined_at=_parse_timestamp(data["joined_at"]),
        )


@dataclass
class QueueRequest:
    """A request from a human or bot to enter matchmaking."""

    player_id: str
    player_type: PlayerType
    lobby_type: LobbyType
    current_rating: PlayerRating
    timestamp: datetime = field(default_factory=current_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "player_type": self.player_type.value,
            "lobby_type": self.lobby_type.value,
            "current_rating": self.current_rating.to_dict(),
            "timestamp": _format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QueueRequest:
        return cls(
            player_id=str(data["player_id"]),
            player_type=PlayerType(data["player_type"]),
            lobby_type=LobbyType(data["lobby_type"]),
            current_rating=PlayerRating.from_dict(data["current_rating"]),
            timestamp=_parse_timestamp(data["timestamp"]),
        )


@dataclass
class PlayerJoinedLobby:
    """Event emitted when a player enters a lobby."""

    lobby_id: uuid.UUID
    player_id: str
    player_type: PlayerType
    current_players: list[Player] = field(default_factory=list)
    timestamp: datetime = field(default_factory=current_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lobby_id": str(self.lobby_id),
            "player_id": self.player_id,
            "player_type": self.player_type.value,
            "current_players": [player.to_dict() for player in self.current_players],
            "timestamp": _format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PlayerJoinedLobby:
        return cls(
            lobby_id=uuid.UUID(str(data["lobby_id"])),
            player_id=str(data["player_id"]),
            player_type=PlayerType(data["player_type"]),
            current_players=[Player.from_dict(item) for item in data["current_players"]],
            timestamp=_parse_timestamp(data["timestamp"]),
        )
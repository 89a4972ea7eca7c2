"""Exception types raised by the matchmaking service."""

from __future__ import annotations


class MatchmakingError(Exception):
    """Base class for every matchmaking failure."""


class AmqpConnectionFailed(MatchmakingError):
    """The message broker could not be reached or used."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"AMQP connection failed: {message}")


class InvalidQueueRequest(MatchmakingError):
    """A queue request was malformed or failed validation."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid queue request: {reason}")


class LobbyNotFound(MatchmakingError):
    """No lobby exists with the given identifier."""

    def __init__(self, lobby_id: str) -> None:
        self.lobby_id = str(lobby_id)
        super().__init__(f"Lobby not found: {self.lobby_id}")


class LobbyFull(MatchmakingError):
    """The lobby has no free seat left."""

    def __init__(self, lobby_id: str) -> None:
        self.lobby_id = str(lobby_id)
        super().__init__(f"Lobby is full: {self.lobby_id}")


class PlayerNotFound(MatchmakingError):
    """No player exists with the given identifier."""

    def __init__(self, player_id: str) -> None:
        self.player_id = player_id
        super().__init__(f"Player not found: {player_id}")


class RatingCalculationFailed(MatchmakingError):
    """A rating could not be computed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Rating calculation failed: {reason}")


class WaitTimeCalculationFailed(MatchmakingError):
    """A wait time could not be computed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Wait time calculation failed: {reason}")


class ConfigurationError(MatchmakingError):
    """A configuration value is invalid."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Configuration error: {message}")


class InternalError(MatchmakingError):
    """An unexpected failure inside the service."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Internal service error: {message}")
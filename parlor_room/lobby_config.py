"""Lobby behaviour settings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .errors import ConfigurationError


@dataclass
class LobbyConfig:
    """Settings that govern how lobbies fill and start."""

    capacity: int = 4
    wait_time_seconds: int = 120
    enable_rating_matching: bool = False
    max_rating_difference: float = 300.0
    prioritize_humans: bool = True
    min_human_players: int = 0
    allow_bot_backfill: bool = True
    immediate_start_when_full: bool = True
    lobby_cleanup_timeout_seconds: int = 600
    match_quality_threshold: float = 0.3

    @classmethod
    def competitive(cls) -> LobbyConfig:
        """Tight rating bands and a higher quality bar."""
        return cls(
            enable_rating_matching=True,
            max_rating_difference=200.0,
            match_quality_threshold=0.7,
            wait_time_seconds=180,
            min_human_players=2,
        )

    @classmethod
    def casual(cls) -> LobbyConfig:
        """Wide rating bands and quick matching."""
        return cls(
            enable_rating_matching=False,
            max_rating_difference=500.0,
            match_quality_threshold=0.1,
            wait_time_seconds=60,
            min_human_players=0,
        )

    @classmethod
    def bot_only(cls) -> LobbyConfig:
        """Bot-only lobbies that start at once with no backfill."""
        return cls(
            prioritize_humans=False,
            min_human_players=0,
            allow_bot_backfill=False,
            immediate_start_when_full=True,
            wait_time_seconds=0,
        )

    def wait_time(self) -> timedelta:
        return timedelta(seconds=self.wait_time_seconds)

    def cleanup_timeout(self) -> timedelta:
        return timedelta(seconds=self.lobby_cleanup_timeout_seconds)

    def validate(self) -> None:
        """Raise ConfigurationError if any setting is out of range."""
        if self.capacity == 0:
            raise ConfigurationError("Lobby capacity must be greater than 0")
        if self.capacity > 8:
            raise ConfigurationError("Lobby capacity cannot exceed 8 players")
        if self.min_human_players > self.capacity:
            raise ConfigurationError("Minimum human players cannot exceed lobby capacity")
        if self.max_rating_difference < 0.0:
            raise ConfigurationError("Maximum rating difference must be non-negative")
        if not 0.0 <= self.match_quality_threshold <= 1.0:
            raise ConfigurationError("Match quality threshold must be between 0.0 and 1.0")
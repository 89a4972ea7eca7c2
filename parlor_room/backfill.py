"""Automatic addition of bots to General lobbies whose human wait has run out."""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Protocol, Sequence
from uuid import UUID

from .bot_provider import BotProvider, BotSelectionCriteria
from .errors import ConfigurationError, InternalError
from .models import LobbyType, Player, PlayerRating, PlayerType, current_timestamp

logger = logging.getLogger(__name__)


class _LobbySettings(Protocol):
    lobby_type: LobbyType
    capacity: int


class _Lobby(Protocol):
    """What the backfill logic needs from a lobby."""

    id: UUID
    config: _LobbySettings
    players: Sequence[Player]
    created_at: Optional[datetime]

    def is_full(self) -> bool: ...

    def needs_backfill(self) -> bool: ...

    def add_player(self, player: Player) -> Any: ...


class _WaitTimeProvider(Protocol):
    def get_wait_time(self, lobby_type: LobbyType, player_type: PlayerType) -> timedelta: ...


class _RatingCalculator(Protocol):
    def get_initial_rating(self) -> PlayerRating: ...


@dataclass
class BackfillConfig:
    """How and when bots are added to lobbies."""

    max_rating_tolerance: float = 300.0
    min_humans_for_backfill: int = 1
    max_bots_per_backfill: int = 3
    backfill_cooldown_seconds: int = 30
    enabled: bool = True

    @classmethod
    def aggressive(cls) -> BackfillConfig:
        """Fill lobbies faster at the cost of balance."""
        return cls(
            max_rating_tolerance=500.0,
            min_humans_for_backfill=1,
            max_bots_per_backfill=3,
            backfill_cooldown_seconds=15,
            enabled=True,
        )

    @classmethod
    def conservative(cls) -> BackfillConfig:
        """Keep games balanced at the cost of waiting longer."""
        return cls(
            max_rating_tolerance=200.0,
            min_humans_for_backfill=2,
            max_bots_per_backfill=2,
            backfill_cooldown_seconds=60,
            enabled=True,
        )

    def validate(self) -> None:
        """Raise ConfigurationError if a setting is out of range."""
        if self.max_rating_tolerance <= 0.0:
            raise ConfigurationError("max_rating_tolerance must be positive")
        if self.min_humans_for_backfill == 0:
            raise ConfigurationError("min_humans_for_backfill must be at least 1")
        if self.max_bots_per_backfill == 0:
            raise ConfigurationError("max_bots_per_backfill must be at least 1")


class BackfillTrigger(Enum):
    """Why a backfill was started."""

    WAIT_TIME_EXPIRED = "WaitTimeExpired"
    MANUAL = "Manual"
    EXTENDED_WAIT = "ExtendedWait"


@dataclass
class BackfillResult:
    """Outcome of one backfill operation."""

    lobby_id: UUID
    trigger: BackfillTrigger
    added_bots: list[Player] = field(default_factory=list)
    timestamp: datetime = field(default_factory=current_timestamp)
    lobby_full: bool = False


@dataclass
class BackfillStats:
    """Running totals over backfill operations."""

    total_backfills: int = 0
    successful_backfills: int = 0
    failed_backfills: int = 0
    bots_added: int = 0
    lobbies_filled: int = 0
    last_backfill: Optional[datetime] = None


class BackfillManager(ABC):
    """Decides when lobbies need bots and adds them."""

    config: BackfillConfig

    @abstractmethod
    def needs_backfill(self, lobby: _Lobby) -> Optional[BackfillTrigger]:
        """The reason the lobby should be backfilled now, or None."""

    @abstractmethod
    def backfill_lobby(
        self, lobby_id: UUID, lobby: _Lobby, trigger: BackfillTrigger
    ) -> BackfillResult:
        """Add bots to the lobby."""

    @abstractmethod
    def update_config(self, config: BackfillConfig) -> None:
        """Replace the configuration after validating it."""

    @abstractmethod
    def get_stats(self) -> BackfillStats:
        """A snapshot of the statistics."""


def _humans(lobby: _Lobby) -> list[Player]:
    return [p for p in lobby.players if p.player_type == PlayerType.HUMAN]


class DefaultBackfillManager(BackfillManager):
    """Backfills lobbies with bots chosen near the humans' average rating."""

    def __init__(
        self,
        config: BackfillConfig,
        bot_provider: BotProvider,
        wait_time_provider: _WaitTimeProvider,
        rating_calculator: _RatingCalculator,
    ) -> None:
        config.validate()
        self.config = config
        self.bot_provider = bot_provider
        self.wait_time_provider = wait_time_provider
        self.rating_calculator = rating_calculator
        self._stats = BackfillStats()
        self._last_backfill_times: dict[UUID, datetime] = {}

    def _target_rating(self, lobby: _Lobby) -> Optional[float]:
        ratings = [p.rating.rating for p in _humans(lobby)]
        if not ratings:
            return None
        return sum(ratings) / len(ratings)

    def _bots_needed(self, lobby: _Lobby) -> int:
        needed = max(lobby.config.capacity - len(lobby.players), 0)
        return min(needed, self.config.max_bots_per_backfill)

    def _cooldown_expired(self, lobby_id: UUID) -> bool:
        last = self._last_backfill_times.get(lobby_id)
        if last is None:
            return True
        cooldown = timedelta(seconds=self.config.backfill_cooldown_seconds)
        return current_timestamp() > last + cooldown

    def _record(self, result: BackfillResult, success: bool) -> None:
        self._stats.total_backfills += 1
        if success:
            self._stats.successful_backfills += 1
            self._stats.bots_added += len(result.added_bots)
            if result.lobby_full:
                self._stats.lobbies_filled += 1
        else:
            self._stats.failed_backfills += 1
        self._stats.last_backfill = result.timestamp
        self._last_backfill_times[result.lobby_id] = result.timestamp

    def _release(self, bot_ids: list[str]) -> None:
        try:
            self.bot_provider.release_bots(bot_ids)
        except Exception as exc:
            logger.warning("Failed to release bots %s: %s", bot_ids, exc)

    def needs_backfill(self, lobby: _Lobby) -> Optional[BackfillTrigger]:
        if not self.config.enabled:
            return None
        if lobby.config.lobby_type != LobbyType.GENERAL:
            return None
        if lobby.is_full():
            return None
        if len(_humans(lobby)) < self.config.min_humans_for_backfill:
            return None
        if not self._cooldown_expired(lobby.id):
            return None
        if lobby.needs_backfill():
            logger.debug("Lobby %s needs backfill: wait time expired", lobby.id)
            return BackfillTrigger.WAIT_TIME_EXPIRED

        wait_time = self.wait_time_provider.get_wait_time(LobbyType.GENERAL, PlayerType.HUMAN)
        created_at = lobby.created_at
        if created_at is not None and current_timestamp() - created_at > wait_time * 2:
            logger.debug("Lobby %s needs backfill: extended wait time", lobby.id)
            return BackfillTrigger.EXTENDED_WAIT
        return None

    def backfill_lobby(
        self, lobby_id: UUID, lobby: _Lobby, trigger: BackfillTrigger
    ) -> BackfillResult:
        logger.info("Starting backfill for lobby %s (trigger: %s)", lobby_id, trigger.value)
        result = BackfillResult(lobby_id=lobby_id, trigger=trigger)

        bots_needed = self._bots_needed(lobby)
        if bots_needed == 0:
            logger.info("No bots needed for lobby %s", lobby_id)
            return result

        target_rating = self._target_rating(lobby)
        if target_rating is None:
            logger.warning("No human players found in lobby %s for rating calculation", lobby_id)
            raise InternalError("Cannot calculate target rating without human players")

        existing_bots = [p.id for p in lobby.players if p.player_type == PlayerType.BOT]
        criteria = BotSelectionCriteria.for_rating(
            target_rating, self.config.max_rating_tolerance, bots_needed
        ).excluding(existing_bots)
        logger.debug(
            "Selecting %d bots around rating %.1f for lobby %s",
            bots_needed,
            target_rating,
            lobby_id,
        )

        selected = self.bot_provider.select_backfill_bots(criteria)
        if not selected:
            logger.warning("No suitable bots available for lobby %s", lobby_id)
            raise InternalError("No suitable bots available for backfilling")

        initial = self.rating_calculator.get_initial_rating()
        logger.debug(
            "Using rating calculator with initial rating %.1f for backfill validation",
            initial.rating,
        )
        for bot in selected:
            if abs(bot.rating.rating - target_rating) > self.config.max_rating_tolerance * 2.0:
                logger.debug(
                    "Bot %s rating %.1f is outside tolerance for target %.1f",
                    bot.id,
                    bot.rating.rating,
                    target_rating,
                )

        bot_ids = [bot.id for bot in selected]
        self.bot_provider.reserve_bots(bot_ids)

        added: list[Player] = []
        for bot in selected:
            try:
                lobby.add_player(bot)
            except Exception as exc:
                logger.warning("Failed to add bot %s to lobby %s: %s", bot.id, lobby_id, exc)
                self._release([bot.id])
            else:
                logger.info(
                    "Added bot %s (rating: %.1f) to lobby %s",
                    bot.id,
                    bot.rating.rating,
                    lobby_id,
                )
                added.append(bot)

        result.added_bots = added
        result.lobby_full = lobby.is_full()

        if not added:
            self._release(bot_ids)
            raise InternalError("Failed to add any bots to lobby")

        logger.info(
            "Backfill completed for lobby %s: added %d bots, lobby full: %s",
            lobby_id,
            len(added),
            result.lobby_full,
        )
        self._record(result, True)
        return result

    def update_config(self, config: BackfillConfig) -> None:
        config.validate()
        self.config = config

    def get_stats(self) -> BackfillStats:
        return dataclasses.replace(self._stats)


class MockBackfillManager(BackfillManager):
    """Backfill manager with scripted answers, for tests."""

    def __init__(self, config: BackfillConfig) -> None:
        self.config = config
        self.should_need_backfill = True
        self.should_succeed = True
        self._stats = BackfillStats()

    def needs_backfill(self, lobby: _Lobby) -> Optional[BackfillTrigger]:
        if (
            self.should_need_backfill
            and lobby.config.lobby_type == LobbyType.GENERAL
            and not lobby.is_full()
        ):
            return BackfillTrigger.MANUAL
        return None

    def backfill_lobby(
        self, lobby_id: UUID, lobby: _Lobby, trigger: BackfillTrigger
    ) -> BackfillResult:
        if not self.should_succeed:
            raise InternalError("Mock backfill failure")
        return BackfillResult(
            lobby_id=lobby_id,
            trigger=trigger,
            added_bots=[
                Player(
                    id="mock_bot",
                    player_type=PlayerType.BOT,
                    rating=PlayerRating(rating=1500.0, uncertainty=200.0),
                )
            ],
            lobby_full=False,
        )

    def update_config(self, config: BackfillConfig) -> None:
        config.validate()
        self.config = config

    def get_stats(self) -> BackfillStats:
        return dataclasses.replace(self._stats)
"""Bot availability, selection and reservation for backfilling lobbies."""

from __future__ import annotations

import dataclasses
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .errors import InvalidQueueRequest
from .models import Player, PlayerRating, PlayerType

_FLOAT_MAX = sys.float_info.max


@dataclass
class BotSelectionCriteria:
    """What a backfill needs from the pool of bots."""

    count: int
    rating_range: tuple[float, float] = (0.0, _FLOAT_MAX)
    uncertainty_range: tuple[float, float] = (0.0, _FLOAT_MAX)
    preferred_rating: Optional[float] = None
    exclude_bots: list[str] = field(default_factory=list)

    @classmethod
    def for_rating(
        cls, target_rating: float, rating_tolerance: float, count: int
    ) -> BotSelectionCriteria:
        """Bots within a tolerance of a target rating, closest first."""
        return cls(
            count=count,
            rating_range=(target_rating - rating_tolerance, target_rating + rating_tolerance),
            uncertainty_range=(0.0, _FLOAT_MAX),
            preferred_rating=target_rating,
        )

    @classmethod
    def any_available(cls, count: int) -> BotSelectionCriteria:
        """Any bots at all, in no particular order."""
        return cls(count=count)

    def excluding(self, bot_ids: Iterable[str]) -> BotSelectionCriteria:
        """A copy of these criteria that leaves out the given bots."""
        return dataclasses.replace(self, exclude_bots=list(bot_ids))

    def accepts(self, bot: Player) -> bool:
        """Whether a bot falls inside the rating and uncertainty ranges and is not excluded."""
        if bot.id in self.exclude_bots:
            return False
        low, high = self.rating_range
        if not low <= bot.rating.rating <= high:
            return False
        low, high = self.uncertainty_range
        return low <= bot.rating.uncertainty <= high


class BotProvider(ABC):
    """Source of bots for automatic backfilling and active queuing."""

    @abstractmethod
    def select_backfill_bots(self, criteria: BotSelectionCriteria) -> list[Player]:
        """Choose bots that meet the criteria."""

    @abstractmethod
    def get_bot(self, bot_id: str) -> Optional[Player]:
        """Look a bot up by id."""

    @abstractmethod
    def reserve_bots(self, bot_ids: Iterable[str]) -> None:
        """Mark bots as in use."""

    @abstractmethod
    def release_bots(self, bot_ids: Iterable[str]) -> None:
        """Make reserved bots available again."""

    @abstractmethod
    def available_bot_count(self) -> int:
        """Number of bots not currently reserved."""

    @abstractmethod
    def is_bot_available(self, bot_id: str) -> bool:
        """Whether a bot exists and is not reserved."""


_TEST_BOTS = (
    ("testbot1", 1200.0, 180.0),
    ("testbot2", 1400.0, 160.0),
    ("testbot3", 1500.0, 200.0),
    ("testbot4", 1600.0, 150.0),
    ("testbot5", 1800.0, 170.0),
    ("weakbot1", 1000.0, 250.0),
    ("strongbot1", 2000.0, 120.0),
    ("newbot1", 1500.0, 350.0),
)


class MockBotProvider(BotProvider):
    """In-memory bot pool for tests and development."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._bots: dict[str, Player] = {}
        self._reserved: list[str] = []

    @classmethod
    def with_test_bots(cls) -> MockBotProvider:
        """A provider stocked with bots of varied ratings."""
        provider = cls()
        for bot_id, rating, uncertainty in _TEST_BOTS:
            provider.add_bot(
                Player(
                    id=bot_id,
                    player_type=PlayerType.BOT,
                    rating=PlayerRating(rating=rating, uncertainty=uncertainty),
                )
            )
        return provider

    def add_bot(self, bot: Player) -> None:
        """Add a bot, replacing any with the same id."""
        if bot.player_type != PlayerType.BOT:
            raise InvalidQueueRequest("Player must be of type Bot")
        with self._lock:
            self._bots[bot.id] = bot

    def remove_bot(self, bot_id: str) -> bool:
        """Remove a bot; True if it was present."""
        with self._lock:
            return self._bots.pop(bot_id, None) is not None

    def get_all_bots(self) -> list[Player]:
        """Every bot in the pool, reserved or not."""
        with self._lock:
            return list(self._bots.values())

    def clear_reservations(self) -> None:
        """Release every reserved bot."""
        with self._lock:
            self._reserved.clear()

    def select_backfill_bots(self, criteria: BotSelectionCriteria) -> list[Player]:
        with self._lock:
            suitable = [
                bot
                for bot in self._bots.values()
                if bot.id not in self._reserved and criteria.accepts(bot)
            ]
        if criteria.preferred_rating is not None:
            preferred = criteria.preferred_rating
            suitable.sort(key=lambda bot: abs(bot.rating.rating - preferred))
        return suitable[: criteria.count]

    def get_bot(self, bot_id: str) -> Optional[Player]:
        with self._lock:
            return self._bots.get(bot_id)

    def reserve_bots(self, bot_ids: Iterable[str]) -> None:
        with self._lock:
            for bot_id in bot_ids:
                if bot_id not in self._reserved:
                    self._reserved.append(bot_id)

    def release_bots(self, bot_ids: Iterable[str]) -> None:
        released = set(bot_ids)
        with self._lock:
            self._reserved = [bot_id for bot_id in self._reserved if bot_id not in released]

    def available_bot_count(self) -> int:
        with self._lock:
            return len(self._bots) - len(self._reserved)

    def is_bot_available(self, bot_id: str) -> bool:
        with self._lock:
            return bot_id in self._bots and bot_id not in self._reserved
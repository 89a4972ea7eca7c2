import uuid
from dataclasses import dataclass
from datetime import timedelta

import pytest

from parlor_room.backfill import (
    BackfillConfig,
    BackfillTrigger,
    DefaultBackfillManager,
    MockBackfillManager,
)
from parlor_room.bot_provider import MockBotProvider
from parlor_room.errors import ConfigurationError, InternalError, LobbyFull
from parlor_room.models import (
    LobbyType,
    Player,
    PlayerRating,
    PlayerType,
    current_timestamp,
)


@dataclass
class FakeLobbySettings:
    lobby_type: LobbyType
    capacity: int


class FakeLobby:
    def __init__(self, lobby_type=LobbyType.GENERAL, capacity=4, accept_bots=True):
        self.id = uuid.uuid4()
        self.config = FakeLobbySettings(lobby_type, capacity)
        self.players = []
        self.created_at = current_timestamp()
        self.wait_timeout = None
        self.accept_bots = accept_bots

    def is_full(self):
        return len(self.players) >= self.config.capacity

    def needs_backfill(self):
        return (
            self.wait_timeout is not None
            and current_timestamp() >= self.wait_timeout
            and not self.is_full()
        )

    def add_player(self, player):
        if self.is_full():
            raise LobbyFull(str(self.id))
        if player.player_type == PlayerType.BOT and not self.accept_bots:
            raise LobbyFull(str(self.id))
        self.players.append(player)


class FakeWaitTimes:
    def __init__(self, wait):
        self.wait = wait

    def get_wait_time(self, lobby_type, player_type):
        return self.wait


class FakeRatings:
    def get_initial_rating(self):
        return PlayerRating(rating=1500.0, uncertainty=200.0)


def make_player(player_id, player_type, rating):
    return Player(
        id=player_id,
        player_type=player_type,
        rating=PlayerRating(rating=rating, uncertainty=200.0),
    )


def make_manager(config=None, provider=None):
    return DefaultBackfillManager(
        config or BackfillConfig(),
        provider if provider is not None else MockBotProvider.with_test_bots(),
        FakeWaitTimes(timedelta(seconds=120)),
        FakeRatings(),
    )


def expired_lobby(capacity=4, accept_bots=True):
    lobby = FakeLobby(capacity=capacity, accept_bots=accept_bots)
    lobby.add_player(make_player("human1", PlayerType.HUMAN, 1500.0))
    lobby.wait_timeout = current_timestamp() - timedelta(seconds=10)
    return lobby


def test_config_validation():
    BackfillConfig().validate()
    with pytest.raises(ConfigurationError, match="max_rating_tolerance"):
        BackfillConfig(max_rating_tolerance=-1.0).validate()
    with pytest.raises(ConfigurationError, match="min_humans_for_backfill"):
        BackfillConfig(min_humans_for_backfill=0).validate()
    with pytest.raises(ConfigurationError, match="max_bots_per_backfill"):
        BackfillConfig(max_bots_per_backfill=0).validate()


def test_presets():
    aggressive = BackfillConfig.aggressive()
    assert aggressive.max_rating_tolerance == 500.0
    assert aggressive.backfill_cooldown_seconds == 15
    aggressive.validate()

    conservative = BackfillConfig.conservative()
    assert conservative.max_rating_tolerance == 200.0
    assert conservative.min_humans_for_backfill == 2
    conservative.validate()


def test_defaults():
    config = BackfillConfig()
    assert config.max_rating_tolerance == 300.0
    assert config.min_humans_for_backfill == 1
    assert config.max_bots_per_backfill == 3
    assert config.backfill_cooldown_seconds == 30
    assert config.enabled is True


def test_manager_creation():
    manager = make_manager()
    assert manager.config == BackfillConfig()
    assert manager.get_stats().total_backfills == 0


def test_manager_rejects_invalid_config():
    with pytest.raises(ConfigurationError):
        make_manager(BackfillConfig(max_bots_per_backfill=0))


def test_needs_backfill_conditions():
    manager = make_manager()
    assert manager.needs_backfill(FakeLobby(lobby_type=LobbyType.ALL_BOT)) is None
    assert manager.needs_backfill(FakeLobby()) is None
    assert manager.needs_backfill(expired_lobby()) == BackfillTrigger.WAIT_TIME_EXPIRED


def test_needs_backfill_not_when_disabled():
    manager = make_manager(BackfillConfig(enabled=False))
    assert manager.needs_backfill(expired_lobby()) is None


def test_needs_backfill_requires_enough_humans():
    manager = make_manager(BackfillConfig.conservative())
    assert manager.needs_backfill(expired_lobby()) is None


def test_needs_backfill_not_when_full():
    manager = make_manager()
    lobby = FakeLobby(capacity=1)
    lobby.add_player(make_player("human1", PlayerType.HUMAN, 1500.0))
    lobby.wait_timeout = current_timestamp() - timedelta(seconds=10)
    assert manager.needs_backfill(lobby) is None


def test_needs_backfill_extended_wait():
    manager = make_manager()
    lobby = FakeLobby()
    lobby.add_player(make_player("human1", PlayerType.HUMAN, 1500.0))
    lobby.created_at = current_timestamp() - timedelta(seconds=300)
    assert manager.needs_backfill(lobby) == BackfillTrigger.EXTENDED_WAIT


def test_needs_backfill_not_before_wait_elapsed():
    manager = make_manager()
    lobby = FakeLobby()
    lobby.add_player(make_player("human1", PlayerType.HUMAN, 1500.0))
    lobby.created_at = current_timestamp() - timedelta(seconds=100)
    assert manager.needs_backfill(lobby) is None


def test_backfill_fills_lobby_with_closest_bots():
    provider = MockBotProvider.with_test_bots()
    manager = make_manager(provider=provider)
    lobby = expired_lobby()

    result = manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.WAIT_TIME_EXPIRED)

    assert result.lobby_id == lobby.id
    assert result.trigger == BackfillTrigger.WAIT_TIME_EXPIRED
    assert {bot.id for bot in result.added_bots} == {"testbot3", "newbot1", "testbot2"}
    assert result.lobby_full is True
    assert len(lobby.players) == 4
    assert provider.available_bot_count() == 5
    assert not provider.is_bot_available("testbot3")

    stats = manager.get_stats()
    assert stats.total_backfills == 1
    assert stats.successful_backfills == 1
    assert stats.bots_added == 3
    assert stats.lobbies_filled == 1
    assert stats.last_backfill == result.timestamp


def test_backfill_respects_cooldown():
    manager = make_manager()
    lobby = expired_lobby(capacity=8)
    result = manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.WAIT_TIME_EXPIRED)
    assert len(result.added_bots) == 3
    assert result.lobby_full is False
    assert manager.needs_backfill(lobby) is None


def test_backfill_excludes_bots_already_in_lobby():
    manager = make_manager()
    lobby = expired_lobby()
    lobby.add_player(make_player("testbot3", PlayerType.BOT, 1500.0))

    result = manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.MANUAL)

    assert [bot.id for bot in result.added_bots] == ["newbot1", "testbot2"]
    assert result.lobby_full is True


def test_backfill_full_lobby_adds_nothing():
    manager = make_manager()
    lobby = FakeLobby(capacity=1)
    lobby.add_player(make_player("human1", PlayerType.HUMAN, 1500.0))
    result = manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.MANUAL)
    assert result.added_bots == []
    assert manager.get_stats().total_backfills == 0


def test_backfill_without_humans_fails():
    manager = make_manager()
    lobby = FakeLobby()
    with pytest.raises(InternalError, match="without human players"):
        manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.MANUAL)


def test_backfill_without_available_bots_fails():
    manager = make_manager(provider=MockBotProvider())
    lobby = expired_lobby()
    with pytest.raises(InternalError, match="No suitable bots"):
        manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.MANUAL)


def test_backfill_releases_bots_when_none_added():
    provider = MockBotProvider.with_test_bots()
    manager = make_manager(provider=provider)
    lobby = expired_lobby(accept_bots=False)
    with pytest.raises(InternalError, match="Failed to add any bots"):
        manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.MANUAL)
    assert provider.available_bot_count() == 8
    assert len(lobby.players) == 1


def test_update_config():
    manager = make_manager()
    manager.update_config(BackfillConfig.aggressive())
    assert manager.config.max_rating_tolerance == 500.0
    with pytest.raises(ConfigurationError):
        manager.update_config(BackfillConfig(max_rating_tolerance=0.0))
    assert manager.config.max_rating_tolerance == 500.0


def test_mock_backfill_manager():
    manager = MockBackfillManager(BackfillConfig())
    lobby = FakeLobby()

    assert manager.needs_backfill(lobby) == BackfillTrigger.MANUAL
    assert manager.needs_backfill(FakeLobby(lobby_type=LobbyType.ALL_BOT)) is None

    result = manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.MANUAL)
    assert result.lobby_id == lobby.id
    assert [bot.id for bot in result.added_bots] == ["mock_bot"]

    manager.should_succeed = False
    with pytest.raises(InternalError, match="Mock backfill failure"):
        manager.backfill_lobby(lobby.id, lobby, BackfillTrigger.MANUAL)


def test_mock_backfill_manager_can_decline():
    manager = MockBackfillManager(BackfillConfig())
    manager.should_need_backfill = False
    assert manager.needs_backfill(FakeLobby()) is None
    with pytest.raises(ConfigurationError):
        manager.update_config(BackfillConfig(min_humans_for_backfill=0))
    assert manager.get_stats().total_backfills == 0
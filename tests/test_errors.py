import pytest

from parlor_room.errors import (
    AmqpConnectionFailed,
    ConfigurationError,
    InternalError,
    InvalidQueueRequest,
    LobbyFull,
    LobbyNotFound,
    MatchmakingError,
    PlayerNotFound,
    RatingCalculationFailed,
    WaitTimeCalculationFailed,
)


@pytest.mark.parametrize(
    ("error_cls", "prefix"),
    [
        (AmqpConnectionFailed, "AMQP connection failed: "),
        (InvalidQueueRequest, "Invalid queue request: "),
        (LobbyNotFound, "Lobby not found: "),
        (LobbyFull, "Lobby is full: "),
        (PlayerNotFound, "Player not found: "),
        (RatingCalculationFailed, "Rating calculation failed: "),
        (WaitTimeCalculationFailed, "Wait time calculation failed: "),
        (ConfigurationError, "Configuration error: "),
        (InternalError, "Internal service error: "),
    ],
)
def test_message_format(error_cls, prefix):
    err = error_cls("detail")
    assert str(err) == prefix + "detail"
    assert isinstance(err, MatchmakingError)


def test_fields_are_kept():
    assert AmqpConnectionFailed("down").message == "down"
    assert InvalidQueueRequest("bad").reason == "bad"
    assert LobbyNotFound("lobby-1").lobby_id == "lobby-1"
    assert LobbyFull("lobby-2").lobby_id == "lobby-2"
    assert PlayerNotFound("p1").player_id == "p1"
    assert ConfigurationError("cfg").message == "cfg"
    assert InternalError("oops").message == "oops"


def test_caught_as_base_class():
    err = LobbyFull("x")
    assert isinstance(err, MatchmakingError)
    assert isinstance(err, Exception)
    assert issubclass(LobbyFull, MatchmakingError)
    assert err.lobby_id == "x"
    assert str(err) == "Lobby is full: x"
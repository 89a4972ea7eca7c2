# parlor-room

Building blocks for a matchmaking service that queues human players and bots
into lobbies by rating. Queue requests arrive over AMQP as JSON, lobby events
are published back out, and General lobbies whose humans have waited too long
can be topped up with bots of a similar skill.

## Installation

```
pip install parlor-room
```

The AMQP transport uses `pika`. To run the test suite, install the `test`
extra and run `pytest`:

```
pip install "parlor-room[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `parlor_room.errors` | `MatchmakingError` and its subclasses: `AmqpConnectionFailed`, `InvalidQueueRequest`, `LobbyNotFound`, `LobbyFull`, `PlayerNotFound`, `RatingCalculationFailed`, `WaitTimeCalculationFailed`, `ConfigurationError`, `InternalError` |
| `parlor_room.models` | `PlayerType`, `LobbyType`, `PlayerRating`, `Player`, `QueueRequest`, `PlayerJoinedLobby`, `current_timestamp()`, `generate_lobby_id()` |
| `parlor_room.messages` | Queue and exchange names, routing keys, `MessageKind`, `MessageEnvelope`, queue-request (de)serialisation and validation |
| `parlor_room.lobby_config` | `LobbyConfig` with `competitive()`, `casual()` and `bot_only()` presets |
| `parlor_room.rating_config` | `RatingConfig` with `conservative()`, `aggressive()`, `beginner_friendly()` and `competitive()` presets |
| `parlor_room.connection` | `AmqpConfig`, `AmqpConnection` (retry with exponential back-off), `AmqpConnectionPool` |
| `parlor_room.handlers` | `MessageHandler`, `QueueRequestConsumer`, `DeadLetterHandler`, `MockMessageHandler` |
| `parlor_room.publisher` | `EventPublisher`, `PublisherConfig`, `AmqpEventPublisher`, `MockEventPublisher` |
| `parlor_room.bot_provider` | `BotSelectionCriteria`, `BotProvider`, `MockBotProvider` |
| `parlor_room.backfill` | `BackfillConfig`, `BackfillTrigger`, `BackfillResult`, `BackfillStats`, `BackfillManager`, `DefaultBackfillManager`, `MockBackfillManager` |

All failures are raised as subclasses of `MatchmakingError`.

## Queue requests

```python
from parlor_room.models import LobbyType, PlayerRating, PlayerType, QueueRequest
from parlor_room.messages import deserialize_queue_request, serialize_queue_request

request = QueueRequest(
    player_id="player_42",
    player_type=PlayerType.HUMAN,
    lobby_type=LobbyType.GENERAL,
    current_rating=PlayerRating(rating=1500.0, uncertainty=200.0),
)

payload = serialize_queue_request(request)   # compact JSON bytes
again = deserialize_queue_request(payload)
assert again.player_id == "player_42"
```

Enums are written by value (`"Human"`, `"Bot"`, `"General"`, `"AllBot"`) and
timestamps as ISO 8601 in UTC with a `Z` suffix. A request with an empty
player id, a negative rating or a negative uncertainty is rejected with
`InvalidQueueRequest` by `validate_queue_request`, which both
`serialize_queue_request` and `deserialize_queue_request` call; malformed JSON
is also reported as `InvalidQueueRequest`.

`MessageEnvelope(payload, routing_key)` wraps a payload with a fresh
correlation id and timestamp; `to_bytes()` and `MessageEnvelope.from_bytes()`
convert it to and from JSON (the decoded payload is left as plain JSON data).
`get_routing_key(MessageKind.PLAYER_JOINED_LOBBY)` returns `"player.joined"`,
and likewise `"player.left"`, `"game.starting"` and `"queue.request"`.

## Configuration presets

```python
from parlor_room.lobby_config import LobbyConfig
from parlor_room.rating_config import RatingConfig

lobby = LobbyConfig.competitive()
lobby.validate()
print(lobby.capacity, lobby.wait_time(), lobby.cleanup_timeout())

rating = RatingConfig.beginner_friendly()
rating.validate()
print(rating.default_rating, rating.tolerance)
```

`validate()` raises `ConfigurationError` when a setting is out of range, for
example a lobby capacity of 0 or above 8, a quality threshold outside 0..1, or
a rating floor that is not below the ceiling.

## Broker connections

`AmqpConnection(config)` opens a `pika.BlockingConnection` from an
`AmqpConfig`, retrying up to `max_retries` times with a delay that starts at
`retry_delay_ms` and doubles up to 30 seconds, then raises
`AmqpConnectionFailed`. A different `connector` callable taking the config can
be passed in instead. The connection is a context manager and closes on exit.
`AmqpConnectionPool.get_connection()` opens a fresh connection each time and
`return_connection()` closes it.

## Consuming queue requests

`QueueRequestConsumer(handler, channel)` registers itself on a queue with
`start_consuming(queue_name)`; each delivery is decoded and passed to
`handler.handle_queue_request()`, and any failure is reported to
`handler.handle_error()` as an `InternalError`. `MockMessageHandler` records
the requests and errors it receives.

`DeadLetterHandler(max_retries).handle_failed_message(message_id, content, error)`
counts failures per message and returns `True` while the message may still be
retried, `False` once it has gone over the limit.

## Publishing events

`AmqpEventPublisher(channel, config)` declares the `matchmaking.player_events`
and `matchmaking.game_events` topic exchanges and publishes player-joined,
player-left and game-starting events wrapped in a `MessageEnvelope`, retrying
with back-off (up to 5 seconds between attempts) and skipping envelopes whose
correlation id it has already sent. `cached_message_count()` and
`clear_deduplication_cache()` expose that cache. `MockEventPublisher` records
the event names instead.

## Selecting bots

```python
from parlor_room.bot_provider import BotSelectionCriteria, MockBotProvider

provider = MockBotProvider.with_test_bots()
criteria = BotSelectionCriteria.for_rating(1500.0, 200.0, 3).excluding(["testbot2"])

bots = provider.select_backfill_bots(criteria)
provider.reserve_bots([bot.id for bot in bots])
print(provider.available_bot_count())
```

Bots are filtered by rating and uncertainty range, reserved and excluded bots
are skipped, and the rest are ordered by closeness to the preferred rating
before the requested number is taken.

## Backfilling

`BackfillConfig` holds the rating tolerance, minimum humans, bots per
operation and cooldown; `aggressive()` and `conservative()` are ready-made
alternatives. `DefaultBackfillManager.needs_backfill(lobby)` returns a
`BackfillTrigger` for General lobbies that are not full, have enough humans,
are past their cooldown and have either passed their wait timeout or waited
more than twice the provider's wait time. `backfill_lobby(lobby_id, lobby,
trigger)` selects, reserves and adds bots around the humans' average rating,
releasing any it could not seat, and returns a `BackfillResult`. `get_stats()`
returns a copy of the running `BackfillStats`.

## What the package does not include

There is no lobby implementation, lobby manager, wait-time provider or rating
calculator here, and no service entry point or command. The backfill managers
work with any lobby object that has `id`, `config.lobby_type`,
`config.capacity`, `players`, `created_at`, `is_full()`, `needs_backfill()` and
`add_player()`; `DefaultBackfillManager` also needs a wait-time provider with
`get_wait_time(lobby_type, player_type)` returning a `timedelta` and a rating
calculator with `get_initial_rating()`. Those pieces are for the application
to supply.
"""Publishing of matchmaking events to the message broker."""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import pika

from .errors import AmqpConnectionFailed, MatchmakingError
from .messages import (
    GAME_EVENTS_EXCHANGE,
    GAME_STARTING_ROUTING_KEY,
    PLAYER_EVENTS_EXCHANGE,
    PLAYER_JOINED_ROUTING_KEY,
    PLAYER_LEFT_ROUTING_KEY,
    MessageEnvelope,
)

logger = logging.getLogger(__name__)

_MAX_RETRY_DELAY_MS = 5000


class EventPublisher(ABC):
    """Publishes matchmaking events."""

    @abstractmethod
    def publish_player_joined_lobby(self, event: Any) -> None:
        """Publish a player-joined-lobby event."""

    @abstractmethod
    def publish_player_left_lobby(self, event: Any) -> None:
        """Publish a player-left-lobby event."""

    @abstractmethod
    def publish_game_starting(self, event: Any) -> None:
        """Publish a game-starting event."""


@dataclass
class PublisherConfig:
    """Retry and deduplication settings for publishing."""

    max_retries: int = 3
    retry_delay_ms: int = 500
    enable_deduplication: bool = True
    publish_timeout_ms: int = 5000


class AmqpEventPublisher(EventPublisher):
    """Publishes events to topic exchanges over a broker channel."""

    def __init__(self, channel: Any, config: PublisherConfig | None = None) -> None:
        self.channel = channel
        self.config = config or PublisherConfig()
        self._lock = threading.Lock()
        self._published: set[str] = set()
        self._setup_exchanges()

    def _setup_exchanges(self) -> None:
        for exchange, label in (
            (PLAYER_EVENTS_EXCHANGE, "player events"),
            (GAME_EVENTS_EXCHANGE, "game events"),
        ):
            try:
                self.channel.exchange_declare(exchange=exchange, exchange_type="topic")
            except Exception as exc:
                raise AmqpConnectionFailed(
                    f"Failed to declare {label} exchange: {exc}"
                ) from exc
        logger.info("Successfully set up AMQP exchanges")

    def _try_publish(self, exchange: str, envelope: MessageEnvelope) -> None:
        body = envelope.to_bytes()
        properties = pika.BasicProperties(
            message_id=envelope.correlation_id,
            timestamp=int(envelope.timestamp.timestamp()),
            content_type="application/json",
        )
        try:
            self.channel.basic_publish(
                exchange=exchange,
                routing_key=envelope.routing_key,
                body=body,
                properties=properties,
            )
        except Exception as exc:
            raise AmqpConnectionFailed(f"Failed to publish message: {exc}") from exc

    def _publish(self, exchange: str, envelope: MessageEnvelope) -> None:
        if self.config.enable_deduplication:
            with self._lock:
                if envelope.correlation_id in self._published:
                    logger.debug(
                        "Message %s already published, skipping", envelope.correlation_id
                    )
                    return

        attempts = 0
        delay_ms = self.config.retry_delay_ms
        while True:
            try:
                self._try_publish(exchange, envelope)
            except MatchmakingError as exc:
                attempts += 1
                if attempts > self.config.max_retries:
                    logger.error(
                        "Failed to publish message %s after %d retries: %s",
                        envelope.correlation_id,
                        self.config.max_retries,
                        exc,
                    )
                    raise
                logger.warning(
                    "Publish attempt %d failed for message %s: %s. Retrying in %d ms",
                    attempts,
                    envelope.correlation_id,
                    exc,
                    delay_ms,
                )
                time.sleep(delay_ms / 1000)
                delay_ms = min(delay_ms * 2, _MAX_RETRY_DELAY_MS)
            else:
                if self.config.enable_deduplication:
                    with self._lock:
                        self._published.add(envelope.correlation_id)
                logger.debug(
                    "Successfully published message %s to exchange %s",
                    envelope.correlation_id,
                    exchange,
                )
                return

    def publish_player_joined_lobby(self, event: Any) -> None:
        self._publish(
            PLAYER_EVENTS_EXCHANGE, MessageEnvelope(event, PLAYER_JOINED_ROUTING_KEY)
        )

    def publish_player_left_lobby(self, event: Any) -> None:
        self._publish(PLAYER_EVENTS_EXCHANGE, MessageEnvelope(event, PLAYER_LEFT_ROUTING_KEY))

    def publish_game_starting(self, event: Any) -> None:
        self._publish(GAME_EVENTS_EXCHANGE, MessageEnvelope(event, GAME_STARTING_ROUTING_KEY))

    def clear_deduplication_cache(self) -> None:
        """Forget which messages have been published."""
        with self._lock:
            self._published.clear()

    def cached_message_count(self) -> int:
        """Number of message ids held for deduplication."""
        with self._lock:
            return len(self._published)


class MockEventPublisher(EventPublisher):
    """Publisher that records the kinds of event it is given."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[str] = []

    def _record(self, name: str) -> None:
        with self._lock:
            self._events.append(name)

    def publish_player_joined_lobby(self, event: Any) -> None:
        self._record("PlayerJoinedLobby")

    def publish_player_left_lobby(self, event: Any) -> None:
        self._record("PlayerLeftLobby")

    def publish_game_starting(self, event: Any) -> None:
        self._record("GameStarting")

    def get_published_events(self) -> list[str]:
        """Names of the events published so far, in order."""
        with self._lock:
            return list(self._events)

    def clear_events(self) -> None:
        """Forget all recorded events."""
        with self._lock:
            self._events.clear()
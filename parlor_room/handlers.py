"""Consumption of queue-request messages and failure bookkeeping."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any

from .errors import AmqpConnectionFailed, InternalError, MatchmakingError
from .messages import deserialize_queue_request
from .models import QueueRequest

logger = logging.getLogger(__name__)


class MessageHandler(ABC):
    """Receives decoded queue requests and processing failures."""

    @abstractmethod
    def handle_queue_request(self, request: QueueRequest) -> None:
        """Handle a queue request from a player or bot."""

    @abstractmethod
    def handle_error(self, error: MatchmakingError, message_data: bytes) -> None:
        """Handle a message that could not be processed."""


class QueueRequestConsumer:
    """Consumes queue-request messages from a broker channel."""

    def __init__(self, handler: MessageHandler, channel: Any) -> None:
        self.handler = handler
        self.channel = channel
        self.consumer_tag = f"queue-consumer-{uuid.uuid4()}"

    def start_consuming(self, queue_name: str) -> None:
        """Register this consumer on the named queue."""
        try:
            self.channel.basic_consume(
                queue=queue_name,
                on_message_callback=self.on_message,
                consumer_tag=self.consumer_tag,
            )
        except Exception as exc:
            raise AmqpConnectionFailed(f"Failed to start consuming: {exc}") from exc
        logger.info("Started consuming messages from queue: %s", queue_name)

    def stop_consuming(self) -> None:
        """Cancel this consumer."""
        try:
            self.channel.basic_cancel(consumer_tag=self.consumer_tag)
        except Exception as exc:
            raise AmqpConnectionFailed(f"Failed to stop consuming: {exc}") from exc
        logger.info("Stopped consuming messages")

    def on_message(self, channel: Any, method: Any, properties: Any, body: bytes) -> None:
        """Broker callback: process one delivery, reporting failures to the handler."""
        delivery_tag = getattr(method, "delivery_tag", None)
        routing_key = getattr(method, "routing_key", "")
        logger.info(
            "AMQP message received - delivery_tag: %s, routing_key: '%s', size: %d bytes",
            delivery_tag,
            routing_key,
            len(body),
        )
        started = time.perf_counter()
        try:
            self.process_message(body)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            logger.error(
                "Message processing failed - delivery_tag: %s, processing_time: %.2fms, error: %s",
                delivery_tag,
                elapsed_ms,
                exc,
            )
            self.handler.handle_error(InternalError(str(exc)), body)
        else:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            logger.info(
                "Message processed successfully - delivery_tag: %s, processing_time: %.2fms",
                delivery_tag,
                elapsed_ms,
            )

    def process_message(self, body: bytes) -> None:
        """Decode a queue request and pass it to the handler."""
        request = deserialize_queue_request(body)
        logger.info(
            "Queue request parsed - player_id: '%s', player_type: %s, lobby_type: %s, "
            "rating: %.1f±%.1f",
            request.player_id,
            request.player_type.value,
            request.lobby_type.value,
            request.current_rating.rating,
            request.current_rating.uncertainty,
        )
        self.handler.handle_queue_request(request)


class DeadLetterHandler:
    """Counts failures per message and decides when to give up on one."""

    def __init__(self, max_retries: int) -> None:
        self.max_retries = max_retries
        self.retry_attempts: dict[str, int] = {}

    def handle_failed_message(
        self, message_id: str, content: bytes, error: MatchmakingError
    ) -> bool:
        """Record a failure; True if the message may be retried, False if dead-lettered."""
        attempts = self.retry_attempts.get(message_id, 0) + 1
        self.retry_attempts[message_id] = attempts
        if attempts <= self.max_retries:
            logger.warning(
                "Message %s failed (attempt %d), will retry: %s", message_id, attempts, error
            )
            return True
        logger.error(
            "Message %s exceeded max retries (%d), moving to dead letter queue: %s",
            message_id,
            self.max_retries,
            error,
        )
        del self.retry_attempts[message_id]
        return False


class MockMessageHandler(MessageHandler):
    """Handler that records what it receives."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.received_requests: list[QueueRequest] = []
        self.received_errors: list[MatchmakingError] = []

    def handle_queue_request(self, request: QueueRequest) -> None:
        with self._lock:
            self.received_requests.append(request)

    def handle_error(self, error: MatchmakingError, message_data: bytes) -> None:
        logger.error("Mock handler received error: %s", error)
        with self._lock:
            self.received_errors.append(error)
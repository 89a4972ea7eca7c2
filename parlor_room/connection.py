"""Broker connection settings and connection handling with retries."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import pika

from .errors import AmqpConnectionFailed

logger = logging.getLogger(__name__)

PASSWORD = "password"

_MAX_RETRY_DELAY_MS = 30_000


@dataclass
class AmqpConfig:
    """Where and how to reach the message broker."""

    host: str = "localhost"
    port: int = 5672
    username: str = "guest"
    password: str = PASSWORD
    vhost: str = "/"
    max_retries: int = 5
    retry_delay_ms: int = 1000
    connection_timeout_ms: int = 30_000


Connector = Callable[[AmqpConfig], Any]


def _pika_connector(config: AmqpConfig) -> Any:
    credentials = pika.PlainCredentials(config.username, config.password)
    parameters = pika.ConnectionParameters(
        host=config.host,
        port=config.port,
        virtual_host=f"/{config.vhost}",
        credentials=credentials,
    )
    return pika.BlockingConnection(parameters)


class AmqpConnection:
    """An open broker connection, established with exponential backoff."""

    def __init__(self, config: AmqpConfig, connector: Optional[Connector] = None) -> None:
        self.config = config
        self._connector = connector or _pika_connector
        self.connection = self._connect_with_retry()

    def _try_connect(self) -> Any:
        try:
            return self._connector(self.config)
        except AmqpConnectionFailed:
            raise
        except Exception as exc:
            raise AmqpConnectionFailed(f"Failed to open AMQP connection: {exc}") from exc

    def _connect_with_retry(self) -> Any:
        attempts = 0
        delay_ms = self.config.retry_delay_ms
        while True:
            try:
                connection = self._try_connect()
            except AmqpConnectionFailed as exc:
                attempts += 1
                if attempts > self.config.max_retries:
                    logger.error(
                        "Failed to connect to AMQP after %d retries", self.config.max_retries
                    )
                    raise AmqpConnectionFailed(f"Max retries exceeded: {exc}") from exc
                logger.warning(
                    "AMQP connection attempt %d failed: %s. Retrying in %d ms",
                    attempts,
                    exc,
                    delay_ms,
                )
                time.sleep(delay_ms / 1000)
                delay_ms = min(delay_ms * 2, _MAX_RETRY_DELAY_MS)
            else:
                logger.info("Successfully connected to AMQP broker")
                return connection

    def is_alive(self) -> bool:
        """Whether the underlying connection reports itself open."""
        return bool(getattr(self.connection, "is_open", True))

    def close(self) -> None:
        """Close the underlying connection."""
        try:
            self.connection.close()
        except Exception as exc:
            raise AmqpConnectionFailed(f"Failed to close AMQP connection: {exc}") from exc

    def __enter__(self) -> AmqpConnection:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class AmqpConnectionPool:
    """Hands out broker connections built from one configuration."""

    def __init__(
        self,
        config: AmqpConfig,
        pool_size: int,
        connector: Optional[Connector] = None,
    ) -> None:
        self.config = config
        self.pool_size = pool_size
        self._connector = connector

    def get_connection(self) -> AmqpConnection:
        """Open a fresh connection."""
        return AmqpConnection(self.config, self._connector)

    def return_connection(self, connection: AmqpConnection) -> None:
        """Give a connection back; it is closed."""
        connection.close()
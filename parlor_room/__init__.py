"""Matchmaking building blocks: queue messages, configuration, AMQP transport and bot backfill."""

__version__ = "0.1.0"

__all__ = [
    "backfill",
    "bot_provider",
    "connection",
    "errors",
    "handlers",
    "lobby_config",
    "messages",
    "models",
    "publisher",
    "rating_config",
]
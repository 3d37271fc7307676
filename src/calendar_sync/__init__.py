"""Real-time sync relay for calendar devices."""

from calendar_sync.handlers import MessageRelay
from calendar_sync.models import (
    AuthMessage,
    Connection,
    EventUpdateMessage,
    parse_envelope,
)
from calendar_sync.registry import ConnectionRegistry
from calendar_sync.server import WebSocketHandler

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnectionRegistry",
    "MessageRelay",
    "WebSocketHandler",
    "AuthMessage",
    "EventUpdateMessage",
    "parse_envelope",
]

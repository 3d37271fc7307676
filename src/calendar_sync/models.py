"""Data models for the sync relay."""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

# Canonical account key derived from the userId of an auth message
Identity = str

AUTH = "auth"
EVENT_UPDATE = "event_update"


@dataclass(eq=False)
class Connection:
    """
    A live WebSocket to one client device.

    Compared and hashed by object identity so it can be stored in the
    registry's per-account sets.
    """

    websocket: ServerConnection
    connection_id: UUID = field(default_factory=uuid4)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    identity: Optional[Identity] = None  # Set by a valid auth message
    closed: bool = False

    @property
    def is_open(self) -> bool:
        """Check if the underlying channel can currently accept frames."""
        return not self.closed and self.websocket.state is State.OPEN

    async def send(self, message: str | bytes) -> bool:
        """
        Send a frame to the client as-is.

        Returns:
            True if the frame was handed to an open channel, False if the
            channel was not open or closed during the send.
        """
        if not self.is_open:
            return False
        try:
            await self.websocket.send(message)
        except ConnectionClosed:
            return False
        return True


@dataclass(frozen=True)
class AuthMessage:
    """Identity declaration: ``{"type": "auth", "userId": <identity>}``."""

    identity: Identity


@dataclass(frozen=True)
class EventUpdateMessage:
    """Change notification: ``{"type": "event_update", "data": {...}}``."""

    data: Any = None


Envelope = Union[AuthMessage, EventUpdateMessage]


def canonical_identity(value: Any) -> Optional[Identity]:
    """
    Normalise a declared ``userId`` to the key it is registered under.

    Numbers and strings share one key space, so ``7``, ``7.0`` and ``"7"``
    all name the same account.

    Returns:
        The string key, or None if the value is not a usable identity.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, str) and value != "":
        return value
    return None


def parse_envelope(raw: str | bytes) -> Optional[Envelope]:
    """
    Parse an inbound frame into a message envelope.

    Returns None for anything that is not a recognised envelope: invalid
    or too deeply nested JSON, undecodable bytes, a non-object top level,
    an unknown or missing ``type``, or an auth message without a valid
    ``userId``.
    """
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        return None

    if not isinstance(data, dict):
        return None

    msg_type = data.get("type")
    if msg_type == AUTH:
        identity = canonical_identity(data.get("userId"))
        if identity is None:
            return None
        return AuthMessage(identity=identity)
    if msg_type == EVENT_UPDATE:
        return EventUpdateMessage(data=data.get("data"))
    return None

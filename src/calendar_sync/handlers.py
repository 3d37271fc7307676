"""Message relay for the sync channel."""

import asyncio
import logging

from calendar_sync.models import (
    AuthMessage,
    Connection,
    EventUpdateMessage,
    parse_envelope,
)
from calendar_sync.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class MessageRelay:
    """
    Routes inbound frames and keeps the registry in step with connections.

    Auth messages register the connection under the declared identity.
    Event updates are forwarded, byte for byte, to every other open
    connection of the same identity. Everything else is dropped.
    """

    def __init__(self, registry: ConnectionRegistry):
        """
        Initialize the relay.

        Args:
            registry: Connection registry shared by all connections.
        """
        self.registry = registry

    async def handle(self, connection: Connection, message: str | bytes) -> None:
        """
        Main entry point for handling messages.

        Routes to the appropriate handler based on the envelope type.
        """
        if connection.closed:
            return

        envelope = parse_envelope(message)

        if isinstance(envelope, AuthMessage):
            self.handle_auth(connection, envelope)
        elif isinstance(envelope, EventUpdateMessage):
            await self.handle_event_update(connection, message)
        else:
            logger.debug(f"Dropped unrecognised message from {connection.connection_id}")

    def handle_auth(self, connection: Connection, message: AuthMessage) -> None:
        """Associate the connection with the declared identity."""
        previous = connection.identity
        if previous is not None and previous != message.identity:
            # Re-declaring moves the connection rather than adding a second identity
            self.registry.unregister(previous, connection)

        connection.identity = message.identity
        self.registry.register(message.identity, connection)

    async def handle_event_update(
        self, connection: Connection, message: str | bytes
    ) -> int:
        """
        Forward the raw frame to the sender's other devices.

        Returns:
            The number of peers the frame was delivered to.
        """
        identity = connection.identity
        if identity is None:
            logger.debug(
                f"Dropped event_update from unauthenticated connection "
                f"{connection.connection_id}"
            )
            return 0

        peers = [
            peer
            for peer in self.registry.peers_of(identity)
            if peer is not connection and peer.is_open
        ]
        if not peers:
            return 0

        results = await asyncio.gather(*(peer.send(message) for peer in peers))
        delivered = sum(1 for sent in results if sent)

        logger.debug(
            f"Relayed event_update from {connection.connection_id} "
            f"to {delivered} other device(s) of {identity!r}"
        )
        return delivered

    def handle_close(self, connection: Connection) -> None:
        """
        Release the connection's registry entry.

        Safe to call more than once and for connections that never
        authenticated.
        """
        if connection.closed:
            return
        connection.closed = True

        if connection.identity is not None:
            self.registry.unregister(connection.identity, connection)

"""In-memory registry of live connections per account."""

import logging
import threading

from calendar_sync.models import Connection, Identity

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Maps each account identity to the set of connections declared under it.

    Entries are created on first registration and deleted as soon as their
    set becomes empty. All methods are safe to call concurrently; the lock is
    only held for dictionary and set bookkeeping, never across I/O.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._connections: dict[Identity, set[Connection]] = {}
        self._lock = threading.Lock()

    def register(self, identity: Identity, connection: Connection) -> None:
        """
        Add a connection under an identity.

        Registering the same connection twice has no further effect.

        Args:
            identity: The declared account identity
            connection: The connection to add
        """
        with self._lock:
            peers = self._connections.setdefault(identity, set())
            peers.add(connection)
            count = len(peers)

        logger.info(
            f"Registered connection {connection.connection_id} for {identity!r} "
            f"({count} device(s))"
        )

    def unregister(self, identity: Identity, connection: Connection) -> bool:
        """
        Remove a connection from an identity's set.

        Unknown identities or connections are ignored.

        Args:
            identity: The identity the connection was registered under
            connection: The connection to remove

        Returns:
            True if the connection was removed, False if it wasn't registered
        """
        with self._lock:
            peers = self._connections.get(identity)
            if peers is None or connection not in peers:
                return False
            peers.remove(connection)
            remaining = len(peers)
            if not peers:
                del self._connections[identity]

        logger.info(
            f"Unregistered connection {connection.connection_id} for {identity!r} "
            f"({remaining} device(s) left)"
        )
        return True

    def peers_of(self, identity: Identity) -> tuple[Connection, ...]:
        """
        Snapshot the connections registered under an identity.

        The returned tuple is a copy and is not affected by later
        registrations or removals.
        """
        with self._lock:
            return tuple(self._connections.get(identity, ()))

    def identities(self) -> list[Identity]:
        """Get the identities that currently have at least one connection."""
        with self._lock:
            return list(self._connections)

    @property
    def identity_count(self) -> int:
        """Return the number of identities with live connections."""
        with self._lock:
            return len(self._connections)

    @property
    def connection_count(self) -> int:
        """Return the number of registered connections across all identities."""
        with self._lock:
            return sum(len(peers) for peers in self._connections.values())

    def __contains__(self, identity: object) -> bool:
        """Check if an identity currently has at least one connection."""
        with self._lock:
            return identity in self._connections

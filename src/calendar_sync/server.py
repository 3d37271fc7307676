"""WebSocket server handler implementation."""

import asyncio
import logging
from typing import Optional

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed

from calendar_sync.config import Settings, get_settings
from calendar_sync.handlers import MessageRelay
from calendar_sync.models import Connection
from calendar_sync.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class WebSocketHandler:
    """Handles WebSocket connections and feeds their frames to the relay."""

    def __init__(self, registry: ConnectionRegistry, settings: Optional[Settings] = None):
        """Initialize handler with connection registry."""
        self.registry = registry
        self.settings = settings or get_settings()
        self.relay = MessageRelay(registry)
        # Map websocket connections to their Connection wrappers
        self._connections: dict[ServerConnection, Connection] = {}

    @property
    def active_connection_count(self) -> int:
        """Return the number of active connections."""
        return len(self._connections)

    async def close_all_connections(self, timeout: float = 5.0) -> None:
        """
        Gracefully close all active WebSocket connections and clean up registry.

        Closes each websocket with 1001 (Going Away); connection handlers that
        do not finish within the timeout are cleaned up here instead.

        Args:
            timeout: Maximum time in seconds to wait for all connections to close.
        """
        if not self._connections:
            logger.info("No active connections to close")
            return

        logger.info(f"Closing {len(self._connections)} active connection(s)...")

        # Create a snapshot of connections to avoid modification during iteration
        connections_to_close = list(self._connections.items())

        async def close_single_connection(
            websocket: ServerConnection, connection: Connection
        ) -> None:
            """Close a single connection gracefully."""
            try:
                await websocket.close(1001, "Server shutting down")
                logger.debug(f"Closed connection: {connection.connection_id}")
            except Exception as e:
                logger.warning(
                    f"Error closing connection {connection.connection_id}: {e}"
                )

        close_tasks = [
            close_single_connection(ws, conn) for ws, conn in connections_to_close
        ]

        try:
            await asyncio.wait_for(
                asyncio.gather(*close_tasks, return_exceptions=True),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Timeout after {timeout}s while closing connections, "
                f"forcing cleanup of remaining connections"
            )

        # No-op for connections whose handler already ran its cleanup
        for websocket, connection in connections_to_close:
            self.relay.handle_close(connection)
            self._connections.pop(websocket, None)

        logger.info("All connections closed and registry cleaned up")

    async def handle_connection(self, websocket: ServerConnection) -> None:
        """
        Handle a WebSocket connection lifecycle.

        Validates the request path, relays every inbound frame, and releases
        the connection's registry entry on disconnect.
        """
        path = websocket.request.path if websocket.request is not None else "/"
        if not self.settings.is_valid_path(path):
            error_msg = f"Invalid path. Expected: {self.settings.ws_path}"
            logger.warning(f"Connection rejected: {error_msg}")
            await websocket.close(1008, error_msg)
            return

        connection = Connection(websocket=websocket)
        self._connections[websocket] = connection
        logger.info(
            f"Connection established: {connection.connection_id} "
            f"from {websocket.remote_address}"
        )

        try:
            async for message in websocket:
                await self.relay.handle(connection, message)
        except ConnectionClosed as e:
            logger.info(f"Connection lost: {connection.connection_id} ({e})")
        except Exception as e:
            logger.error(f"Error handling connection: {e}", exc_info=True)
            raise
        finally:
            self.relay.handle_close(connection)
            self._connections.pop(websocket, None)
            logger.info(f"Connection closed: {connection.connection_id}")

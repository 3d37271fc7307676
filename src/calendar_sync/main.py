"""Entry point for the sync server."""

import asyncio
import logging
import signal
import sys

from aiohttp import web
from websockets.asyncio.server import serve

from calendar_sync.config import get_settings
from calendar_sync.http import create_http_app
from calendar_sync.registry import ConnectionRegistry
from calendar_sync.server import WebSocketHandler

logger = logging.getLogger(__name__)


async def run_server() -> None:
    """Initialize and run the WebSocket server and HTTP API server."""
    settings = get_settings()

    logger.info(f"Starting WebSocket server on {settings.host}:{settings.port}")
    logger.info(f"Starting HTTP server on {settings.host}:{settings.http_port}")

    # One registry per process, shared by every connection
    registry = ConnectionRegistry()
    handler = WebSocketHandler(registry, settings)

    # Create HTTP app with access to WebSocket handler
    http_app = create_http_app(handler)

    # Set up graceful shutdown
    stop_event = asyncio.Event()

    def handle_shutdown():
        logger.info("Shutdown signal received, stopping servers...")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_shutdown)

    # Start the HTTP server
    http_runner = web.AppRunner(http_app)
    await http_runner.setup()
    http_site = web.TCPSite(http_runner, settings.host, settings.http_port)
    await http_site.start()

    logger.info(f"HTTP server listening on http://{settings.host}:{settings.http_port}")
    logger.info(f"Health endpoint: http://{settings.host}:{settings.http_port}/health")

    async with serve(
        handler.handle_connection,
        settings.host,
        settings.port,
        ping_interval=settings.ping_interval,
        ping_timeout=settings.ping_timeout,
        max_size=settings.max_message_size,
    ):
        path = settings.ws_path or "/"
        logger.info(f"WebSocket server listening on ws://{settings.host}:{settings.port}{path}")

        # Wait for shutdown signal
        await stop_event.wait()

        logger.info("Initiating graceful shutdown...")
        await handler.close_all_connections(timeout=settings.shutdown_timeout)

    await http_runner.cleanup()

    logger.info("Servers stopped")


def main() -> None:
    """Main entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        logger.info("Server interrupted")


if __name__ == "__main__":
    main()

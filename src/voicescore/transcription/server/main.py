"""Main entry point and server startup for the relay.

This module provides:
- start_server: Async method to start the WebSocket relay and HTTP surface
- main: Main entry point function
"""

import asyncio
import sys
import traceback
from typing import TYPE_CHECKING, Optional

import websockets

from ...core.config import setup_logging
from .internal.http import start_http_server

if TYPE_CHECKING:
    from .core import RelayServer

logger = setup_logging(__name__)


async def start_server(
    server: "RelayServer",
    host: Optional[str] = None,
    port: Optional[int] = None,
    http_port: Optional[int] = None,
) -> None:
    """Start the relay and keep it running until cancelled.

    Args:
        server: The RelayServer instance
        host: Host to bind to (optional, uses server default)
        port: WebSocket port (optional, uses server default)
        http_port: HTTP port (optional, uses server default)

    """
    server_host = host or server.host
    server_port = port or server.port
    server_http_port = http_port or server.http_port
    config = server.config

    server._http_runner = await start_http_server(server, server_host, server_http_port)

    logger.info(f"Starting relay on ws://{server_host}:{server_port}")
    logger.info(f"Configuration: {config.as_dict()}")

    server_kwargs = {
        "ping_interval": config.ping_interval,
        "ping_timeout": config.ping_timeout,
        "max_size": config.max_message_bytes,
    }

    try:
        async with websockets.serve(server.handle_client, server_host, server_port, **server_kwargs):
            logger.info("Relay is ready for connections")
            await asyncio.Future()
    finally:
        await server.registry.close_all()
        if server._http_runner is not None:
            await server._http_runner.cleanup()
            server._http_runner = None
        logger.info("Relay stopped")


def main() -> None:
    """Main function to start the server."""
    from .core import RelayServer

    server = RelayServer()

    try:
        asyncio.run(server.start_server())
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.exception(f"Server error: {e}")
        logger.exception(traceback.format_exc())
        sys.exit(1)

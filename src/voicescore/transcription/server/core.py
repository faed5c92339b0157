"""Core WebSocket relay server for VoiceScore.

This module contains the RelayServer class which accepts client websockets,
gives each one a StreamingSession, and dispatches control messages to the
handlers module.
"""

import uuid

import websockets

from ...core.config import ConfigLoader, get_config, setup_logging
from ...core.logging import session_logger
from ..client.batch import TranscriptionClient
from ..exceptions import MalformedMessage
from ..streaming.upstream import UpstreamChannel
from . import handlers
from .registry import SessionRegistry
from .session import StreamingSession, send_error

logger = setup_logging(__name__)


class RelayServer:
    """WebSocket relay between browser clients and the streaming provider.

    This server handles:
    - JSON control messages (start_streaming, audio_data, stop_streaming)
    - Binary websocket frames carrying PCM16 audio
    - One StreamingSession per client connection, torn down on disconnect
    - An HTTP surface for health checks and batch transcription
    """

    def __init__(self, config: ConfigLoader | None = None, connector=None):
        self.config = config or get_config()

        self.host = self.config.bind_host
        self.port = self.config.websocket_port
        self.http_port = self.config.http_port

        # Tests inject a fake connector instead of dialing the provider
        self._connector = connector or self._connect_upstream

        self.registry = SessionRegistry(self._create_session)
        self.connected_clients = set()

        # HTTP runner (set during start_server)
        self._http_runner = None

        self.message_handlers = {
            "start_streaming": self._wrap_handler(handlers.handle_start_streaming),
            "audio_data": self._wrap_handler(handlers.handle_audio_data),
            "stop_streaming": self._wrap_handler(handlers.handle_stop_streaming),
        }

        logger.debug(f"Initializing relay on ws://{self.host}:{self.port}")

    def _wrap_handler(self, handler):
        """Wrap a handler to inject self as the first argument."""

        async def wrapped(session, request):
            return await handler(self, session, request)

        return wrapped

    def _create_session(self, client_id: str, websocket) -> StreamingSession:
        return StreamingSession(
            session_id=client_id,
            client=websocket,
            connector=self._connector,
            sample_rate=self.config.sample_rate,
            credential_check=lambda: self.config.api_key_configured,
        )

    def create_batch_client(self, session=None) -> TranscriptionClient:
        """Batch client bound to this server's provider settings."""
        return TranscriptionClient.from_config(self.config, session=session)

    async def _connect_upstream(self, sample_rate: int) -> UpstreamChannel:
        return await UpstreamChannel.connect(
            self.config.streaming_url,
            self.config.api_key,
            sample_rate,
            format_turns=self.config.format_turns,
            open_timeout=self.config.open_timeout,
        )

    async def handle_client(self, websocket, path=None):
        """Handle one client connection for its whole lifetime.

        Args:
            websocket: The WebSocket connection
            path: Optional path (for compatibility)

        """
        client_id = str(uuid.uuid4())[:8]
        log = session_logger(logger, client_id)
        remote = getattr(websocket, "remote_address", None) or ("unknown",)

        self.connected_clients.add(websocket)
        log.info(f"Client connected from {remote[0]}")
        try:
            async with self.registry.open(client_id, websocket) as session:
                async for message in websocket:
                    try:
                        if isinstance(message, bytes):
                            await session.handle_audio(message)
                        else:
                            await self.process_message(session, message)
                    except MalformedMessage as e:
                        log.warning(str(e))
                        await send_error(websocket, str(e))
        except websockets.exceptions.ConnectionClosed:
            log.debug("Client disconnected")
        except Exception as e:
            log.exception(f"Error handling client: {e}")
        finally:
            self.connected_clients.discard(websocket)
            log.info("Client removed")

    async def process_message(self, session: StreamingSession, raw: str):
        """Validate one control frame and dispatch it to its handler.

        Raises:
            MalformedMessage: If the frame cannot be parsed or validated

        """
        request = handlers.parse_message(raw)
        handler = self.message_handlers[request.type]
        await handler(session, request)

    async def start_server(self, host=None, port=None, http_port=None):
        """Start the relay and HTTP servers and run until cancelled."""
        from .main import start_server as _start_server

        await _start_server(self, host, port, http_port)

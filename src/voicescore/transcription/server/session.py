"""Streaming relay session.

StreamingSession bridges one client websocket to one provider streaming
socket:
- start_streaming opens the provider socket in the background
- audio frames are forwarded verbatim while the session is streaming
- formatted provider turns are relayed as transcript_update messages
- stop, provider failure and client disconnect all tear down both sides

All handlers for a session run one at a time under the session lock, so
frames and transcripts are forwarded in arrival order.
"""

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

import websockets

from ...core.config import setup_logging
from ...core.logging import session_logger
from ...schemas import ErrorMessage, StreamingStarted, StreamingStopped
from ..exceptions import ChannelClosed, TranscriptionError
from ..streaming.events import translate_event
from ..streaming.upstream import UpstreamChannel

logger = setup_logging(__name__)

UpstreamConnector = Callable[[int], Awaitable[UpstreamChannel]]

GENERIC_STREAMING_ERROR = "Streaming transcription error"


class SessionState(Enum):
    """State of a relay session."""

    IDLE = "idle"
    AWAITING_UPSTREAM = "awaiting_upstream"
    STREAMING = "streaming"
    STOPPING = "stopping"
    ERRORED = "errored"
    CLOSED = "closed"


@dataclass
class SessionMetrics:
    """Counters for one relay session."""

    session_id: str
    frames_forwarded: int = 0
    frames_dropped: int = 0
    bytes_forwarded: int = 0
    transcripts_sent: int = 0
    events_discarded: int = 0

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "frames_forwarded": self.frames_forwarded,
            "frames_dropped": self.frames_dropped,
            "bytes_forwarded": self.bytes_forwarded,
            "transcripts_sent": self.transcripts_sent,
            "events_discarded": self.events_discarded,
        }


async def send_message(websocket, payload: dict) -> bool:
    """Send a JSON message to the client.

    Returns:
        False if the client connection is already gone

    """
    try:
        await websocket.send(json.dumps(payload))
        return True
    except websockets.exceptions.ConnectionClosed as e:
        logger.warning(f"WebSocket connection closed while sending {payload.get('type')}: {e}")
        return False


async def send_error(websocket, message: str) -> bool:
    """Send an error message to the client."""
    return await send_message(websocket, ErrorMessage(message=message).model_dump())


class StreamingSession:
    """Per-client relay state machine.

    Example:
        session = StreamingSession("abc123", websocket, connector, sample_rate=16000)
        await session.start()             # client sent start_streaming
        await session.handle_audio(frame)  # client sent audio
        await session.stop()              # client sent stop_streaming
        await session.close()             # client disconnected

    """

    def __init__(
        self,
        session_id: str,
        client,
        connector: UpstreamConnector,
        sample_rate: int = 16000,
        credential_check: Callable[[], bool] | None = None,
    ):
        """Initialize relay session.

        Args:
            session_id: Unique session identifier
            client: Client websocket (anything with ``async send(str)``)
            connector: Coroutine factory opening the provider channel for a sample rate
            sample_rate: Declared PCM sample rate of the client's frames
            credential_check: Returns False when no provider credential is configured

        """
        self.session_id = session_id
        self.client = client
        self.sample_rate = sample_rate
        self._connector = connector
        self._credential_check = credential_check or (lambda: True)

        self._state = SessionState.IDLE
        self._lock = asyncio.Lock()
        self._upstream: UpstreamChannel | None = None
        self._connect_task: asyncio.Task | None = None
        self._reader_task: asyncio.Task | None = None

        self.created_at = time.time()
        self.started_at: float | None = None
        self.metrics = SessionMetrics(session_id=session_id)

        self._log = session_logger(logger, session_id)
        self._log.debug("Session created")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_streaming(self) -> bool:
        return self._state is SessionState.STREAMING

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSED

    @property
    def has_upstream(self) -> bool:
        return self._upstream is not None

    def _set_state(self, new_state: SessionState) -> None:
        self._log.debug(f"{self._state.value} -> {new_state.value}")
        self._state = new_state

    # ------------------------------------------------------------------
    # Client-triggered transitions
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Idle -> AwaitingUpstream. Opens the provider socket in the background."""
        async with self._lock:
            if self._state is SessionState.CLOSED:
                await send_error(self.client, "Streaming session already finished")
                return
            if self._state is not SessionState.IDLE:
                self._log.warning(f"start_streaming ignored in state {self._state.value}")
                await send_error(self.client, "Streaming already started")
                return
            if not self._credential_check():
                self._log.error("Provider credential not configured")
                await send_error(self.client, "AssemblyAI API key not configured")
                return

            self._set_state(SessionState.AWAITING_UPSTREAM)
            self._connect_task = asyncio.create_task(self._open_upstream())

    async def handle_audio(self, frame: bytes) -> None:
        """Forward one frame upstream, or drop it if the session is not streaming."""
        async with self._lock:
            upstream = self._upstream
            if self._state is not SessionState.STREAMING or upstream is None or not upstream.is_open:
                self.metrics.frames_dropped += 1
                if self.metrics.frames_dropped == 1 or self.metrics.frames_dropped % 100 == 0:
                    self._log.debug(
                        f"Dropped frame in state {self._state.value} "
                        f"({self.metrics.frames_dropped} dropped)"
                    )
                return

            try:
                await upstream.send_audio(frame)
            except ChannelClosed as e:
                await self._fail(str(e) or GENERIC_STREAMING_ERROR)
                return

            self.metrics.frames_forwarded += 1
            self.metrics.bytes_forwarded += len(frame)

    async def stop(self) -> None:
        """Streaming -> Stopping -> Closed on client request."""
        async with self._lock:
            if self._state not in (SessionState.AWAITING_UPSTREAM, SessionState.STREAMING):
                self._log.debug(f"stop_streaming ignored in state {self._state.value}")
                return

            self._set_state(SessionState.STOPPING)
            await self._release_upstream()
            await send_message(self.client, StreamingStopped().model_dump())
            self._set_state(SessionState.CLOSED)
            self._log.info(f"Session stopped: {self.metrics.to_dict()}")

    async def close(self) -> None:
        """Forced cleanup on client disconnect.

        Idempotent, safe when the provider socket was never opened, and never
        emits client messages.
        """
        async with self._lock:
            if self._state is SessionState.CLOSED:
                return
            await self._release_upstream()
            self._set_state(SessionState.CLOSED)
            self._log.debug("Session closed")

    # ------------------------------------------------------------------
    # Provider-triggered transitions
    # ------------------------------------------------------------------

    async def _open_upstream(self) -> None:
        upstream: UpstreamChannel | None = None
        try:
            upstream = await self._connector(self.sample_rate)
            async with self._lock:
                if self._state is not SessionState.AWAITING_UPSTREAM:
                    await upstream.close()
                    return
                self._upstream = upstream
                await self._on_upstream_ready()
        except asyncio.CancelledError:
            if upstream is not None and self._upstream is not upstream:
                await upstream.close()
            raise
        except Exception as e:
            if not isinstance(e, TranscriptionError):
                self._log.exception(f"Unexpected upstream open error: {e}")
            else:
                self._log.error(f"Upstream open failed: {e}")
            async with self._lock:
                await self._fail(str(e) or GENERIC_STREAMING_ERROR)
        finally:
            self._connect_task = None

    async def _on_upstream_ready(self) -> None:
        """AwaitingUpstream -> Streaming."""
        self._set_state(SessionState.STREAMING)
        self.started_at = time.time()
        self._reader_task = asyncio.create_task(self._pump_upstream(self._upstream))
        await send_message(self.client, StreamingStarted().model_dump())
        self._log.info(f"Session streaming (sample_rate={self.sample_rate})")

    async def _pump_upstream(self, upstream: UpstreamChannel) -> None:
        """Relay provider events until the provider socket closes."""
        reason = GENERIC_STREAMING_ERROR
        try:
            async for data in upstream.events():
                async with self._lock:
                    await self._on_upstream_event(data)
            reason = upstream.close_reason or GENERIC_STREAMING_ERROR
        except ChannelClosed as e:
            reason = str(e) or GENERIC_STREAMING_ERROR
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._log.exception(f"Upstream reader error: {e}")
            reason = str(e) or GENERIC_STREAMING_ERROR

        async with self._lock:
            # Closed by us (stop/close) or already failed
            if self._upstream is not upstream or self._state is not SessionState.STREAMING:
                return
            self._log.warning(f"Upstream closed unexpectedly: {reason}")
            await self._fail(reason)

    async def _on_upstream_event(self, data: dict) -> None:
        if self._state is not SessionState.STREAMING:
            return
        event = translate_event(data)
        if event is None:
            self.metrics.events_discarded += 1
            return
        if await send_message(self.client, event.to_message()):
            self.metrics.transcripts_sent += 1

    async def _fail(self, message: str) -> None:
        """Any live state -> Errored -> Closed, reporting one error to the client."""
        if self._state in (SessionState.CLOSED, SessionState.ERRORED):
            return
        self._set_state(SessionState.ERRORED)
        self._log.error(f"Session errored: {message}")
        await send_error(self.client, message)
        await self._release_upstream()
        self._set_state(SessionState.CLOSED)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def _release_upstream(self) -> None:
        """Cancel pending open, stop the reader, close the provider socket.

        Never raises; each step tolerates the resource being absent or dead.
        """
        current = asyncio.current_task()

        connect_task = self._connect_task
        self._connect_task = None
        if connect_task is not None and connect_task is not current and not connect_task.done():
            connect_task.cancel()
            try:
                await connect_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                self._log.warning(f"Error cancelling upstream open: {e}")

        upstream = self._upstream
        self._upstream = None

        reader_task = self._reader_task
        self._reader_task = None
        if reader_task is not None and reader_task is not current and not reader_task.done():
            reader_task.cancel()
            try:
                await reader_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                self._log.warning(f"Error stopping upstream reader: {e}")

        if upstream is not None:
            await upstream.close()

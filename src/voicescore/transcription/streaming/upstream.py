"""Streaming channel to the transcription provider.

UpstreamChannel owns one provider websocket for one relay session:
- connect: open the socket with sample rate, turn formatting and credential
- send_audio: forward one PCM16 frame verbatim
- events: iterate decoded provider events until the socket closes
- close: idempotent release
"""

import asyncio
import json
from collections.abc import AsyncIterator
from urllib.parse import urlencode

import websockets
from websockets.protocol import State

from ...core.config import setup_logging
from ..exceptions import ChannelClosed, CredentialMissing, UpstreamUnavailable

logger = setup_logging(__name__)


def build_streaming_url(base_url: str, sample_rate: int, format_turns: bool = True) -> str:
    """Append the session query parameters to the provider streaming URL."""
    query = urlencode({"sample_rate": sample_rate, "format_turns": "true" if format_turns else "false"})
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{query}"


def _close_reason(exc: websockets.exceptions.ConnectionClosed) -> str:
    frame = exc.rcvd or exc.sent
    if frame is not None and frame.reason:
        return frame.reason
    return str(exc) or "Streaming transcription error"


class UpstreamChannel:
    """One provider streaming socket."""

    def __init__(self, websocket, url: str = ""):
        self._websocket = websocket
        self.url = url
        self._closed = False

    @classmethod
    async def connect(
        cls,
        url: str,
        api_key: str,
        sample_rate: int,
        format_turns: bool = True,
        open_timeout: float = 10.0,
    ) -> "UpstreamChannel":
        """Open a streaming socket to the provider.

        Raises:
            CredentialMissing: If no credential is configured
            UpstreamUnavailable: If the socket cannot be opened

        """
        if not api_key:
            raise CredentialMissing()

        full_url = build_streaming_url(url, sample_rate, format_turns)
        try:
            websocket = await websockets.connect(
                full_url,
                additional_headers={"Authorization": api_key},
                open_timeout=open_timeout,
            )
        except (OSError, asyncio.TimeoutError, websockets.exceptions.InvalidHandshake) as e:
            raise UpstreamUnavailable(f"Could not open streaming connection: {e}") from e

        logger.info(f"Upstream streaming socket open ({url}, sample_rate={sample_rate})")
        return cls(websocket, full_url)

    @property
    def is_open(self) -> bool:
        return not self._closed and self._websocket.state is State.OPEN

    @property
    def close_reason(self) -> str:
        """Reason text of the closing handshake, empty while open."""
        return getattr(self._websocket, "close_reason", None) or ""

    async def send_audio(self, frame: bytes) -> None:
        """Forward one audio frame unmodified.

        Raises:
            ChannelClosed: If the socket closed underneath us

        """
        try:
            await self._websocket.send(frame)
        except websockets.exceptions.ConnectionClosed as e:
            raise ChannelClosed(_close_reason(e)) from e

    async def events(self) -> AsyncIterator[dict]:
        """Yield decoded provider events until the socket closes.

        A normal close ends iteration. An abnormal close, or an event carrying
        an ``error`` field, raises ChannelClosed with the provider's text.
        """
        try:
            async for message in self._websocket:
                if isinstance(message, bytes):
                    logger.debug(f"Ignoring binary upstream frame ({len(message)} bytes)")
                    continue
                try:
                    data = json.loads(message)
                except json.JSONDecodeError as e:
                    logger.warning(f"Error parsing upstream message: {e}")
                    continue
                if not isinstance(data, dict):
                    continue
                if data.get("error"):
                    raise ChannelClosed(str(data["error"]))
                yield data
        except websockets.exceptions.ConnectionClosedError as e:
            raise ChannelClosed(_close_reason(e)) from e

    async def close(self) -> None:
        """Close the socket. Safe to call repeatedly or on a dead socket."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._websocket.close()
            logger.debug("Upstream streaming socket closed")
        except Exception as e:
            logger.warning(f"Error closing upstream socket: {e}")

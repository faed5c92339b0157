#!/usr/bin/env python3
"""WebSocket client for streaming PCM audio through the relay.

This module provides the RelayClient class, the programmatic counterpart of
the browser recorder: it opens a relay connection, starts streaming, sends
quantized PCM16 frames and collects transcript updates.
"""

import asyncio
import json
from collections.abc import Callable

import numpy as np
import websockets

from ...audio.conversion import encode_frame
from ...core.config import setup_logging
from ..exceptions import ChannelClosed, StreamingError

logger = setup_logging(__name__)

TranscriptCallback = Callable[[str], None]


class RelayClient:
    """Client side of the relay control channel.

    Example:
        async with RelayClient("ws://localhost:3001") as client:
            await client.start_streaming()
            for frame in frames:
                await client.send_frame(frame)
            transcripts = await client.stop_streaming()

    """

    def __init__(
        self,
        url: str,
        on_transcript: TranscriptCallback | None = None,
        binary_frames: bool = False,
        response_timeout: float = 15.0,
    ):
        """Initialize relay client.

        Args:
            url: Relay websocket URL
            on_transcript: Optional callback invoked for each transcript update
            binary_frames: Send audio as binary websocket frames instead of
                JSON ``audio_data`` messages
            response_timeout: Seconds to wait for streaming_started/streaming_stopped

        """
        self.url = url
        self.on_transcript = on_transcript
        self.binary_frames = binary_frames
        self.response_timeout = response_timeout

        self.websocket = None
        self.transcripts: list[str] = []
        self.frames_sent = 0

        self._listener_task: asyncio.Task | None = None
        self._control_messages: asyncio.Queue = asyncio.Queue()
        self._last_error: str | None = None

    async def __aenter__(self) -> "RelayClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def last_error(self) -> str | None:
        return self._last_error

    async def connect(self) -> None:
        """Connect to the relay and start the background listener."""
        try:
            self.websocket = await websockets.connect(self.url)
        except (OSError, websockets.exceptions.InvalidHandshake) as e:
            raise ChannelClosed(f"Could not connect to relay at {self.url}: {e}") from e
        logger.info(f"Connected to relay {self.url}")
        self._listener_task = asyncio.create_task(self._listen())

    async def _listen(self) -> None:
        """Route transcript updates to the callback; queue everything else."""
        try:
            async for message in self.websocket:
                try:
                    data = json.loads(message)
                except json.JSONDecodeError as e:
                    logger.warning(f"Invalid JSON received from relay: {e}")
                    continue
                if not isinstance(data, dict):
                    logger.warning(f"Ignoring non-object relay message: {message[:200]}")
                    continue

                msg_type = data.get("type")
                if msg_type == "transcript_update":
                    text = data.get("transcript", "")
                    self.transcripts.append(text)
                    if self.on_transcript:
                        try:
                            self.on_transcript(text)
                        except Exception as e:
                            logger.error(f"Error in transcript callback: {e}")
                    continue

                if msg_type == "error":
                    self._last_error = data.get("message", "Unknown relay error")
                    logger.warning(f"Relay error: {self._last_error}")
                await self._control_messages.put(data)
        except websockets.exceptions.ConnectionClosed:
            logger.debug("Relay connection closed during listen")
        finally:
            await self._control_messages.put({"type": "closed"})

    async def _expect(self, expected: str) -> dict:
        try:
            data = await asyncio.wait_for(self._control_messages.get(), timeout=self.response_timeout)
        except asyncio.TimeoutError as e:
            raise StreamingError(f"Timed out waiting for {expected}") from e
        msg_type = data.get("type")
        if msg_type == expected:
            return data
        if msg_type == "error":
            raise StreamingError(data.get("message", "Unknown relay error"))
        if msg_type == "closed":
            raise ChannelClosed(f"Relay closed before {expected}")
        raise StreamingError(f"Unexpected relay message while waiting for {expected}: {data}")

    async def _send_json(self, payload: dict) -> None:
        if self.websocket is None:
            raise RuntimeError("Not connected to relay")
        try:
            await self.websocket.send(json.dumps(payload))
        except websockets.exceptions.ConnectionClosed as e:
            raise ChannelClosed(f"Relay connection closed: {e}") from e

    async def start_streaming(self) -> None:
        """Request streaming and wait until the relay reports it has started."""
        await self._send_json({"type": "start_streaming"})
        await self._expect("streaming_started")
        logger.info("Relay streaming started")

    async def send_frame(self, samples: np.ndarray | bytes) -> None:
        """Send one audio frame.

        Args:
            samples: Float samples in [-1, 1] (quantized here) or ready PCM16 bytes

        """
        frame = samples if isinstance(samples, bytes) else encode_frame(samples)
        if self.binary_frames:
            if self.websocket is None:
                raise RuntimeError("Not connected to relay")
            try:
                await self.websocket.send(frame)
            except websockets.exceptions.ConnectionClosed as e:
                raise ChannelClosed(f"Relay connection closed: {e}") from e
        else:
            await self._send_json({"type": "audio_data", "audio": list(frame)})
        self.frames_sent += 1

    async def stop_streaming(self) -> list[str]:
        """Request stop, wait for the acknowledgement, return collected transcripts."""
        await self._send_json({"type": "stop_streaming"})
        await self._expect("streaming_stopped")
        logger.info(f"Relay streaming stopped ({self.frames_sent} frames, {len(self.transcripts)} transcripts)")
        return list(self.transcripts)

    async def close(self) -> None:
        if self.websocket is not None:
            try:
                await self.websocket.close()
            except Exception as e:
                logger.debug(f"Error closing relay connection: {e}")
        if self._listener_task is not None:
            try:
                await asyncio.wait_for(self._listener_task, timeout=2.0)
            except asyncio.TimeoutError:
                self._listener_task.cancel()
                try:
                    await self._listener_task
                except asyncio.CancelledError:
                    pass
            self._listener_task = None
        self.websocket = None


__all__ = ["RelayClient"]

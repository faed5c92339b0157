"""Relay round trips over a real localhost websocket.

The provider side is replaced by an in-memory channel; everything between
RelayClient and the session runs for real.
"""

import numpy as np
import pytest
import websockets

from fakes import FakeConnector, wait_until
from voicescore.audio import encode_frame
from voicescore.core.config import ConfigLoader
from voicescore.transcription.client import RelayClient
from voicescore.transcription.exceptions import StreamingError
from voicescore.transcription.server import RelayServer

pytestmark = pytest.mark.integration


def _relay(tmp_path, connector):
    return RelayServer(config=ConfigLoader(tmp_path / "missing.toml"), connector=connector)


def _url(ws_server):
    port = ws_server.sockets[0].getsockname()[1]
    return f"ws://127.0.0.1:{port}"


@pytest.mark.asyncio
@pytest.mark.parametrize("binary_frames", [False, True])
async def test_stream_frames_and_receive_transcripts(tmp_path, monkeypatch, binary_frames):
    monkeypatch.setenv("ASSEMBLYAI_API_KEY", "test-key")
    connector = FakeConnector()
    relay = _relay(tmp_path, connector)
    received = []

    async with websockets.serve(relay.handle_client, "127.0.0.1", 0) as ws_server:
        async with RelayClient(_url(ws_server), on_transcript=received.append, binary_frames=binary_frames) as client:
            await client.start_streaming()

            await client.send_frame(np.array([0.5, -0.5, 1.0], dtype=np.float32))
            await client.send_frame(b"\x01\x02")

            connector.upstream.push({"type": "Turn", "turn_is_formatted": False, "transcript": "hello"})
            connector.upstream.push({"type": "Turn", "turn_is_formatted": True, "transcript": "Hello."})
            await wait_until(lambda: received == ["Hello."])

            transcripts = await client.stop_streaming()

        await wait_until(lambda: len(relay.registry) == 0)

    assert transcripts == ["Hello."]
    assert connector.upstream.sent == [encode_frame(np.array([0.5, -0.5, 1.0], dtype=np.float32)), b"\x01\x02"]
    assert connector.upstream.closed


@pytest.mark.asyncio
async def test_missing_credential_surfaces_as_streaming_error(tmp_path):
    connector = FakeConnector()
    relay = _relay(tmp_path, connector)

    async with websockets.serve(relay.handle_client, "127.0.0.1", 0) as ws_server:
        async with RelayClient(_url(ws_server)) as client:
            with pytest.raises(StreamingError, match="AssemblyAI API key not configured"):
                await client.start_streaming()
            assert client.last_error == "AssemblyAI API key not configured"

    assert connector.calls == []


@pytest.mark.asyncio
async def test_client_disconnect_tears_down_upstream(tmp_path, monkeypatch):
    monkeypatch.setenv("ASSEMBLYAI_API_KEY", "test-key")
    connector = FakeConnector()
    relay = _relay(tmp_path, connector)

    async with websockets.serve(relay.handle_client, "127.0.0.1", 0) as ws_server:
        client = RelayClient(_url(ws_server))
        await client.connect()
        await client.start_streaming()
        await client.close()

        await wait_until(lambda: connector.upstream.closed and len(relay.registry) == 0)

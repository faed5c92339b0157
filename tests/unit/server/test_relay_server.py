import asyncio
import json
import sys
import types
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from fakes import FakeConnector, wait_until
from voicescore.core.config import ConfigLoader
from voicescore.transcription.server.core import RelayServer


class _QueuedWebSocket:
    """Client socket fed by the test; pushing None ends the connection."""

    def __init__(self):
        self.remote_address = ("127.0.0.1", 9999)
        self.messages = []
        self._incoming = asyncio.Queue()

    def push(self, message):
        self._incoming.put_nowait(message)

    async def send(self, message):
        self.messages.append(json.loads(message))

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self._incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message


@pytest.fixture
def configured(monkeypatch, tmp_path):
    monkeypatch.setenv("ASSEMBLYAI_API_KEY", "test-key")
    return ConfigLoader(tmp_path / "missing.toml")


@pytest.mark.asyncio
async def test_malformed_frames_get_error_replies(configured):
    server = RelayServer(config=configured, connector=FakeConnector())
    ws = _QueuedWebSocket()
    task = asyncio.create_task(server.handle_client(ws))

    ws.push("not json")
    ws.push('{"type": "subscribe"}')
    ws.push(None)
    await task

    assert ws.messages == [
        {"type": "error", "message": "Invalid message format"},
        {"type": "error", "message": "Unknown message type: subscribe"},
    ]
    assert len(server.registry) == 0
    assert server.connected_clients == set()


@pytest.mark.asyncio
async def test_json_and_binary_audio_are_relayed(configured):
    connector = FakeConnector()
    server = RelayServer(config=configured, connector=connector)
    ws = _QueuedWebSocket()
    task = asyncio.create_task(server.handle_client(ws))

    ws.push(json.dumps({"type": "start_streaming"}))
    await wait_until(lambda: ws.messages == [{"type": "streaming_started"}])
    assert server.registry.streaming_count == 1

    ws.push(json.dumps({"type": "audio_data", "audio": [1, 2, 3, 4]}))
    ws.push(b"\x05\x06")
    ws.push(json.dumps({"type": "stop_streaming"}))
    await wait_until(lambda: len(ws.messages) == 2)
    ws.push(None)
    await task

    assert connector.upstream.sent == [b"\x01\x02\x03\x04", b"\x05\x06"]
    assert ws.messages[-1] == {"type": "streaming_stopped"}
    assert connector.upstream.closed


@pytest.mark.asyncio
async def test_disconnect_mid_stream_releases_upstream(configured):
    connector = FakeConnector()
    server = RelayServer(config=configured, connector=connector)
    ws = _QueuedWebSocket()
    task = asyncio.create_task(server.handle_client(ws))

    ws.push(json.dumps({"type": "start_streaming"}))
    await wait_until(lambda: len(ws.messages) == 1)
    ws.push(None)
    await task

    assert connector.upstream.closed
    assert len(server.registry) == 0
    assert ws.messages == [{"type": "streaming_started"}]


@pytest.mark.asyncio
async def test_sessions_are_isolated_per_connection(configured):
    connector = FakeConnector()
    server = RelayServer(config=configured, connector=connector)
    streaming_ws, idle_ws = _QueuedWebSocket(), _QueuedWebSocket()
    tasks = [asyncio.create_task(server.handle_client(ws)) for ws in (streaming_ws, idle_ws)]

    streaming_ws.push(json.dumps({"type": "start_streaming"}))
    await wait_until(lambda: len(streaming_ws.messages) == 1)
    idle_ws.push(b"\x09\x09")
    idle_ws.push(None)
    await tasks[1]

    assert connector.upstream.sent == []
    assert idle_ws.messages == []
    assert len(server.registry) == 1

    streaming_ws.push(None)
    await tasks[0]


@pytest.mark.asyncio
async def test_start_without_credential_reports_error(tmp_path):
    connector = FakeConnector()
    server = RelayServer(config=ConfigLoader(tmp_path / "missing.toml"), connector=connector)
    ws = _QueuedWebSocket()
    task = asyncio.create_task(server.handle_client(ws))

    ws.push(json.dumps({"type": "start_streaming"}))
    ws.push(None)
    await task

    assert ws.messages == [{"type": "error", "message": "AssemblyAI API key not configured"}]
    assert connector.calls == []


@pytest.mark.asyncio
async def test_start_server_delegates_via_lazy_import(monkeypatch):
    start_mock = AsyncMock()
    fake_module = types.ModuleType("voicescore.transcription.server.main")
    fake_module.start_server = start_mock
    monkeypatch.setitem(sys.modules, "voicescore.transcription.server.main", fake_module)

    server = SimpleNamespace()
    await RelayServer.start_server(server, "127.0.0.1", 9999, 9998)

    start_mock.assert_awaited_once_with(server, "127.0.0.1", 9999, 9998)

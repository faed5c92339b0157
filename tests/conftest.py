"""Shared pytest fixtures.

Logs go to a throwaway directory and no user config file or provider
credential leaks into the tests.
"""

import json
import os
import tempfile

import pytest

os.environ.setdefault("VOICESCORE_LOG_DIR", tempfile.mkdtemp(prefix="voicescore-logs-"))


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    from voicescore.core.config import reset_config

    monkeypatch.setenv("VOICESCORE_CONFIG", str(tmp_path / "missing-config.toml"))
    for name in ("ASSEMBLYAI_API_KEY", "VOICESCORE_HOST", "VOICESCORE_WS_PORT", "VOICESCORE_HTTP_PORT"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def write_config(tmp_path):
    """Write a [voicescore] TOML file and return its path."""

    def _write(body: str):
        path = tmp_path / "config.toml"
        path.write_text(body)
        return path

    return _write


class FakeClientSocket:
    """Client websocket stand-in that records decoded JSON messages."""

    def __init__(self):
        self.remote_address = ("127.0.0.1", 9999)
        self.messages = []

    async def send(self, message):
        self.messages.append(json.loads(message))

    def types(self):
        return [message["type"] for message in self.messages]


@pytest.fixture
def client_socket():
    return FakeClientSocket()

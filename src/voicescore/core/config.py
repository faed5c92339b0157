#!/usr/bin/env python3
"""Configuration loader that reads from config files."""
import os
from pathlib import Path
from typing import Any

import tomllib

DEFAULT_CONFIG: dict[str, Any] = {
    "provider": {
        "api_key": "",
        "base_url": "https://api.assemblyai.com/v2",
        "streaming_url": "wss://streaming.assemblyai.com/v3/ws",
        "speech_model": "universal",
        "request_timeout_s": 30.0,
    },
    "batch": {
        "poll_interval_s": 3.0,
        "poll_timeout_s": 600.0,
        "max_poll_attempts": 0,
        "default_duration_s": 60,
        "max_upload_mb": 10,
    },
    "streaming": {
        "sample_rate": 16000,
        "format_turns": True,
        "open_timeout_s": 10.0,
    },
    "server": {
        "host": "localhost",
        "bind_host": "0.0.0.0",
        "websocket_port": 3001,
        "http_port": 3002,
        "max_message_mb": 10,
        "ping_interval_s": 30,
        "ping_timeout_s": 10,
    },
}


class ConfigLoader:
    """Load configuration from config files."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        if config_path is None:
            config_path = self._default_config_path()

        self.config_file = str(config_path)
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path, "rb") as f:
                full_config = tomllib.load(f)
            file_config = full_config.get("voicescore", {})
        else:
            file_config = {}

        self._config = self._merge_dicts(DEFAULT_CONFIG, file_config)

    def _default_config_path(self) -> Path:
        env_path = os.environ.get("VOICESCORE_CONFIG")
        if env_path:
            return Path(env_path)
        return Path.home() / ".voicescore" / "config.toml"

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged = base.copy()
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_dicts(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get a value using dot notation (e.g., 'server.websocket_port')"""
        keys = key_path.split(".")
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    # Provider
    @property
    def api_key(self) -> str:
        """Provider credential.

        Priority order:
        1. Environment variable ASSEMBLYAI_API_KEY
        2. Config file value
        """
        env_key = os.environ.get("ASSEMBLYAI_API_KEY")
        if env_key:
            return env_key.strip()
        return str(self.get("provider.api_key", "") or "").strip()

    @property
    def api_key_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def provider_base_url(self) -> str:
        return str(self.get("provider.base_url", "https://api.assemblyai.com/v2")).rstrip("/")

    @property
    def streaming_url(self) -> str:
        return str(self.get("provider.streaming_url", "wss://streaming.assemblyai.com/v3/ws"))

    @property
    def speech_model(self) -> str:
        return str(self.get("provider.speech_model", "universal"))

    @property
    def request_timeout(self) -> float:
        return float(self.get("provider.request_timeout_s", 30.0))

    # Batch path
    @property
    def poll_interval(self) -> float:
        return float(self.get("batch.poll_interval_s", 3.0))

    @property
    def poll_timeout(self) -> float | None:
        """Overall polling deadline in seconds, or None for no deadline."""
        value = float(self.get("batch.poll_timeout_s", 600.0))
        return value if value > 0 else None

    @property
    def max_poll_attempts(self) -> int | None:
        value = int(self.get("batch.max_poll_attempts", 0))
        return value if value > 0 else None

    @property
    def default_duration(self) -> int:
        return int(self.get("batch.default_duration_s", 60))

    @property
    def max_upload_bytes(self) -> int:
        return int(float(self.get("batch.max_upload_mb", 10)) * 1024 * 1024)

    # Streaming relay
    @property
    def sample_rate(self) -> int:
        return int(self.get("streaming.sample_rate", 16000))

    @property
    def format_turns(self) -> bool:
        return bool(self.get("streaming.format_turns", True))

    @property
    def open_timeout(self) -> float:
        return float(self.get("streaming.open_timeout_s", 10.0))

    # Server
    @property
    def host(self) -> str:
        return os.environ.get("VOICESCORE_HOST") or str(self.get("server.host", "localhost"))

    @property
    def bind_host(self) -> str:
        return str(self.get("server.bind_host", "0.0.0.0"))

    @property
    def websocket_port(self) -> int:
        env_port = os.environ.get("VOICESCORE_WS_PORT")
        if env_port:
            return int(env_port)
        return int(self.get("server.websocket_port", 3001))

    @property
    def http_port(self) -> int:
        env_port = os.environ.get("VOICESCORE_HTTP_PORT")
        if env_port:
            return int(env_port)
        return int(self.get("server.http_port", 3002))

    @property
    def max_message_bytes(self) -> int:
        return int(float(self.get("server.max_message_mb", 10)) * 1024 * 1024)

    @property
    def ping_interval(self) -> float:
        return float(self.get("server.ping_interval_s", 30))

    @property
    def ping_timeout(self) -> float:
        return float(self.get("server.ping_timeout_s", 10))

    def as_dict(self) -> dict[str, Any]:
        """Summary safe to log (credential masked)."""
        return {
            "config_file": self.config_file,
            "api_key_configured": self.api_key_configured,
            "provider_base_url": self.provider_base_url,
            "streaming_url": self.streaming_url,
            "speech_model": self.speech_model,
            "sample_rate": self.sample_rate,
            "poll_interval": self.poll_interval,
            "poll_timeout": self.poll_timeout,
            "max_poll_attempts": self.max_poll_attempts,
            "websocket_port": self.websocket_port,
            "http_port": self.http_port,
        }


# Global singleton instance
_config_loader: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Get the global config loader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def reset_config() -> None:
    """Drop the global loader so the next get_config() re-reads the file."""
    global _config_loader
    _config_loader = None


# Re-export logging functions
from .logging import setup_logging  # noqa: E402, F401

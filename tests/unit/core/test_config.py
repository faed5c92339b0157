from voicescore.core.config import ConfigLoader, get_config, reset_config


def test_defaults_without_config_file(tmp_path):
    config = ConfigLoader(tmp_path / "nope.toml")

    assert config.api_key == ""
    assert config.api_key_configured is False
    assert config.provider_base_url == "https://api.assemblyai.com/v2"
    assert config.streaming_url == "wss://streaming.assemblyai.com/v3/ws"
    assert config.sample_rate == 16000
    assert config.format_turns is True
    assert config.websocket_port == 3001
    assert config.http_port == 3002
    assert config.default_duration == 60
    assert config.max_upload_bytes == 10 * 1024 * 1024
    assert config.poll_interval == 3.0
    assert config.poll_timeout == 600.0
    assert config.max_poll_attempts is None


def test_file_values_merge_over_defaults(write_config):
    path = write_config(
        """
[voicescore.provider]
api_key = "  file-key  "
speech_model = "best"

[voicescore.batch]
poll_interval_s = 0.5
poll_timeout_s = 0
max_poll_attempts = 20

[voicescore.server]
websocket_port = 4001
"""
    )
    config = ConfigLoader(path)

    assert config.api_key == "file-key"
    assert config.speech_model == "best"
    assert config.poll_interval == 0.5
    assert config.poll_timeout is None
    assert config.max_poll_attempts == 20
    assert config.websocket_port == 4001
    # Untouched keys in a merged section keep their defaults
    assert config.http_port == 3002
    assert config.get("server.bind_host") == "0.0.0.0"


def test_environment_overrides_file(write_config, monkeypatch):
    path = write_config('[voicescore.provider]\napi_key = "file-key"\n')
    monkeypatch.setenv("ASSEMBLYAI_API_KEY", " env-key\n")
    monkeypatch.setenv("VOICESCORE_WS_PORT", "5001")
    monkeypatch.setenv("VOICESCORE_HTTP_PORT", "5002")
    monkeypatch.setenv("VOICESCORE_HOST", "relay.local")

    config = ConfigLoader(path)

    assert config.api_key == "env-key"
    assert config.websocket_port == 5001
    assert config.http_port == 5002
    assert config.host == "relay.local"


def test_get_with_missing_path_returns_default(tmp_path):
    config = ConfigLoader(tmp_path / "nope.toml")
    assert config.get("provider.missing.deeper", "fallback") == "fallback"
    assert config.get("nothing") is None


def test_as_dict_never_contains_the_credential(monkeypatch, tmp_path):
    monkeypatch.setenv("ASSEMBLYAI_API_KEY", "secret-key")
    summary = ConfigLoader(tmp_path / "nope.toml").as_dict()
    assert summary["api_key_configured"] is True
    assert "secret-key" not in repr(summary)


def test_get_config_singleton_reads_env_path(write_config, monkeypatch):
    path = write_config("[voicescore.streaming]\nsample_rate = 8000\n")
    monkeypatch.setenv("VOICESCORE_CONFIG", str(path))
    reset_config()

    first = get_config()
    assert first is get_config()
    assert first.sample_rate == 8000

    reset_config()
    assert get_config() is not first

import logging
from logging.handlers import RotatingFileHandler

from voicescore.core.logging import LogSettings, SessionLogAdapter, build_handlers, session_logger


def test_settings_from_env(tmp_path):
    settings = LogSettings.from_env(
        {
            "VOICESCORE_LOG_LEVEL": "debug",
            "VOICESCORE_CONSOLE_LOGS": "Yes",
            "VOICESCORE_LOG_DIR": str(tmp_path),
            "VOICESCORE_LOG_FILE": "relay.log",
            "VOICESCORE_LOG_MAX_BYTES": "2048",
            "VOICESCORE_LOG_BACKUP_COUNT": "2",
        }
    )

    assert settings.level == logging.DEBUG
    assert settings.console is True
    assert settings.log_path == tmp_path / "relay.log"
    assert settings.max_bytes == 2048
    assert settings.backup_count == 2


def test_settings_fall_back_on_bad_values():
    settings = LogSettings.from_env(
        {
            "VOICESCORE_LOG_LEVEL": "LOUD",
            "VOICESCORE_LOG_MAX_BYTES": "lots",
            "VOICESCORE_LOG_BACKUP_COUNT": "",
        }
    )

    assert settings.level == logging.INFO
    assert settings.console is False
    assert settings.max_bytes == 10 * 1024 * 1024
    assert settings.backup_count == 5
    assert settings.directory.name == "logs"


def test_build_handlers_file_and_console(tmp_path):
    settings = LogSettings(level=logging.WARNING, console=True, directory=tmp_path / "nested")
    handlers = build_handlers(settings)
    try:
        assert [type(h) for h in handlers] == [RotatingFileHandler, logging.StreamHandler]
        assert all(h.level == logging.WARNING for h in handlers)
        assert (tmp_path / "nested").is_dir()
    finally:
        for handler in handlers:
            handler.close()


def test_build_handlers_without_destination():
    assert build_handlers(LogSettings(directory=None)) == []


def test_session_logger_prefixes_messages():
    adapter = session_logger(logging.getLogger("voicescore.test"), "abc123")

    assert isinstance(adapter, SessionLogAdapter)
    msg, kwargs = adapter.process("Client connected", {"exc_info": False})
    assert msg == "[session abc123] Client connected"
    assert kwargs == {"exc_info": False}

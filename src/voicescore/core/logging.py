"""Logging for VoiceScore.

Every module calls ``setup_logging(__name__)``. Records from all modules are
put on one queue and written by a single listener thread, so the rotating
log file is never touched from the event loop. Relay code wraps its module
logger with ``session_logger`` so each line names the connection it belongs
to.

Environment:
    VOICESCORE_LOG_LEVEL         DEBUG, INFO (default), WARNING, ERROR
    VOICESCORE_CONSOLE_LOGS      "1"/"true"/"yes" also logs to stdout
    VOICESCORE_LOG_DIR           default ~/.voicescore/logs
    VOICESCORE_LOG_FILE          default voicescore.log
    VOICESCORE_LOG_MAX_BYTES     rotation size, default 10 MB
    VOICESCORE_LOG_BACKUP_COUNT  rotated files kept, default 5
"""

import atexit
import logging
import os
import sys
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import SimpleQueue

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_lock = threading.Lock()
_queue: SimpleQueue | None = None
_listener: QueueListener | None = None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name, default))
    except ValueError:
        return default


@dataclass(frozen=True)
class LogSettings:
    """Where and how much to log, resolved once per process."""

    level: int = logging.INFO
    console: bool = False
    directory: Path | None = None
    filename: str = "voicescore.log"
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "LogSettings":
        env = os.environ if env is None else env
        level_name = env.get("VOICESCORE_LOG_LEVEL", "INFO").upper()
        directory = env.get("VOICESCORE_LOG_DIR")
        return cls(
            level=logging.getLevelNamesMapping().get(level_name, logging.INFO),
            console=env.get("VOICESCORE_CONSOLE_LOGS", "").strip().lower() in {"1", "true", "yes"},
            directory=Path(directory) if directory else Path.home() / ".voicescore" / "logs",
            filename=env.get("VOICESCORE_LOG_FILE", "voicescore.log"),
            max_bytes=_env_int(env, "VOICESCORE_LOG_MAX_BYTES", 10 * 1024 * 1024),
            backup_count=_env_int(env, "VOICESCORE_LOG_BACKUP_COUNT", 5),
        )

    @property
    def log_path(self) -> Path | None:
        return self.directory / self.filename if self.directory is not None else None


def build_handlers(settings: LogSettings) -> list[logging.Handler]:
    """File and console handlers for ``settings``. An unwritable log dir is skipped."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = []

    log_path = settings.log_path
    if log_path is not None:
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(log_path, maxBytes=settings.max_bytes, backupCount=settings.backup_count)
            )
        except OSError:
            pass

    if settings.console:
        handlers.append(logging.StreamHandler(sys.stdout))

    for handler in handlers:
        handler.setLevel(settings.level)
        handler.setFormatter(formatter)
    return handlers


def _stop_listener() -> None:
    global _listener
    if _listener is not None:
        _listener.stop()
        _listener = None


def _shared_queue(settings: LogSettings) -> SimpleQueue | None:
    """Start the process-wide listener on first use; None when nothing can be written."""
    global _queue, _listener
    with _lock:
        if _listener is None:
            handlers = build_handlers(settings)
            if not handlers:
                return None
            _queue = SimpleQueue()
            _listener = QueueListener(_queue, *handlers, respect_handler_level=True)
            _listener.start()
            atexit.register(_stop_listener)
        return _queue


def setup_logging(module_name: str, settings: LogSettings | None = None) -> logging.Logger:
    """Return the logger for ``module_name`` attached to the shared queue.

    Args:
        module_name: Name of the module (usually __name__)
        settings: Overrides the environment; only the first call in a
            process decides the handlers

    """
    logger = logging.getLogger(module_name)
    if logger.handlers:
        return logger

    settings = settings or LogSettings.from_env()
    logger.setLevel(settings.level)
    logger.propagate = False

    queue = _shared_queue(settings)
    if queue is None:
        logger.addHandler(logging.NullHandler())
    else:
        logger.addHandler(QueueHandler(queue))
    return logger


class SessionLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with ``[session <id>]``."""

    def process(self, msg, kwargs):
        return f"[session {self.extra['session_id']}] {msg}", kwargs


def session_logger(logger: logging.Logger, session_id: str) -> SessionLogAdapter:
    return SessionLogAdapter(logger, {"session_id": session_id})


__all__ = ["LogSettings", "SessionLogAdapter", "build_handlers", "session_logger", "setup_logging"]

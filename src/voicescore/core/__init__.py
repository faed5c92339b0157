"""Core package exports."""

from .config import ConfigLoader, get_config, reset_config
from .logging import LogSettings, session_logger, setup_logging

__all__ = ["ConfigLoader", "LogSettings", "get_config", "reset_config", "session_logger", "setup_logging"]

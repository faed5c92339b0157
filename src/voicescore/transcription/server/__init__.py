"""WebSocket relay package for VoiceScore.

Public API:
    - RelayServer: client-facing relay and HTTP surface
    - StreamingSession: per-connection relay state machine
    - SessionRegistry: live sessions by connection
    - main: Main entry point function
"""

from .core import RelayServer
from .main import main
from .registry import SessionRegistry
from .session import SessionMetrics, SessionState, StreamingSession

__all__ = [
    "RelayServer",
    "SessionMetrics",
    "SessionRegistry",
    "SessionState",
    "StreamingSession",
    "main",
]

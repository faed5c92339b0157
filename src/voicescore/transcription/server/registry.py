"""Process-wide table of live relay sessions.

Sessions are keyed by client connection id and never shared between
connections. ``open`` scopes a session to a connection: it is registered on
entry and torn down and released on every exit path.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from ...core.config import setup_logging
from .session import StreamingSession

logger = setup_logging(__name__)

SessionFactory = Callable[[str, object], StreamingSession]


class SessionRegistry:
    """Active StreamingSessions by client id."""

    def __init__(self, session_factory: SessionFactory):
        self._factory = session_factory
        self._sessions: dict[str, StreamingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._sessions

    def get(self, client_id: str) -> StreamingSession | None:
        return self._sessions.get(client_id)

    @property
    def streaming_count(self) -> int:
        return sum(1 for session in self._sessions.values() if session.is_streaming)

    def create(self, client_id: str, client) -> StreamingSession:
        if client_id in self._sessions:
            raise ValueError(f"Session already registered for client {client_id}")
        session = self._factory(client_id, client)
        self._sessions[client_id] = session
        logger.debug(f"Registered session {client_id} ({len(self._sessions)} active)")
        return session

    async def release(self, client_id: str) -> None:
        """Tear down and forget a session. Unknown ids are ignored."""
        session = self._sessions.pop(client_id, None)
        if session is None:
            return
        try:
            await session.close()
        finally:
            logger.debug(f"Released session {client_id} ({len(self._sessions)} active)")

    async def close_all(self) -> None:
        for client_id in list(self._sessions):
            await self.release(client_id)

    @asynccontextmanager
    async def open(self, client_id: str, client) -> AsyncIterator[StreamingSession]:
        session = self.create(client_id, client)
        try:
            yield session
        finally:
            await self.release(client_id)

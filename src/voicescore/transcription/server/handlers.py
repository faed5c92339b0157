"""Control-message handlers for the relay server.

Each handler receives the server, the connection's StreamingSession and the
validated request model, and drives one session transition.
"""

import json
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ...core.config import setup_logging
from ...schemas import REQUEST_MODELS, AudioDataRequest, BaseMessage
from ..exceptions import MalformedMessage
from .session import StreamingSession

if TYPE_CHECKING:
    from .core import RelayServer

logger = setup_logging(__name__)


def parse_message(raw: str) -> BaseMessage:
    """Decode and validate one JSON control frame.

    Raises:
        MalformedMessage: If the frame is not JSON, has an unknown type, or
            fails validation

    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessage("Invalid message format") from e
    if not isinstance(data, dict):
        raise MalformedMessage("Invalid message format")

    message_type = data.get("type")
    model = REQUEST_MODELS.get(message_type)
    if model is None:
        raise MalformedMessage(f"Unknown message type: {message_type}")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Validation failed for {message_type}: {e}")
        raise MalformedMessage("Invalid message format") from e


async def handle_start_streaming(server: "RelayServer", session: StreamingSession, request: BaseMessage) -> None:
    """Handle start_streaming messages."""
    logger.info(f"Client {session.session_id}: start_streaming")
    await session.start()


async def handle_audio_data(server: "RelayServer", session: StreamingSession, request: AudioDataRequest) -> None:
    """Handle audio_data messages carrying a PCM16 frame."""
    await session.handle_audio(request.audio)


async def handle_stop_streaming(server: "RelayServer", session: StreamingSession, request: BaseMessage) -> None:
    """Handle stop_streaming messages."""
    logger.info(f"Client {session.session_id}: stop_streaming")
    await session.stop()

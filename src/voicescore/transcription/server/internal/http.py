"""HTTP surface of the relay server.

This module provides:
- health_handler: service status endpoint
- transcribe_handler: batch upload -> transcript + score
- create_app / start_http_server: aiohttp wiring
"""

import asyncio
import functools
import time
from typing import TYPE_CHECKING

import aiohttp
from aiohttp import web

from ....core.config import setup_logging
from ...exceptions import (
    PollTimeout,
    TranscriptionError,
    UpstreamRejected,
    UpstreamTranscriptionFailed,
    UpstreamUnavailable,
)

if TYPE_CHECKING:
    from ..core import RelayServer

logger = setup_logging(__name__)

PROVIDER_SESSION = web.AppKey("provider_session", aiohttp.ClientSession)


def error_status(exc: TranscriptionError) -> int:
    """HTTP status for a batch-path failure."""
    if isinstance(exc, UpstreamUnavailable):
        return 503
    if isinstance(exc, (UpstreamRejected, UpstreamTranscriptionFailed)):
        return 502
    if isinstance(exc, PollTimeout):
        return 504
    return 500


async def health_handler(server: "RelayServer", request: web.Request) -> web.Response:
    """HTTP health check endpoint for service monitoring."""
    return web.json_response(
        {
            "status": "OK",
            "message": "VoiceScore relay is running",
            "apiKeyConfigured": server.config.api_key_configured,
            "connectedClients": len(server.connected_clients),
            "activeSessions": len(server.registry),
            "streamingSessions": server.registry.streaming_count,
            "timestamp": time.time(),
        }
    )


def _bad_request(message: str) -> web.Response:
    return web.json_response({"error": message}, status=400)


async def transcribe_handler(server: "RelayServer", request: web.Request) -> web.Response:
    """Transcribe an uploaded recording and score it.

    Expects multipart form data with an ``audio`` file part and an optional
    ``duration`` field (whole seconds).
    """
    try:
        form = await request.post()
    except ValueError as e:
        return _bad_request(f"Invalid form data: {e}")

    audio_field = form.get("audio")
    if not isinstance(audio_field, web.FileField):
        logger.info("No audio file provided")
        return _bad_request("No audio file provided")
    if not (audio_field.content_type or "").startswith("audio/"):
        return _bad_request("Only audio files are allowed")

    raw_duration = form.get("duration")
    if raw_duration in (None, ""):
        duration = server.config.default_duration
    else:
        try:
            duration = int(str(raw_duration))
        except ValueError:
            return _bad_request(f"Invalid duration: {raw_duration}")
        if duration < 0:
            return _bad_request(f"Invalid duration: {raw_duration}")

    audio = await asyncio.to_thread(audio_field.file.read)
    logger.info(f"Processing audio file {audio_field.filename} ({len(audio)} bytes, duration {duration}s)")

    client = server.create_batch_client(request.app[PROVIDER_SESSION])
    try:
        result = await client.transcribe_and_score(audio, duration)
    except asyncio.CancelledError:
        logger.info("Transcription request aborted by client, polling stopped")
        raise
    except TranscriptionError as e:
        logger.error(f"Transcription error: {e}")
        return web.json_response(
            {"error": "Failed to transcribe audio", "details": str(e)},
            status=error_status(e),
        )
    except Exception as e:
        logger.exception(f"Unexpected error while transcribing: {e}")
        return web.json_response({"error": "Failed to transcribe audio", "details": str(e)}, status=500)

    logger.info(f"Sending response: transcript length {len(result.transcript)}, bands {result.score.bands}")
    return web.json_response(result.to_dict())


def create_app(server: "RelayServer") -> web.Application:
    app = web.Application(client_max_size=server.config.max_upload_bytes)

    async def provider_session(app: web.Application):
        timeout = aiohttp.ClientTimeout(total=server.config.request_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            app[PROVIDER_SESSION] = session
            yield

    app.cleanup_ctx.append(provider_session)
    app.router.add_get("/api/health", functools.partial(health_handler, server))
    app.router.add_post("/api/transcribe", functools.partial(transcribe_handler, server))
    return app


async def start_http_server(server: "RelayServer", host: str, port: int) -> web.AppRunner:
    """Start the HTTP server.

    Handler cancellation is enabled so an aborted upload request cancels its
    polling task.

    Returns:
        The aiohttp AppRunner instance

    """
    runner = web.AppRunner(create_app(server), handler_cancellation=True)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"HTTP endpoints available at http://{host}:{port}/api")
    return runner

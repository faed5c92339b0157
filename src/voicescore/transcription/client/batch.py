#!/usr/bin/env python3
"""Batch transcription against the provider REST API.

One logical request is three sequential calls:
1. upload: POST the whole audio buffer, get back a private URL
2. submit: POST a transcription job for that URL, get back a job id
3. poll: GET the job until it completes or errors

The transcript is then scored together with the caller-supplied duration.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from ...core.config import ConfigLoader, get_config, setup_logging
from ...scoring import ScoreMetrics, score
from ..exceptions import (
    CredentialMissing,
    PollCancelled,
    PollTimeout,
    UpstreamRejected,
    UpstreamTranscriptionFailed,
    UpstreamUnavailable,
)

logger = setup_logging(__name__)

EMPTY_TRANSCRIPT = "No transcript available"


@dataclass
class BatchResult:
    """Transcript plus score for one uploaded recording."""

    transcript: str
    score: ScoreMetrics
    duration: float
    job_id: str = ""
    confidence: float | None = None
    words: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "transcript": self.transcript,
            "confidence": self.confidence,
            "words": self.words,
            "score": self.score.to_dict(),
            "duration": self.duration,
        }


class TranscriptionClient:
    """Upload, submit and poll against the provider REST surface."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.assemblyai.com/v2",
        speech_model: str = "universal",
        poll_interval: float = 3.0,
        poll_timeout: float | None = None,
        max_poll_attempts: int | None = None,
        request_timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ):
        """Initialize batch client.

        Args:
            api_key: Provider credential (empty means not configured)
            base_url: Provider REST base URL
            speech_model: Named speech model requested for every job
            poll_interval: Seconds between status checks
            poll_timeout: Overall polling deadline in seconds (None for no deadline)
            max_poll_attempts: Cap on status checks (None for no cap)
            request_timeout: Per-request timeout in seconds
            session: Optional shared aiohttp session (not closed by this client)

        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.speech_model = speech_model
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.max_poll_attempts = max_poll_attempts
        self.request_timeout = request_timeout
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(
        cls, config: ConfigLoader | None = None, session: aiohttp.ClientSession | None = None
    ) -> "TranscriptionClient":
        config = config or get_config()
        return cls(
            api_key=config.api_key,
            base_url=config.provider_base_url,
            speech_model=config.speech_model,
            poll_interval=config.poll_interval,
            poll_timeout=config.poll_timeout,
            max_poll_attempts=config.max_poll_attempts,
            request_timeout=config.request_timeout,
            session=session,
        )

    async def __aenter__(self) -> "TranscriptionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.request_timeout))
            self._owns_session = True
        return self._session

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise CredentialMissing()
        return {"authorization": self.api_key}

    async def _request(self, method: str, path: str, operation: str, **kwargs) -> dict:
        headers = self._headers()
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(method, url, headers=headers, **kwargs) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    logger.error(f"{operation} rejected: {response.status} {body[:500]}")
                    raise UpstreamRejected(operation, response.status, body)
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    body = await response.text()
                    logger.error(f"{operation} returned a non-JSON body: {body[:500]}")
                    raise UpstreamRejected(operation, response.status, body[:500]) from None
                if not isinstance(data, dict):
                    logger.error(f"{operation} returned {type(data).__name__}, expected an object")
                    raise UpstreamRejected(operation, response.status, f"unexpected payload: {str(data)[:500]}")
                return data
        except aiohttp.ClientError as e:
            raise UpstreamUnavailable(f"{operation} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise UpstreamUnavailable(f"{operation} timed out after {self.request_timeout}s") from e

    async def upload(self, audio: bytes) -> str:
        """Upload raw audio bytes and return the provider's private URL."""
        logger.info(f"Uploading {len(audio)} bytes of audio")
        data = await self._request("POST", "/upload", "Upload", data=audio)
        upload_url = data.get("upload_url")
        if not upload_url:
            raise UpstreamRejected("Upload", 200, f"response has no upload_url: {data}")
        return str(upload_url)

    async def submit(self, audio_url: str) -> str:
        """Request transcription of an uploaded file and return the job id."""
        payload = {
            "audio_url": audio_url,
            "speech_model": self.speech_model,
            "punctuate": True,
            "format_text": True,
        }
        data = await self._request("POST", "/transcript", "Transcription request", json=payload)
        job_id = data.get("id")
        if not job_id:
            raise UpstreamRejected("Transcription request", 200, f"response has no id: {data}")
        logger.info(f"Transcription started, ID: {job_id}")
        return str(job_id)

    async def fetch(self, job_id: str) -> dict:
        """Fetch the current status document of a job."""
        return await self._request("GET", f"/transcript/{job_id}", "Polling")

    async def _wait(self, delay: float, cancel_event: asyncio.Event | None) -> bool:
        """Sleep for ``delay`` seconds. Returns True if cancellation was signalled."""
        if cancel_event is None:
            await asyncio.sleep(delay)
            return False
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def poll(self, job_id: str, cancel_event: asyncio.Event | None = None) -> dict:
        """Poll a job until it reaches ``completed`` or ``error``.

        Cancelling the calling task or setting ``cancel_event`` stops polling
        promptly.

        Raises:
            UpstreamTranscriptionFailed: If the job ends with status ``error``
            PollTimeout: If the deadline or attempt cap is reached
            PollCancelled: If ``cancel_event`` is set

        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        attempts = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise PollCancelled(job_id)

            result = await self.fetch(job_id)
            attempts += 1
            status = result.get("status")

            if status == "completed":
                logger.info(f"Transcript {job_id} completed after {attempts} poll(s)")
                return result
            if status == "error":
                raise UpstreamTranscriptionFailed(str(result.get("error") or "unknown error"))

            elapsed = loop.time() - started
            if self.max_poll_attempts is not None and attempts >= self.max_poll_attempts:
                raise PollTimeout(job_id, attempts, elapsed)
            delay = self.poll_interval
            if self.poll_timeout is not None:
                remaining = self.poll_timeout - elapsed
                if remaining <= 0:
                    raise PollTimeout(job_id, attempts, elapsed)
                delay = min(delay, remaining)

            logger.debug(f"Transcript {job_id} status={status}, polling again in {delay:.1f}s")
            if await self._wait(delay, cancel_event):
                raise PollCancelled(job_id)

    async def transcribe(self, audio: bytes, cancel_event: asyncio.Event | None = None) -> dict:
        """Upload, submit and poll. Returns the completed job document."""
        audio_url = await self.upload(audio)
        job_id = await self.submit(audio_url)
        return await self.poll(job_id, cancel_event)

    async def transcribe_and_score(
        self, audio: bytes, duration: float, cancel_event: asyncio.Event | None = None
    ) -> BatchResult:
        """Run the whole batch path and score the transcript."""
        result = await self.transcribe(audio, cancel_event)
        text = result.get("text") or ""
        metrics = score(text, duration)
        logger.info(f"Score calculated for transcript {result.get('id')}: {metrics.bands}")
        return BatchResult(
            transcript=text or EMPTY_TRANSCRIPT,
            score=metrics,
            duration=duration,
            job_id=str(result.get("id") or ""),
            confidence=result.get("confidence"),
            words=list(result.get("words") or []),
        )

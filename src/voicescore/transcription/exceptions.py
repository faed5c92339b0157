#!/usr/bin/env python3
"""Custom exceptions for transcription operations.

This module defines the exception hierarchy for provider and relay errors.
"""


class TranscriptionError(Exception):
    """Base exception for transcription-related errors."""


class UpstreamUnavailable(TranscriptionError):
    """The provider cannot be reached or used at all."""


class CredentialMissing(UpstreamUnavailable):
    """No provider credential is configured."""

    def __init__(self, message: str = "AssemblyAI API key not configured"):
        super().__init__(message)


class UpstreamRejected(TranscriptionError):
    """The provider answered a request with a non-2xx status or an unusable body."""

    def __init__(self, operation: str, status: int, body: str = ""):
        self.operation = operation
        self.status = status
        self.body = body
        super().__init__(f"{operation} failed: {status} - {body}")


class UpstreamTranscriptionFailed(TranscriptionError):
    """The provider finished a job with status ``error``."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Transcription failed: {detail}")


class PollTimeout(TranscriptionError):
    """Polling gave up before the job reached a terminal status."""

    def __init__(self, job_id: str, attempts: int, elapsed: float):
        self.job_id = job_id
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(f"Transcript {job_id} not ready after {attempts} attempt(s) in {elapsed:.1f}s")


class StreamingError(TranscriptionError):
    """Exception for streaming-related errors."""


class ChannelClosed(StreamingError):
    """One side of a relay closed or failed."""


class MalformedMessage(StreamingError):
    """A control-channel payload could not be parsed or validated."""


class PollCancelled(TranscriptionError):
    """Polling stopped because the caller signalled cancellation."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Polling for transcript {job_id} cancelled")

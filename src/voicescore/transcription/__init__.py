"""Transcription: provider clients, streaming channel and relay server."""

from .exceptions import (
    ChannelClosed,
    CredentialMissing,
    MalformedMessage,
    PollCancelled,
    PollTimeout,
    StreamingError,
    TranscriptionError,
    UpstreamRejected,
    UpstreamTranscriptionFailed,
    UpstreamUnavailable,
)

__all__ = [
    "ChannelClosed",
    "CredentialMissing",
    "MalformedMessage",
    "PollCancelled",
    "PollTimeout",
    "StreamingError",
    "TranscriptionError",
    "UpstreamRejected",
    "UpstreamTranscriptionFailed",
    "UpstreamUnavailable",
]

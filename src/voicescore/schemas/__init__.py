"""Pydantic models for relay control frames."""

from .requests import (
    REQUEST_MODELS,
    AudioDataRequest,
    BaseMessage,
    StartStreamingRequest,
    StopStreamingRequest,
)
from .responses import ErrorMessage, StreamingStarted, StreamingStopped, TranscriptUpdate

__all__ = [
    "REQUEST_MODELS",
    "AudioDataRequest",
    "BaseMessage",
    "ErrorMessage",
    "StartStreamingRequest",
    "StopStreamingRequest",
    "StreamingStarted",
    "StreamingStopped",
    "TranscriptUpdate",
]

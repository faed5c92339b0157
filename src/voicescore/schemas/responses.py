from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str


class StreamingStarted(BaseResponse):
    type: str = "streaming_started"


class TranscriptUpdate(BaseResponse):
    type: str = "transcript_update"
    transcript: str


class StreamingStopped(BaseResponse):
    type: str = "streaming_stopped"


class ErrorMessage(BaseResponse):
    type: str = "error"
    message: str

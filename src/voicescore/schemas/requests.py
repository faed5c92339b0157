from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, ConfigDict, field_validator


class BaseMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str


class StartStreamingRequest(BaseMessage):
    type: str = "start_streaming"


class AudioDataRequest(BaseMessage):
    type: str = "audio_data"
    audio: bytes

    @field_validator("audio", mode="before")
    @classmethod
    def _coerce_audio(cls, value):
        # Browser clients send Array.from(Uint8Array); others may send base64
        if isinstance(value, list):
            if not all(isinstance(item, int) and not isinstance(item, bool) for item in value):
                raise ValueError("audio array must contain integers")
            return bytes(value)
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as e:
                raise ValueError(f"audio is not valid base64: {e}") from e
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        raise ValueError("audio must be a byte array or base64 string")


class StopStreamingRequest(BaseMessage):
    type: str = "stop_streaming"


REQUEST_MODELS: dict[str, type[BaseMessage]] = {
    "start_streaming": StartStreamingRequest,
    "audio_data": AudioDataRequest,
    "stop_streaming": StopStreamingRequest,
}

"""Audio helpers: PCM quantization, framing and WAV loading."""

from .conversion import (
    decode_frame,
    encode_frame,
    float32_to_int16,
    int16_to_float32,
    iter_frames,
    load_wav,
    wav_duration,
)

__all__ = [
    "decode_frame",
    "encode_frame",
    "float32_to_int16",
    "int16_to_float32",
    "iter_frames",
    "load_wav",
    "wav_duration",
]

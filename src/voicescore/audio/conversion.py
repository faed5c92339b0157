"""Audio conversion helpers for PCM scaling and framing."""

import wave
from collections.abc import Iterator
from pathlib import Path
from typing import cast

import numpy as np

# Little-endian signed 16-bit
PCM16_DTYPE = np.dtype("<i2")
DEFAULT_FRAME_SAMPLES = 4096


def int16_to_float32(audio: np.ndarray) -> np.ndarray:
    """Convert int16 PCM to float32 in [-1.0, 1.0]."""
    if audio.dtype == np.int16:
        return audio.astype(np.float32) / 32768.0
    return audio.astype(np.float32)


def float32_to_int16(audio: np.ndarray) -> np.ndarray:
    """Convert float PCM in [-1.0, 1.0] to int16.

    Negative samples scale by 32768 and non-negative samples by 32767, so
    both -1.0 and 1.0 land exactly on the int16 limits.
    """
    if audio.dtype == np.int16:
        return audio
    audio_f32 = np.clip(audio.astype(np.float32), -1.0, 1.0)
    scaled = np.where(audio_f32 < 0, audio_f32 * 32768.0, audio_f32 * 32767.0)
    return cast("np.ndarray", np.clip(scaled, -32768, 32767).astype(np.int16))


def encode_frame(samples: np.ndarray) -> bytes:
    """Quantize samples and encode them as a little-endian PCM16 frame."""
    return float32_to_int16(np.asarray(samples)).astype(PCM16_DTYPE).tobytes()


def decode_frame(frame: bytes) -> np.ndarray:
    """Decode a little-endian PCM16 frame into native int16 samples."""
    if len(frame) % 2:
        raise ValueError(f"PCM16 frame has odd length ({len(frame)} bytes)")
    return np.frombuffer(frame, dtype=PCM16_DTYPE).astype(np.int16)


def iter_frames(samples: np.ndarray, frame_samples: int = DEFAULT_FRAME_SAMPLES) -> Iterator[bytes]:
    """Yield encoded PCM16 frames of at most ``frame_samples`` samples each."""
    for start in range(0, len(samples), frame_samples):
        yield encode_frame(samples[start : start + frame_samples])


def load_wav(path: str | Path) -> tuple[np.ndarray, int]:
    """Read a 16-bit PCM WAV file as mono float32 samples.

    Returns:
        (samples, sample_rate)

    """
    with wave.open(str(path), "rb") as wav_file:
        if wav_file.getsampwidth() != 2:
            raise ValueError(f"Only 16-bit PCM WAV is supported (sample width {wav_file.getsampwidth()})")
        channels = wav_file.getnchannels()
        sample_rate = wav_file.getframerate()
        raw = wav_file.readframes(wav_file.getnframes())

    samples = np.frombuffer(raw, dtype=PCM16_DTYPE).astype(np.int16)
    if channels > 1:
        # Downmix to mono
        samples = samples.reshape(-1, channels).mean(axis=1).astype(np.int16)
    return int16_to_float32(samples), sample_rate


def wav_duration(path: str | Path) -> float:
    """Duration of a WAV file in seconds."""
    with wave.open(str(path), "rb") as wav_file:
        rate = wav_file.getframerate()
        return wav_file.getnframes() / rate if rate else 0.0

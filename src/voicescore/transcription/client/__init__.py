"""Transcription clients.

Public API:
    - TranscriptionClient: batch upload/submit/poll against the provider
    - BatchResult: transcript plus score for one recording
    - RelayClient: streams PCM audio through the relay
"""

from .batch import BatchResult, TranscriptionClient
from .relay import RelayClient

__all__ = ["BatchResult", "RelayClient", "TranscriptionClient"]

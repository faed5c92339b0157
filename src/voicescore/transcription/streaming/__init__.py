"""Provider streaming channel and event normalization.

Public API:
    - UpstreamChannel: one provider streaming socket
    - TranscriptEvent: normalized transcript unit
    - translate_event: provider event -> TranscriptEvent | None
"""

from .events import TranscriptEvent, translate_event
from .upstream import UpstreamChannel, build_streaming_url

__all__ = ["TranscriptEvent", "UpstreamChannel", "build_streaming_url", "translate_event"]

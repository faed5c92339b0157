"""Upstream event normalization.

Only finalized, formatted turns reach the client; interim turns and
session bookkeeping events are dropped to avoid client-side flicker.
"""

from dataclasses import dataclass

from ...schemas import TranscriptUpdate


@dataclass(frozen=True)
class TranscriptEvent:
    """Normalized transcript unit forwarded to the client."""

    transcript: str

    def to_message(self) -> dict:
        return TranscriptUpdate(transcript=self.transcript).model_dump()


def is_formatted_turn(data: dict) -> bool:
    return data.get("type") == "Turn" and bool(data.get("turn_is_formatted"))


def translate_event(data: dict) -> TranscriptEvent | None:
    """Map a provider event to a TranscriptEvent, or None to discard it."""
    if not is_formatted_turn(data):
        return None
    return TranscriptEvent(transcript=str(data.get("transcript") or ""))

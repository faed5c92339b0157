"""VoiceScore - streaming transcription relay and spoken-proficiency scoring."""

__version__ = "1.0.0"

"""Realtime voice channel and dictation fallback."""

from .machine import ConnectionState, RecordingState, VoiceState, transition

__all__ = ["ConnectionState", "RecordingState", "VoiceState", "transition"]

"""Custom exceptions for the chat client."""

from __future__ import annotations


class ChatClientError(RuntimeError):
    """Raised when the chat service responds with an error or invalid payload."""


class AnalyzerError(RuntimeError):
    """Raised when the message analyzer cannot be reached or answers badly."""


class SummaryError(RuntimeError):
    """Raised when the summarization service fails or returns an empty title."""


class StorageError(RuntimeError):
    """Raised when the conversation collection cannot be read or written."""


class VoiceChannelError(RuntimeError):
    """Raised when the realtime voice transport cannot open or send."""


class MicrophoneUnavailable(RuntimeError):
    """Raised when no capture device exists or access to it was refused."""


class TranscriptionError(RuntimeError):
    """Raised when a recorded utterance cannot be transcribed."""

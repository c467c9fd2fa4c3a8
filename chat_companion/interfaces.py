"""Protocol interfaces for dependency injection."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from .models import Analysis, CapturedAudio, ChatResponse, Message


class Analyzer(Protocol):
    """Tags a user message with sentiment, intent and entities."""

    def analyze(self, text: str) -> Analysis:
        """Return the analysis, raising ``AnalyzerError`` on failure."""


class ChatClient(Protocol):
    """Sends the conversation to the chat-completion backend."""

    def complete(self, messages: Sequence[Message], *, temperature: float) -> ChatResponse:
        """Return the assistant reply, raising ``ChatClientError`` on failure."""


class Summarizer(Protocol):
    """Produces a short title for a list of messages."""

    def summarize(self, messages: Sequence[Message], *, max_length: int) -> str:
        """Return a title, raising ``SummaryError`` on failure."""


class KeyValueStore(Protocol):
    """Persistent string storage keyed by name."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    def set(self, key: str, value: str) -> None:
        """Store the value atomically, raising ``StorageError`` on failure."""


class NotificationSink(Protocol):
    """Shows transient, non-blocking notices to the user."""

    def notify(self, message: str, level: str = "info") -> None:
        """Display a message; level is "info", "success", "warning" or "error"."""


class CaptureHandle(Protocol):
    """An open microphone stream."""

    def close(self) -> None:
        """Stop capturing and release the device."""


class AudioCapture(Protocol):
    """Opens the microphone and delivers encoded PCM frames."""

    sample_rate: int

    def open(self, on_frame: Callable[[bytes], None]) -> CaptureHandle:
        """
        Start capturing.

        ``on_frame`` receives one encoded PCM frame per capture callback.
        Raises ``MicrophoneUnavailable`` when no device can be opened.
        """


class AudioPlayer(Protocol):
    """Plays a complete audio payload."""

    def play(self, data: bytes) -> None:
        """Start playback of the payload."""


class VoiceTransport(Protocol):
    """Bidirectional text-and-binary stream to the voice service."""

    def open(
        self,
        url: str,
        *,
        on_open: Callable[[], None],
        on_text: Callable[[str], None],
        on_binary: Callable[[bytes], None],
        on_error: Callable[[str], None],
        on_close: Callable[[], None],
    ) -> None:
        """Start connecting; outcome is reported through the callbacks."""

    def send_text(self, text: str) -> None:
        """Send a text frame, raising ``VoiceChannelError`` when closed."""

    def send_binary(self, data: bytes) -> None:
        """Send a binary frame, raising ``VoiceChannelError`` when closed."""

    def close(self) -> None:
        """Close the stream."""


class AudioRecorder(Protocol):
    """Captures one utterance from the user."""

    def record(self) -> CapturedAudio:
        """Return a captured audio buffer."""


class TranscriptionService(Protocol):
    """Transcribes recorded audio into text."""

    def transcribe(self, audio: CapturedAudio, *, language: Optional[str] = None) -> str:
        """Return the transcribed text for the provided audio."""

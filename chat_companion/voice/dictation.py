"""Record-then-transcribe dictation used when the realtime channel is off."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..exceptions import MicrophoneUnavailable, TranscriptionError
from ..interfaces import AudioRecorder, NotificationSink, TranscriptionService
from .machine import LISTENING_HINT

logger = logging.getLogger(__name__)


class DictationSession:
    """
    Fallback speech input with no network stream.

    While recording the hint shows "Listening..."; the transcript is then
    handed to ``on_transcript`` exactly like a realtime ``final`` event, and
    an empty result is reported as a recognition failure.
    """

    def __init__(
        self,
        *,
        recorder: AudioRecorder,
        stt: TranscriptionService,
        notifier: NotificationSink,
        on_transcript: Callable[[str], object],
        on_hint: Optional[Callable[[str], None]] = None,
        language: Optional[str] = None,
    ) -> None:
        self._recorder = recorder
        self._stt = stt
        self._notifier = notifier
        self._on_transcript = on_transcript
        self._on_hint = on_hint
        self._language = language

    def _hint(self, text: str) -> None:
        if self._on_hint is not None:
            self._on_hint(text)

    def listen(self) -> Optional[str]:
        """Record one utterance and submit it. Returns the recognized text."""
        self._hint(LISTENING_HINT)
        try:
            audio = self._recorder.record()
        except MicrophoneUnavailable as exc:
            self._notifier.notify(f"Microphone unavailable: {exc}", "error")
            return None
        finally:
            self._hint("")

        if not audio.data:
            self._notifier.notify("No speech detected. Please try again.", "warning")
            return None

        try:
            text = self._stt.transcribe(audio, language=self._language).strip()
        except TranscriptionError as exc:
            logger.warning("Transcription failed: %s", exc)
            self._notifier.notify(f"Speech recognition error: {exc}", "error")
            return None

        if not text:
            self._notifier.notify("No speech recognized. Please try again.", "warning")
            return None
        self._on_transcript(text)
        return text

"""One-shot utterance recorder with voice-activity detection."""

from __future__ import annotations

import logging
import time

import numpy as np

from ..exceptions import MicrophoneUnavailable
from ..interfaces import AudioRecorder
from ..models import CapturedAudio
from ..voice.audio import float_to_pcm16

logger = logging.getLogger(__name__)


class SoundDeviceRecorder(AudioRecorder):
    """
    Records one utterance from the microphone, stopping after trailing silence.

    Args:
        sample_rate: Target sample rate (Hz).
        max_seconds: Maximum recording duration (safety limit).
        silence_duration: Seconds of silence before stopping.
        silence_threshold: Mean absolute level below which audio is silence.

    Usage:
        recorder = SoundDeviceRecorder(sample_rate=16000, max_seconds=15)
        audio = recorder.record()
    """

    def __init__(
        self,
        *,
        sample_rate: int = 16000,
        max_seconds: float = 15.0,
        silence_duration: float = 1.5,
        silence_threshold: float = 0.01,
    ) -> None:
        self.sample_rate = sample_rate
        self.max_seconds = max_seconds
        self.silence_duration = silence_duration
        self.silence_threshold = silence_threshold

    def record(self) -> CapturedAudio:
        try:
            import sounddevice as sd  # type: ignore
        except (ImportError, OSError) as exc:  # pragma: no cover - runtime dependency
            raise MicrophoneUnavailable("sounddevice is required for microphone recording.") from exc

        print(f"[rec] Listening... speak now (max {self.max_seconds}s)")
        chunks = []
        speech_started = False
        silence_start = None
        start_time = time.monotonic()

        def callback(indata, frames, time_info, status):
            nonlocal speech_started, silence_start
            if status:
                logger.debug("Recorder status: %s", status)
            level = float(np.abs(indata).mean())
            if level > self.silence_threshold:
                speech_started = True
                silence_start = None
                chunks.append(indata.copy())
            elif speech_started:
                chunks.append(indata.copy())
                if silence_start is None:
                    silence_start = time.monotonic()

        try:
            with sd.InputStream(samplerate=self.sample_rate, channels=1, dtype="float32", callback=callback):
                while True:
                    sd.sleep(100)
                    if time.monotonic() - start_time > self.max_seconds:
                        logger.debug("Max recording duration reached")
                        break
                    if silence_start is not None and time.monotonic() - silence_start > self.silence_duration:
                        logger.debug("Silence detected, stopping")
                        break
        except sd.PortAudioError as exc:
            raise MicrophoneUnavailable(str(exc)) from exc

        if not chunks:
            return CapturedAudio(data=b"", sample_rate=self.sample_rate)

        recording = np.concatenate(chunks, axis=0).reshape(-1)
        logger.info("Recorded %.2fs of audio", recording.size / self.sample_rate)
        return CapturedAudio(data=float_to_pcm16(recording), sample_rate=self.sample_rate)

"""Speaker playback of synthesized speech via sounddevice."""

from __future__ import annotations

import logging

from ..interfaces import AudioPlayer
from ..voice.audio import TARGET_SAMPLE_RATE, decode_audio

logger = logging.getLogger(__name__)


class SoundDevicePlayer(AudioPlayer):
    """
    Plays WAV (or raw 16-bit PCM) payloads without blocking the caller.

    A new payload interrupts whatever is still playing.
    """

    def __init__(self, *, default_rate: int = TARGET_SAMPLE_RATE) -> None:
        self._default_rate = default_rate

    def play(self, data: bytes) -> None:
        try:
            import sounddevice as sd  # type: ignore
        except (ImportError, OSError) as exc:
            raise RuntimeError("sounddevice is required for audio playback. Install via pip.") from exc

        samples, rate = decode_audio(data, self._default_rate)
        if samples.size == 0:
            return
        logger.debug("Playing %.2fs of speech at %d Hz", samples.size / rate, rate)
        sd.play(samples, samplerate=rate)

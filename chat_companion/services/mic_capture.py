"""Streaming microphone capture backed by sounddevice."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Optional

from ..exceptions import MicrophoneUnavailable
from ..interfaces import AudioCapture, CaptureHandle
from ..voice.audio import FRAME_SIZE, TARGET_SAMPLE_RATE, encode_frame

logger = logging.getLogger(__name__)


class _StreamHandle(CaptureHandle):
    """An open input stream plus the thread that forwards its frames."""

    def __init__(self, stream: Any, frames: "queue.Queue[Optional[bytes]]", on_frame: Callable[[bytes], None]) -> None:
        self._stream = stream
        self._frames = frames
        self._on_frame = on_frame
        self._closed = threading.Event()
        self._sender = threading.Thread(target=self._forward, name="mic-frames", daemon=True)
        self._sender.start()

    def _forward(self) -> None:
        while True:
            frame = self._frames.get()
            if frame is None or self._closed.is_set():
                return
            self._on_frame(frame)

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        sd = _lazy_import_sounddevice()
        try:
            self._stream.stop()
            self._stream.close()
        except sd.PortAudioError as exc:
            logger.warning("Error stopping microphone stream: %s", exc)
        _offer_latest(self._frames, None)
        if threading.current_thread() is not self._sender:
            self._sender.join(timeout=1.0)
        logger.debug("Microphone released")


class SoundDeviceCapture(AudioCapture):
    """
    Captures the default (or given) input device in fixed windows.

    Each PortAudio callback block is downmixed, resampled to ``sample_rate``
    and encoded as 16-bit PCM before being handed to ``on_frame`` on a
    separate thread. At most one frame waits for the sender; when it falls
    behind, the waiting frame is replaced by the newest one.

    Args:
        sample_rate: Rate of the emitted PCM frames (Hz).
        frame_size: Device samples per capture block.
        device: Optional sounddevice device id or name.

    Usage:
        capture = SoundDeviceCapture(sample_rate=16000)
        handle = capture.open(lambda frame: ws.send(frame))
        ...
        handle.close()
    """

    def __init__(
        self,
        *,
        sample_rate: int = TARGET_SAMPLE_RATE,
        frame_size: int = FRAME_SIZE,
        device: Optional[Any] = None,
        max_queued_frames: int = 1,
    ) -> None:
        self.sample_rate = sample_rate
        self._frame_size = frame_size
        self._device = device
        self._max_queued_frames = max_queued_frames

    def open(self, on_frame: Callable[[bytes], None]) -> CaptureHandle:
        sd = _lazy_import_sounddevice()
        try:
            info = sd.query_devices(self._device, "input")
        except (ValueError, sd.PortAudioError) as exc:
            raise MicrophoneUnavailable(f"No input device: {exc}") from exc
        device_rate = int(info["default_samplerate"])
        frames: "queue.Queue[Optional[bytes]]" = queue.Queue(maxsize=self._max_queued_frames)

        def callback(indata, frame_count, time_info, status):
            if status:
                logger.debug("Capture status: %s", status)
            _offer_latest(frames, encode_frame(indata, device_rate, self.sample_rate))

        try:
            stream = sd.InputStream(
                samplerate=device_rate,
                channels=1,
                dtype="float32",
                blocksize=self._frame_size,
                device=self._device,
                callback=callback,
            )
            stream.start()
        except sd.PortAudioError as exc:
            raise MicrophoneUnavailable(str(exc)) from exc

        logger.info("Microphone open at %d Hz, streaming %d Hz PCM", device_rate, self.sample_rate)
        return _StreamHandle(stream, frames, on_frame)


def _offer_latest(frames: "queue.Queue[Optional[bytes]]", frame: Optional[bytes]) -> None:
    """Queue ``frame``, discarding the oldest waiting frame when full."""
    while True:
        try:
            frames.put_nowait(frame)
            return
        except queue.Full:
            try:
                frames.get_nowait()
                logger.debug("Dropping stale microphone frame; sender is behind")
            except queue.Empty:
                pass


def _lazy_import_sounddevice():
    try:
        import sounddevice as sd  # type: ignore
    except (ImportError, OSError) as exc:  # pragma: no cover - runtime dependency
        raise MicrophoneUnavailable("sounddevice (and PortAudio) is required for microphone capture.") from exc
    return sd

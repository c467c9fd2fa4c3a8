"""Runs the voice state machine against real transport, microphone and speaker."""

from __future__ import annotations

import json
import logging
import threading
from typing import Callable, List, Optional

from ..exceptions import MicrophoneUnavailable, VoiceChannelError
from ..interfaces import AudioCapture, AudioPlayer, CaptureHandle, NotificationSink, VoiceTransport
from .machine import (
    AcquireCapture,
    BinaryReceived,
    CaptureDenied,
    CaptureGranted,
    CloseTransport,
    ConnectionState,
    ConnectRequested,
    DisconnectRequested,
    Effect,
    Event,
    FrameCaptured,
    Notify,
    OpenTransport,
    PlayAudio,
    ReleaseCapture,
    SendAudio,
    SendControl,
    SpeechRequested,
    StartRecordingRequested,
    StopRecordingRequested,
    SubmitTranscript,
    TextReceived,
    TransportClosed,
    TransportFailed,
    TransportOpened,
    UpdateHint,
    VoiceState,
    transition,
)

logger = logging.getLogger(__name__)

# Effects that may block on other threads (audio callbacks, socket thread,
# the chat pipeline) run only after the dispatch lock has been released.
_DEFERRED = (ReleaseCapture, CloseTransport, SubmitTranscript)


class VoiceSession:
    """
    Realtime voice controller.

    Every caller operation and every transport or microphone callback is
    turned into an event and fed through :func:`transition` under one lock.

    Usage:
        voice = VoiceSession(
            url="ws://localhost:8765",
            transport=WebSocketTransport(),
            capture=SoundDeviceCapture(),
            player=SoundDevicePlayer(),
            notifier=ConsoleNotifier(),
            on_transcript=session.submit_user_message,
        )
        voice.connect()
        voice.start_recording()
        ...
        voice.disconnect()
    """

    def __init__(
        self,
        *,
        url: str,
        transport: VoiceTransport,
        capture: AudioCapture,
        player: AudioPlayer,
        notifier: NotificationSink,
        on_transcript: Callable[[str], object],
        on_hint: Optional[Callable[[str], None]] = None,
        on_status: Optional[Callable[[VoiceState], None]] = None,
        submit_delay: float = 0.5,
    ) -> None:
        self._url = url
        self._transport = transport
        self._capture = capture
        self._player = player
        self._notifier = notifier
        self._on_transcript = on_transcript
        self._on_hint = on_hint
        self._on_status = on_status
        self._submit_delay = submit_delay

        self._state = VoiceState()
        self._lock = threading.RLock()
        self._depth = 0
        self._deferred: List[Effect] = []
        self._capture_handle: Optional[CaptureHandle] = None
        self._submit_timer: Optional[threading.Timer] = None
        # Bumped on every open and close; callbacks from older connections are dropped.
        self._generation = 0

    @property
    def state(self) -> VoiceState:
        return self._state

    # -- caller operations -------------------------------------------------

    def connect(self) -> VoiceState:
        """Open the channel; a no-op while connecting or connected."""
        if self._state.connection is ConnectionState.ERROR:
            logger.info("Resetting voice channel after error before reconnecting")
            self._dispatch(DisconnectRequested())
        self._dispatch(ConnectRequested())
        return self._state

    def disconnect(self) -> VoiceState:
        """Stop recording if needed and close the channel. Always ends disconnected."""
        self._dispatch(DisconnectRequested())
        return self._state

    def start_recording(self) -> bool:
        self._dispatch(StartRecordingRequested())
        return self._state.is_recording

    def stop_recording(self) -> None:
        """Returns only after the microphone has been released."""
        self._dispatch(StopRecordingRequested())

    def request_speech(self, text: str) -> bool:
        """Ask the voice service to speak ``text``; notifies when not connected."""
        self._dispatch(SpeechRequested(text))
        return self._state.is_connected

    def cancel_pending_submit(self) -> None:
        timer, self._submit_timer = self._submit_timer, None
        if timer is not None:
            timer.cancel()

    # -- dispatch ----------------------------------------------------------

    def _dispatch(self, event: Event, *, generation: Optional[int] = None) -> None:
        deferred: List[Effect] = []
        with self._lock:
            self._depth += 1
            try:
                if generation is not None and generation != self._generation:
                    logger.debug("Dropping %s from a closed voice connection", type(event).__name__)
                    return
                previous = self._state
                result = transition(previous, event)
                self._state = result.state
                if (result.state.connection, result.state.recording) != (previous.connection, previous.recording):
                    logger.debug("Voice state %s -> %s on %s", previous.label, result.state.label, type(event).__name__)
                    if self._on_status is not None:
                        self._on_status(result.state)
                for effect in result.effects:
                    if isinstance(effect, _DEFERRED):
                        self._deferred.append(effect)
                    else:
                        self._execute(effect)
            finally:
                self._depth -= 1
                if self._depth == 0:
                    deferred, self._deferred = self._deferred, []
        for effect in deferred:
            self._execute(effect)

    def _execute(self, effect: Effect) -> None:
        if isinstance(effect, OpenTransport):
            self._open_transport()
        elif isinstance(effect, CloseTransport):
            self._close_transport()
        elif isinstance(effect, SendControl):
            self._send_control(effect)
        elif isinstance(effect, SendAudio):
            try:
                self._transport.send_binary(effect.data)
            except VoiceChannelError as exc:
                self._dispatch(TransportFailed(str(exc)))
        elif isinstance(effect, AcquireCapture):
            self._acquire_capture()
        elif isinstance(effect, ReleaseCapture):
            self._release_capture()
        elif isinstance(effect, PlayAudio):
            self._play(effect.data)
        elif isinstance(effect, UpdateHint):
            if self._on_hint is not None:
                self._on_hint(effect.text)
        elif isinstance(effect, SubmitTranscript):
            self._schedule_submit(effect.text)
        elif isinstance(effect, Notify):
            self._notifier.notify(effect.message, effect.level)

    # -- effect handlers ---------------------------------------------------

    def _open_transport(self) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
        logger.info("Connecting to voice service at %s", self._url)
        try:
            self._transport.open(
                self._url,
                on_open=lambda: self._from_transport(generation, TransportOpened()),
                on_text=lambda text: self._from_transport(generation, TextReceived(text)),
                on_binary=lambda data: self._from_transport(generation, BinaryReceived(data)),
                on_error=lambda reason: self._from_transport(generation, TransportFailed(reason)),
                on_close=lambda: self._from_transport(generation, TransportClosed()),
            )
        except VoiceChannelError as exc:
            self._dispatch(TransportFailed(str(exc)))

    def _close_transport(self) -> None:
        with self._lock:
            self._generation += 1
        try:
            self._transport.close()
        except Exception as exc:
            logger.warning("Error closing voice channel: %s", exc)

    def _from_transport(self, generation: int, event: Event) -> None:
        self._dispatch(event, generation=generation)

    def _send_control(self, effect: SendControl) -> None:
        try:
            self._transport.send_text(json.dumps(effect.payload))
        except VoiceChannelError as exc:
            if effect.best_effort:
                logger.debug("Skipped %s control frame: %s", effect.payload.get("type"), exc)
                return
            self._dispatch(TransportFailed(str(exc)))

    def _acquire_capture(self) -> None:
        try:
            handle = self._capture.open(self._on_frame)
        except MicrophoneUnavailable as exc:
            logger.warning("Microphone unavailable: %s", exc)
            self._dispatch(CaptureDenied(str(exc)))
            return
        self._capture_handle = handle
        self._dispatch(CaptureGranted(sample_rate=self._capture.sample_rate))

    def _release_capture(self) -> None:
        with self._lock:
            handle, self._capture_handle = self._capture_handle, None
        if handle is None:
            return
        try:
            handle.close()
        except Exception as exc:
            logger.warning("Error releasing microphone: %s", exc)

    def _on_frame(self, data: bytes) -> None:
        self._dispatch(FrameCaptured(data))

    def _play(self, data: bytes) -> None:
        try:
            self._player.play(data)
        except Exception as exc:
            logger.debug("Ignoring playback failure: %s", exc)

    def _schedule_submit(self, text: str) -> None:
        self.cancel_pending_submit()
        if self._submit_delay <= 0:
            self._on_transcript(text)
            return
        timer = threading.Timer(self._submit_delay, self._on_transcript, args=(text,))
        timer.daemon = True
        self._submit_timer = timer
        timer.start()

"""
Realtime voice state machine.

``transition(state, event)`` is pure: it returns the next :class:`VoiceState`
and the list of effects the caller must perform (send a frame, open the
microphone, show a notice...). :class:`chat_companion.voice.session.VoiceSession`
is the thin shell that feeds events in and executes the effects.

Connection lifecycle::

    disconnected -> connecting -> connected <-> connected+recording
         ^              |             |
         |              +---> error <-+
         +-------------------- (disconnect)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Tuple, Union


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


@dataclass(frozen=True)
class VoiceState:
    connection: ConnectionState = ConnectionState.DISCONNECTED
    recording: RecordingState = RecordingState.IDLE
    pending_transcript: str = ""

    @property
    def is_connected(self) -> bool:
        return self.connection is ConnectionState.CONNECTED

    @property
    def is_recording(self) -> bool:
        return self.recording is RecordingState.RECORDING

    @property
    def label(self) -> str:
        """Human-readable status for indicators, e.g. ``"recording"``."""
        if self.is_connected and self.is_recording:
            return RecordingState.RECORDING.value
        return self.connection.value


# -- events ------------------------------------------------------------------


@dataclass(frozen=True)
class ConnectRequested:
    pass


@dataclass(frozen=True)
class TransportOpened:
    pass


@dataclass(frozen=True)
class TransportFailed:
    reason: str


@dataclass(frozen=True)
class TransportClosed:
    pass


@dataclass(frozen=True)
class DisconnectRequested:
    pass


@dataclass(frozen=True)
class StartRecordingRequested:
    pass


@dataclass(frozen=True)
class CaptureGranted:
    sample_rate: int


@dataclass(frozen=True)
class CaptureDenied:
    reason: str


@dataclass(frozen=True)
class StopRecordingRequested:
    pass


@dataclass(frozen=True)
class FrameCaptured:
    data: bytes


@dataclass(frozen=True)
class TextReceived:
    text: str


@dataclass(frozen=True)
class BinaryReceived:
    data: bytes


@dataclass(frozen=True)
class SpeechRequested:
    text: str


Event = Union[
    ConnectRequested,
    TransportOpened,
    TransportFailed,
    TransportClosed,
    DisconnectRequested,
    StartRecordingRequested,
    CaptureGranted,
    CaptureDenied,
    StopRecordingRequested,
    FrameCaptured,
    TextReceived,
    BinaryReceived,
    SpeechRequested,
]


# -- effects -----------------------------------------------------------------


@dataclass(frozen=True)
class OpenTransport:
    pass


@dataclass(frozen=True)
class CloseTransport:
    pass


@dataclass(frozen=True)
class SendControl:
    """Structured text frame. ``best_effort`` sends never fail the channel."""

    payload: Dict[str, Any] = field(default_factory=dict)
    best_effort: bool = False


@dataclass(frozen=True)
class SendAudio:
    data: bytes


@dataclass(frozen=True)
class AcquireCapture:
    pass


@dataclass(frozen=True)
class ReleaseCapture:
    pass


@dataclass(frozen=True)
class PlayAudio:
    data: bytes


@dataclass(frozen=True)
class UpdateHint:
    text: str


@dataclass(frozen=True)
class SubmitTranscript:
    text: str


@dataclass(frozen=True)
class Notify:
    message: str
    level: str = "info"


Effect = Union[
    OpenTransport,
    CloseTransport,
    SendControl,
    SendAudio,
    AcquireCapture,
    ReleaseCapture,
    PlayAudio,
    UpdateHint,
    SubmitTranscript,
    Notify,
]


@dataclass(frozen=True)
class Transition:
    state: VoiceState
    effects: Tuple[Effect, ...] = ()


END_OF_UTTERANCE = {"type": "end"}
LISTENING_HINT = "Listening..."


def transition(state: VoiceState, event: Event) -> Transition:
    """Compute the next state and effects for ``event``. Never raises."""
    connection = state.connection
    connected = connection is ConnectionState.CONNECTED
    recording = connected and state.is_recording

    if isinstance(event, ConnectRequested):
        if connection is ConnectionState.DISCONNECTED:
            return Transition(replace(state, connection=ConnectionState.CONNECTING), (OpenTransport(),))
        return Transition(state)

    if isinstance(event, TransportOpened):
        if connection is ConnectionState.CONNECTING:
            return Transition(
                replace(state, connection=ConnectionState.CONNECTED),
                (Notify("Voice channel connected", "success"),),
            )
        if connection is ConnectionState.DISCONNECTED:
            # A late open after the caller already gave up.
            return Transition(state, (CloseTransport(),))
        return Transition(state)

    if isinstance(event, TransportFailed):
        if connection in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            effects: Tuple[Effect, ...] = (ReleaseCapture(),) if recording else ()
            effects += (CloseTransport(), UpdateHint(""), Notify(f"Voice connection error: {event.reason}", "error"))
            return Transition(VoiceState(connection=ConnectionState.ERROR), effects)
        return Transition(state)

    if isinstance(event, TransportClosed):
        if connection in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            effects = (ReleaseCapture(),) if recording else ()
            effects += (CloseTransport(), UpdateHint(""), Notify("Voice connection closed", "warning"))
            return Transition(VoiceState(), effects)
        return Transition(state)

    if isinstance(event, DisconnectRequested):
        if connection is ConnectionState.DISCONNECTED:
            return Transition(state)
        effects = ()
        if recording:
            effects += (SendControl(END_OF_UTTERANCE, best_effort=True), ReleaseCapture(), UpdateHint(""))
        effects += (CloseTransport(),)
        return Transition(VoiceState(), effects)

    if isinstance(event, StartRecordingRequested):
        if recording:
            return Transition(state)
        if connected:
            return Transition(state, (AcquireCapture(),))
        return Transition(state, (Notify("Connect to the voice service before recording", "warning"),))

    if isinstance(event, CaptureGranted):
        if connected and not recording:
            return Transition(
                replace(state, recording=RecordingState.RECORDING, pending_transcript=""),
                (
                    SendControl({"type": "start", "sampleRate": event.sample_rate}),
                    UpdateHint(LISTENING_HINT),
                ),
            )
        # Channel went away while the microphone was opening.
        return Transition(state, (ReleaseCapture(),))

    if isinstance(event, CaptureDenied):
        return Transition(state, (Notify(f"Microphone unavailable: {event.reason}", "error"),))

    if isinstance(event, StopRecordingRequested):
        if not recording:
            return Transition(state)
        return Transition(
            replace(state, recording=RecordingState.IDLE),
            (SendControl(END_OF_UTTERANCE, best_effort=True), ReleaseCapture(), UpdateHint("")),
        )

    if isinstance(event, FrameCaptured):
        if recording and event.data:
            return Transition(state, (SendAudio(event.data),))
        return Transition(state)

    if isinstance(event, TextReceived):
        if connection is ConnectionState.DISCONNECTED:
            return Transition(state)
        return _handle_control_frame(state, event.text)

    if isinstance(event, BinaryReceived):
        if connection is ConnectionState.DISCONNECTED or not event.data:
            return Transition(state)
        return Transition(state, (PlayAudio(event.data),))

    if isinstance(event, SpeechRequested):
        if not connected:
            return Transition(state, (Notify("Voice channel is not connected", "error"),))
        if not event.text.strip():
            return Transition(state)
        return Transition(state, (SendControl({"type": "tts", "text": event.text}),))

    return Transition(state)


def _handle_control_frame(state: VoiceState, raw: str) -> Transition:
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        return Transition(state)
    if not isinstance(message, dict):
        return Transition(state)

    kind = message.get("type")
    if kind == "partial":
        text = str(message.get("text") or "")
        return Transition(replace(state, pending_transcript=text), (UpdateHint(text),))

    if kind == "final":
        text = str(message.get("text") or "").strip()
        cleared = replace(state, pending_transcript="")
        if text:
            return Transition(cleared, (UpdateHint(""), SubmitTranscript(text)))
        return Transition(
            cleared,
            (UpdateHint(""), Notify("No speech recognized. Please try again.", "warning")),
        )

    if kind == "error":
        detail = str(message.get("message") or "Unknown voice service error")
        return Transition(state, (Notify(f"Voice error: {detail}", "error"),))

    return Transition(state)

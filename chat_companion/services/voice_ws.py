"""WebSocket transport for the realtime voice channel."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

import websocket

from ..exceptions import VoiceChannelError
from ..interfaces import VoiceTransport

logger = logging.getLogger(__name__)


class WebSocketTransport(VoiceTransport):
    """
    websocket-client ``WebSocketApp`` running its receive loop on a daemon thread.

    Text frames are control messages (JSON), binary frames carry audio.
    All callbacks fire on the receive thread.

    Usage:
        transport = WebSocketTransport()
        transport.open("ws://localhost:8765", on_open=..., on_text=..., on_binary=...,
                       on_error=..., on_close=...)
        transport.send_text('{"type": "start", "sampleRate": 16000}')
    """

    def __init__(self, *, ping_interval: float = 20.0, ping_timeout: float = 10.0) -> None:
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._app: Optional[websocket.WebSocketApp] = None
        self._thread: Optional[threading.Thread] = None

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
        if self._app is not None:
            raise VoiceChannelError("Voice channel already open")

        def _on_message(ws: Any, message: Any) -> None:
            if isinstance(message, (bytes, bytearray)):
                on_binary(bytes(message))
            else:
                on_text(message)

        def _on_error(ws: Any, error: Any) -> None:
            logger.debug("Voice socket error: %r", error)
            on_error(str(error) or error.__class__.__name__)

        def _on_close(ws: Any, status_code: Any, reason: Any) -> None:
            logger.info("Voice socket closed (code=%s reason=%s)", status_code, reason)
            on_close()

        app = websocket.WebSocketApp(
            url,
            on_open=lambda ws: on_open(),
            on_message=_on_message,
            on_error=_on_error,
            on_close=_on_close,
        )
        thread = threading.Thread(
            target=app.run_forever,
            kwargs={"ping_interval": self._ping_interval, "ping_timeout": self._ping_timeout},
            name="voice-channel",
            daemon=True,
        )
        self._app = app
        self._thread = thread
        try:
            thread.start()
        except RuntimeError as exc:
            self._app = None
            self._thread = None
            raise VoiceChannelError(f"Could not start voice channel thread: {exc}") from exc

    def send_text(self, text: str) -> None:
        self._send(text, websocket.ABNF.OPCODE_TEXT)

    def send_binary(self, data: bytes) -> None:
        self._send(data, websocket.ABNF.OPCODE_BINARY)

    def _send(self, payload: Any, opcode: int) -> None:
        app = self._app
        if app is None or app.sock is None or not app.sock.connected:
            raise VoiceChannelError("Voice channel is not open")
        try:
            app.send(payload, opcode=opcode)
        except (websocket.WebSocketException, OSError) as exc:
            raise VoiceChannelError(f"Voice channel send failed: {exc}") from exc

    def close(self) -> None:
        app, self._app = self._app, None
        self._thread = None
        if app is not None:
            app.close()
            logger.info("Closed voice channel")

"""Remote Whisper-style transcription over HTTP."""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from typing import Optional

from ..exceptions import TranscriptionError
from ..interfaces import TranscriptionService
from ..models import CapturedAudio
from ..voice.audio import pcm_to_wav


class RemoteTranscription(TranscriptionService):
    """
    Transcription using a remote Whisper API.

    Expected API format:
        POST /transcribe
        Content-Type: audio/wav
        Body: WAV file (16-bit mono)

        Response: {"text": "transcribed text"} or plain text
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 30.0,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/transcribe"
        self._timeout = timeout
        self._ssl_context = ssl_context

    def transcribe(self, audio: CapturedAudio, *, language: Optional[str] = None) -> str:
        if not audio.data:
            raise TranscriptionError("No audio data provided for transcription.")

        body = audio.data if audio.encoding == "wav" else pcm_to_wav(audio.data, audio.sample_rate)
        headers = {"Content-Type": "audio/wav"}
        if language:
            headers["Content-Language"] = language
        request = urllib.request.Request(self._endpoint, data=body, headers=headers, method="POST")

        try:
            with urllib.request.urlopen(request, timeout=self._timeout, context=self._ssl_context) as response:  # type: ignore[arg-type]
                payload = response.read()
                content_type = response.headers.get("Content-Type", "")
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore")
            raise TranscriptionError(f"Transcription request failed ({exc.code}): {detail}") from exc
        except urllib.error.URLError as exc:
            raise TranscriptionError(f"Transcription service unreachable: {exc.reason}") from exc

        if "application/json" in content_type:
            try:
                data = json.loads(payload.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise TranscriptionError("Transcription response was not valid JSON") from exc
            return str(data.get("text", "")).strip()

        return payload.decode("utf-8", errors="ignore").strip()

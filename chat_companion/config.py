"""Configuration helpers for the chat client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_SYSTEM_PROMPT = """You are an advanced AI assistant with the following capabilities:

1. **Conversational Understanding**: You understand context, intent, and can recognize important information.
2. **Sentiment Awareness**: You detect and respond appropriately to the user's emotional state.
3. **Helpful & Adaptive**: You learn from conversations and provide personalized responses.
4. **Professional**: You maintain a friendly yet professional tone.

Guidelines:
- Be concise but thorough
- Show empathy when detecting negative sentiment
- Provide structured responses when explaining complex topics
- Ask clarifying questions when needed
- Remember context from previous messages"""


def _env_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc


def _env_int(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in {"1", "true", "yes", "on"}


@dataclass
class AppConfig:
    """
    Runtime configuration for the chat client.

    Attributes:
        api_base_url: Root URL serving `/api/chat`, `/api/analyze`, `/api/summarize`.
        backend: "server" (talk to the API above) or "ollama" (talk to Ollama directly).
        ollama_url: Ollama root URL (backend=ollama).
        model: Ollama model name (backend=ollama).
        system_prompt: System message prepended to chat requests (backend=ollama).
        temperature: Sampling temperature between 0.0 and 1.0.
        chat_timeout: Upper bound in seconds for one chat completion.
        analyze_timeout: Upper bound in seconds for one analysis call.
        summary_timeout: Upper bound in seconds for one summarization call.
        data_dir: Directory holding the persisted conversation collection.
        max_conversations: Number of conversations kept before eviction.
        save_every: Save after every N completed turns.
        summary_refresh: Regenerate the title when the message count is a multiple of this.
        realtime_voice: Use the realtime voice channel instead of dictation.
        voice_url: WebSocket URL of the local voice service.
        voice_sample_rate: Rate announced in the `start` control frame.
        submit_debounce: Seconds between a final transcript and its submission.
        speak_replies: Ask the voice service to speak assistant replies.
        whisper_url: Transcription endpoint used by fallback dictation.
        record_seconds: Maximum dictation length.
        notify_seconds: How long a notification stays active.

    Usage:
        >>> config = AppConfig.from_env()
        >>> config.api_base_url
        'http://localhost:3000'
    """

    api_base_url: str
    backend: str
    ollama_url: str
    model: str
    system_prompt: str
    temperature: float
    chat_timeout: float
    analyze_timeout: float
    summary_timeout: float
    data_dir: str
    max_conversations: int
    save_every: int
    summary_refresh: int
    realtime_voice: bool
    voice_url: str
    voice_sample_rate: int
    submit_debounce: float
    speak_replies: bool
    whisper_url: Optional[str]
    record_seconds: float
    notify_seconds: float

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Build an :class:`AppConfig` from environment variables.

        Supported variables:
            - COMPANION_API_BASE_URL: Chat API root (default: http://localhost:3000)
            - COMPANION_BACKEND: "server" (default) or "ollama".
            - COMPANION_OLLAMA_URL: Ollama root (default: http://localhost:11434)
            - COMPANION_MODEL: Ollama model (default: llama3.2:latest)
            - COMPANION_SYSTEM_PROMPT: Override the built-in system prompt.
            - COMPANION_TEMPERATURE: Float in [0, 1] (default: 0.7).
            - COMPANION_CHAT_TIMEOUT: Seconds (default: 60).
            - COMPANION_ANALYZE_TIMEOUT: Seconds (default: 10).
            - COMPANION_SUMMARY_TIMEOUT: Seconds (default: 30).
            - COMPANION_DATA_DIR: Storage directory (default: ~/.chat_companion).
            - COMPANION_MAX_CONVERSATIONS: Stored conversation cap (default: 50).
            - COMPANION_SAVE_EVERY: Save cadence in turns (default: 1).
            - COMPANION_SUMMARY_REFRESH: Title refresh interval in messages (default: 5).
            - COMPANION_REALTIME_VOICE: "true"/"1" to use the realtime voice channel.
            - COMPANION_VOICE_URL: Voice service URL (default: ws://localhost:8765).
            - COMPANION_VOICE_SAMPLE_RATE: Outbound PCM rate (default: 16000).
            - COMPANION_SUBMIT_DEBOUNCE: Seconds (default: 0.5).
            - COMPANION_SPEAK_REPLIES: "true"/"1" to speak replies (default: true).
            - COMPANION_WHISPER_URL: Transcription service for dictation.
            - COMPANION_RECORD_SECONDS: Max dictation seconds (default: 15).
            - COMPANION_NOTIFY_SECONDS: Notification lifetime (default: 3).
        """

        temperature = _env_float("COMPANION_TEMPERATURE", "0.7")
        if not 0.0 <= temperature <= 1.0:
            raise ValueError("COMPANION_TEMPERATURE must be between 0.0 and 1.0")

        max_conversations = _env_int("COMPANION_MAX_CONVERSATIONS", "50")
        save_every = _env_int("COMPANION_SAVE_EVERY", "1")
        summary_refresh = _env_int("COMPANION_SUMMARY_REFRESH", "5")
        if max_conversations < 1 or save_every < 1 or summary_refresh < 1:
            raise ValueError(
                "COMPANION_MAX_CONVERSATIONS, COMPANION_SAVE_EVERY and "
                "COMPANION_SUMMARY_REFRESH must be positive"
            )

        data_dir = os.environ.get("COMPANION_DATA_DIR") or os.path.join(
            os.path.expanduser("~"), ".chat_companion"
        )

        return cls(
            api_base_url=os.environ.get("COMPANION_API_BASE_URL", "http://localhost:3000").rstrip("/"),
            backend=os.environ.get("COMPANION_BACKEND", "server").lower(),
            ollama_url=os.environ.get("COMPANION_OLLAMA_URL", "http://localhost:11434").rstrip("/"),
            model=os.environ.get("COMPANION_MODEL", "llama3.2:latest"),
            system_prompt=os.environ.get("COMPANION_SYSTEM_PROMPT") or DEFAULT_SYSTEM_PROMPT,
            temperature=temperature,
            chat_timeout=_env_float("COMPANION_CHAT_TIMEOUT", "60"),
            analyze_timeout=_env_float("COMPANION_ANALYZE_TIMEOUT", "10"),
            summary_timeout=_env_float("COMPANION_SUMMARY_TIMEOUT", "30"),
            data_dir=data_dir,
            max_conversations=max_conversations,
            save_every=save_every,
            summary_refresh=summary_refresh,
            realtime_voice=_env_bool("COMPANION_REALTIME_VOICE", "false"),
            voice_url=os.environ.get("COMPANION_VOICE_URL", "ws://localhost:8765"),
            voice_sample_rate=_env_int("COMPANION_VOICE_SAMPLE_RATE", "16000"),
            submit_debounce=_env_float("COMPANION_SUBMIT_DEBOUNCE", "0.5"),
            speak_replies=_env_bool("COMPANION_SPEAK_REPLIES", "true"),
            whisper_url=os.environ.get("COMPANION_WHISPER_URL") or None,
            record_seconds=_env_float("COMPANION_RECORD_SECONDS", "15"),
            notify_seconds=_env_float("COMPANION_NOTIFY_SECONDS", "3"),
        )

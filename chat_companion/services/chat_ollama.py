"""Direct Ollama `/api/chat` backend for chat completion and titles."""

from __future__ import annotations

import logging
import ssl
from typing import Any, Dict, List, Optional, Sequence, Type

from ..exceptions import ChatClientError, SummaryError
from ..interfaces import ChatClient, Summarizer
from ..models import ChatResponse, Message
from .http_json import post_json

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates very brief, concise summaries of conversations. "
    "Keep summaries under the specified character limit."
)


def _ollama_chat(
    endpoint: str,
    payload: Dict[str, Any],
    *,
    timeout: float,
    error_cls: Type[Exception],
    ssl_context: Optional[ssl.SSLContext],
) -> str:
    data = post_json(endpoint, payload, timeout=timeout, error_cls=error_cls, ssl_context=ssl_context)
    message = data.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    raise error_cls("Ollama response did not contain message content")


class OllamaChatClient(ChatClient):
    """
    Chat completion straight against a local Ollama runtime.

    The system prompt is prepended to every request; it is never stored in
    the conversation itself.

    Usage:
        >>> client = OllamaChatClient("http://localhost:11434", model="llama3.2:latest")
        >>> client.complete([Message("user", "Hi")], temperature=0.7).text
        'Hello! How can I help you today?'
    """

    def __init__(
        self,
        base_url: str,
        *,
        model: str,
        system_prompt: Optional[str] = None,
        timeout: float = 60.0,
        top_p: float = 0.9,
        max_tokens: int = 800,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/api/chat"
        self._model = model
        self._system_prompt = system_prompt
        self._timeout = timeout
        self._top_p = top_p
        self._max_tokens = max_tokens
        self._ssl_context = ssl_context

    def complete(self, messages: Sequence[Message], *, temperature: float) -> ChatResponse:
        history: List[Dict[str, str]] = []
        if self._system_prompt:
            history.append({"role": "system", "content": self._system_prompt})
        history.extend(m.as_dict() for m in messages)

        payload = {
            "model": self._model,
            "messages": history,
            "stream": False,
            "options": {
                "temperature": temperature,
                "top_p": self._top_p,
                "max_tokens": self._max_tokens,
            },
        }
        logger.debug("Ollama chat: model=%s messages=%d", self._model, len(history))
        text = _ollama_chat(
            self._endpoint,
            payload,
            timeout=self._timeout,
            error_cls=ChatClientError,
            ssl_context=self._ssl_context,
        )
        return ChatResponse(text=text, raw={"model": self._model})


class OllamaSummarizer(Summarizer):
    """Asks the same Ollama model for a very short conversation title."""

    def __init__(
        self,
        base_url: str,
        *,
        model: str,
        timeout: float = 30.0,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/api/chat"
        self._model = model
        self._timeout = timeout
        self._ssl_context = ssl_context

    def summarize(self, messages: Sequence[Message], *, max_length: int) -> str:
        if not messages:
            raise SummaryError("Messages required")

        transcript = "\n".join(
            f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}" for m in messages
        )
        prompt = (
            f"Please provide a very brief ({max_length} characters max) summary of this conversation. "
            f"Be concise and capture the main topic:\n\n{transcript}"
        )
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
            "options": {"temperature": 0.3, "max_tokens": 150},
        }
        summary = _ollama_chat(
            self._endpoint,
            payload,
            timeout=self._timeout,
            error_cls=SummaryError,
            ssl_context=self._ssl_context,
        ).strip()
        if not summary:
            raise SummaryError("Ollama returned an empty summary")
        return summary

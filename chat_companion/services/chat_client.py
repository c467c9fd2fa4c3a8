"""HTTP client for the `/api/chat` endpoint."""

from __future__ import annotations

import logging
import ssl
from typing import Optional, Sequence

from ..exceptions import ChatClientError
from ..interfaces import ChatClient
from ..models import ChatResponse, Message
from .http_json import post_json

logger = logging.getLogger(__name__)


class HttpChatClient(ChatClient):
    """
    Minimal HTTP client that talks to the chat proxy.

    Request:  ``{"messages": [{"role", "content"}...], "temperature": 0.7}``
    Response: ``{"response": "text"}`` or ``{"error": "text"}`` with non-2xx.

    Usage:
        >>> client = HttpChatClient("http://localhost:3000")
        >>> client.complete([Message("user", "Hello")], temperature=0.7).text
        'Hi there!'
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/api/chat"
        self._timeout = timeout
        self._ssl_context = ssl_context

    def complete(self, messages: Sequence[Message], *, temperature: float) -> ChatResponse:
        payload = {
            "messages": [m.as_dict() for m in messages],
            "temperature": temperature,
        }
        logger.debug("Sending %d messages to %s", len(messages), self._endpoint)
        data = post_json(
            self._endpoint,
            payload,
            timeout=self._timeout,
            error_cls=ChatClientError,
            ssl_context=self._ssl_context,
        )

        text = data.get("response")
        if not isinstance(text, str):
            error = data.get("error")
            raise ChatClientError(error if isinstance(error, str) else "Chat response did not contain a reply")
        return ChatResponse(text=text, raw=data)

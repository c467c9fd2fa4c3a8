"""HTTP client for the `/api/summarize` endpoint."""

from __future__ import annotations

import ssl
from typing import Optional, Sequence

from ..exceptions import SummaryError
from ..interfaces import Summarizer
from ..models import Message
from .http_json import post_json


class HttpSummarizer(Summarizer):
    """
    Requests a short conversation title.

    Request:  ``{"messages": [...], "maxLength": 50}``
    Response: ``{"summary": "text"}``
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/api/summarize"
        self._timeout = timeout
        self._ssl_context = ssl_context

    def summarize(self, messages: Sequence[Message], *, max_length: int) -> str:
        data = post_json(
            self._endpoint,
            {"messages": [m.as_dict() for m in messages], "maxLength": max_length},
            timeout=self._timeout,
            error_cls=SummaryError,
            ssl_context=self._ssl_context,
        )
        summary = data.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise SummaryError("Summary response was empty")
        return summary.strip()

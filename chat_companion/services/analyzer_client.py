"""HTTP client for the `/api/analyze` endpoint."""

from __future__ import annotations

import ssl
from typing import Optional

from ..exceptions import AnalyzerError
from ..interfaces import Analyzer
from ..models import Analysis
from .http_json import post_json


class HttpAnalyzer(Analyzer):
    """
    Sends ``{"text": ...}`` and expects ``{"sentiment", "intent", "entities"}``.

    Raises :class:`AnalyzerError` on any failure; callers decide the default.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/api/analyze"
        self._timeout = timeout
        self._ssl_context = ssl_context

    def analyze(self, text: str) -> Analysis:
        data = post_json(
            self._endpoint,
            {"text": text},
            timeout=self._timeout,
            error_cls=AnalyzerError,
            ssl_context=self._ssl_context,
        )
        sentiment = data.get("sentiment")
        intent = data.get("intent")
        entities = data.get("entities", [])
        if not isinstance(sentiment, str) or not isinstance(intent, str) or not isinstance(entities, list):
            raise AnalyzerError(f"Unexpected analysis payload: {data!r}")
        return Analysis(sentiment=sentiment, intent=intent, entities=[str(e) for e in entities])

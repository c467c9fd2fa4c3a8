"""Short conversation titles with a local fallback."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .exceptions import SummaryError
from .interfaces import Summarizer
from .models import Message

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50
MESSAGE_WINDOW = 10


class SummaryGenerator:
    """
    Derives a title for a conversation.

    The external summarizer is asked first; on any failure the title falls
    back to the first user message (truncated), then to "Conversation".
    An empty message list is always "New Conversation".

    Usage:
        >>> SummaryGenerator().generate([])
        'New Conversation'
    """

    def __init__(self, summarizer: Optional[Summarizer] = None, *, max_length: int = TITLE_MAX_LENGTH) -> None:
        self._summarizer = summarizer
        self._max_length = max_length

    def generate(self, messages: Sequence[Message]) -> str:
        if not messages:
            return "New Conversation"

        window = list(messages)[:MESSAGE_WINDOW]
        if self._summarizer is not None:
            try:
                title = self._summarizer.summarize(window, max_length=self._max_length).strip()
                if title:
                    return title
                logger.warning("Summarizer returned an empty title; using fallback")
            except SummaryError as exc:
                logger.warning("Summary generation failed: %s", exc)

        return self.fallback(window)

    def fallback(self, messages: Sequence[Message]) -> str:
        if not messages:
            return "New Conversation"
        for message in messages:
            if message.role == "user":
                return message.content[: self._max_length]
        return "Conversation"

"""Keyword sentiment, rule-based intent and regex entity extraction."""

from __future__ import annotations

import re
from typing import List

from .models import NEGATIVE, NEUTRAL, POSITIVE, Analysis

POSITIVE_WORDS = ("good", "great", "excellent", "happy", "love", "wonderful", "amazing", "thank", "thanks")
NEGATIVE_WORDS = ("bad", "terrible", "hate", "angry", "sad", "awful", "worst", "disappointed")

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
URL_RE = re.compile(r"https?://(?:[a-zA-Z]|[0-9]|[$-_@.&+]|[!*(),]|%[0-9a-fA-F]{2})+")
PHONE_RE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")


def analyze_sentiment(text: str) -> str:
    """Count positive and negative keywords; ties are neutral."""
    lowered = text.lower()
    positives = sum(1 for word in POSITIVE_WORDS if word in lowered)
    negatives = sum(1 for word in NEGATIVE_WORDS if word in lowered)
    if positives > negatives:
        return POSITIVE
    if negatives > positives:
        return NEGATIVE
    return NEUTRAL


def detect_intent(text: str) -> str:
    """
    First matching rule wins.

    Usage:
        >>> detect_intent("hey, can you help me?")
        'greeting'
        >>> detect_intent("Where is it?")
        'question'
    """
    lowered = text.lower()
    if any(word in lowered for word in ("hello", "hi", "hey", "greetings")):
        return "greeting"
    if any(word in lowered for word in ("help", "support", "assist")):
        return "help_request"
    if any(word in lowered for word in ("thanks", "thank you", "appreciate")):
        return "gratitude"
    if "?" in text:
        return "question"
    return "statement"


def extract_entities(text: str) -> List[str]:
    """Return emails, URLs and phone numbers, each prefixed with an icon."""
    entities = [f"📧 {email}" for email in EMAIL_RE.findall(text)]
    entities.extend(f"🔗 {url}" for url in URL_RE.findall(text))
    entities.extend(f"📱 {phone}" for phone in PHONE_RE.findall(text))
    return entities


class KeywordAnalyzer:
    """
    Offline analyzer that never fails.

    Used when the chat backend is Ollama directly and no analysis endpoint
    exists in front of it.
    """

    def analyze(self, text: str) -> Analysis:
        return Analysis(
            sentiment=analyze_sentiment(text),
            intent=detect_intent(text),
            entities=extract_entities(text),
        )

"""Pure counter updates and derived figures over a conversation's turns."""

from __future__ import annotations

import copy
from typing import List, Optional, Sequence, Tuple

from .models import NEGATIVE, POSITIVE, THUMBS_DOWN, THUMBS_UP, Analytics, TurnRecord

SENTIMENT_SCORES = {POSITIVE: 1, NEGATIVE: -1}


def record_user_message(analytics: Analytics, *, sentiment: str, intent: str) -> Analytics:
    """Return a copy with one more user message and its labels counted."""
    updated = copy.deepcopy(analytics)
    updated.total_messages += 1
    updated.user_messages += 1
    updated.sentiments[sentiment] = updated.sentiments.get(sentiment, 0) + 1
    updated.intents[intent] = updated.intents.get(intent, 0) + 1
    return updated


def record_assistant_message(analytics: Analytics) -> Analytics:
    updated = copy.deepcopy(analytics)
    updated.total_messages += 1
    updated.bot_messages += 1
    return updated


def record_feedback(analytics: Analytics, *, positive: bool) -> Analytics:
    updated = copy.deepcopy(analytics)
    key = THUMBS_UP if positive else THUMBS_DOWN
    updated.feedback[key] = updated.feedback.get(key, 0) + 1
    return updated


def satisfaction(analytics: Analytics) -> Optional[float]:
    """Percentage of thumbs-up votes, or None before any feedback."""
    ups = analytics.feedback.get(THUMBS_UP, 0)
    total = ups + analytics.feedback.get(THUMBS_DOWN, 0)
    if total == 0:
        return None
    return ups / total * 100.0


def top_intents(analytics: Analytics, limit: int = 5) -> List[Tuple[str, int]]:
    """Most frequent intents first; ties keep first-seen order."""
    ranked = sorted(analytics.intents.items(), key=lambda item: -item[1])
    return ranked[:limit]


def sentiment_trend(turns: Sequence[TurnRecord], window: int = 10) -> List[int]:
    """Map the last ``window`` turns to +1 / 0 / -1."""
    return [SENTIMENT_SCORES.get(turn.sentiment_label, 0) for turn in list(turns)[-window:]]

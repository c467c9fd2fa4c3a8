"""Shared dataclasses for the chat client."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

Role = Literal["system", "user", "assistant"]

POSITIVE = "😊 Positive"
NEGATIVE = "😟 Negative"
NEUTRAL = "😐 Neutral"
SENTIMENT_LABELS = (POSITIVE, NEGATIVE, NEUTRAL)

THUMBS_UP = "👍"
THUMBS_DOWN = "👎"


def utc_now_iso() -> str:
    """Millisecond-precision UTC timestamp, e.g. ``2026-10-19T08:15:30.120Z``."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def new_conversation_id() -> str:
    """Return an id like ``conv_1760861730120_k3j9x0a2b``."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"conv_{int(time.time() * 1000)}_{suffix}"


@dataclass
class Message:
    """Represents a single chat turn."""

    role: Role
    content: str

    def as_dict(self) -> Dict[str, str]:
        """Convert to the API shape expected by the chat endpoint."""
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(role=data["role"], content=str(data.get("content", "")))


@dataclass
class Analysis:
    """Sentiment, intent and entities extracted from one user message."""

    sentiment: str
    intent: str
    entities: List[str] = field(default_factory=list)

    @classmethod
    def neutral(cls) -> "Analysis":
        """Result used whenever the analyzer is unavailable."""
        return cls(sentiment=NEUTRAL, intent="statement", entities=[])


@dataclass
class TurnRecord:
    """
    One user message, its assistant reply and the analysis of the user text.

    Attributes:
        timestamp: ISO-8601 UTC time the reply arrived.
        user_text: What the user sent.
        bot_text: What the assistant answered.
        sentiment_label: One of the sentiment labels.
        intent_label: Free-form intent label (e.g. "greeting").
        entities: Extracted entity strings.
    """

    timestamp: str
    user_text: str
    bot_text: str
    sentiment_label: str
    intent_label: str
    entities: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "userText": self.user_text,
            "botText": self.bot_text,
            "sentimentLabel": self.sentiment_label,
            "intentLabel": self.intent_label,
            "entities": list(self.entities),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TurnRecord":
        return cls(
            timestamp=str(data.get("timestamp", "")),
            user_text=str(data.get("userText", "")),
            bot_text=str(data.get("botText", "")),
            sentiment_label=str(data.get("sentimentLabel", NEUTRAL)),
            intent_label=str(data.get("intentLabel", "statement")),
            entities=[str(e) for e in data.get("entities") or []],
        )


def _zero_sentiments() -> Dict[str, int]:
    return {label: 0 for label in SENTIMENT_LABELS}


def _zero_feedback() -> Dict[str, int]:
    return {THUMBS_UP: 0, THUMBS_DOWN: 0}


@dataclass
class Analytics:
    """Running counters for one conversation."""

    total_messages: int = 0
    user_messages: int = 0
    bot_messages: int = 0
    sentiments: Dict[str, int] = field(default_factory=_zero_sentiments)
    intents: Dict[str, int] = field(default_factory=dict)
    feedback: Dict[str, int] = field(default_factory=_zero_feedback)
    conversation_start: str = field(default_factory=utc_now_iso)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalMessages": self.total_messages,
            "userMessages": self.user_messages,
            "botMessages": self.bot_messages,
            "sentiments": dict(self.sentiments),
            "intents": dict(self.intents),
            "feedback": dict(self.feedback),
            "conversationStart": self.conversation_start,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Analytics":
        if not data:
            return cls()
        sentiments = _zero_sentiments()
        sentiments.update({str(k): int(v) for k, v in (data.get("sentiments") or {}).items()})
        feedback = _zero_feedback()
        feedback.update({str(k): int(v) for k, v in (data.get("feedback") or {}).items()})
        return cls(
            total_messages=int(data.get("totalMessages", 0)),
            user_messages=int(data.get("userMessages", 0)),
            bot_messages=int(data.get("botMessages", 0)),
            sentiments=sentiments,
            intents={str(k): int(v) for k, v in (data.get("intents") or {}).items()},
            feedback=feedback,
            conversation_start=str(data.get("conversationStart") or utc_now_iso()),
        )


@dataclass
class ConversationRecord:
    """The persisted unit for one conversation."""

    id: str
    title: Optional[str] = None
    messages: List[Message] = field(default_factory=list)
    turns: List[TurnRecord] = field(default_factory=list)
    analytics: Analytics = field(default_factory=Analytics)
    saved_at: Optional[str] = None

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.as_dict() for m in self.messages],
            "turns": [t.as_dict() for t in self.turns],
            "analytics": self.analytics.as_dict(),
            "savedAt": self.saved_at,
            "messageCount": self.message_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationRecord":
        return cls(
            id=str(data["id"]),
            title=data.get("title"),
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
            turns=[TurnRecord.from_dict(t) for t in data.get("turns") or []],
            analytics=Analytics.from_dict(data.get("analytics")),
            saved_at=data.get("savedAt"),
        )


@dataclass
class CapturedAudio:
    """
    Audio blob captured by the recorder.

    Attributes:
        data: Raw PCM or encoded audio bytes.
        sample_rate: Sample rate in Hz (e.g., 16000).
        encoding: Audio encoding label (e.g., "pcm_s16le", "wav").
    """

    data: bytes
    sample_rate: int
    encoding: str = "pcm_s16le"


@dataclass
class ChatResponse:
    """Normalized response returned by the chat service."""

    text: str
    raw: Dict[str, Any]

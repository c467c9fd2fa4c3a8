"""JSON export of the active conversation's turns and analytics."""

from __future__ import annotations

import json
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .models import Analytics, TurnRecord, utc_now_iso

APPLICATION_NAME = "AI Chatbot Platform"
EXPORT_VERSION = "1.0.0"


def build_export(turns: Sequence[TurnRecord], analytics: Analytics) -> Dict[str, Any]:
    return {
        "metadata": {
            "application": APPLICATION_NAME,
            "version": EXPORT_VERSION,
            "exportTime": utc_now_iso(),
            "conversationStart": analytics.conversation_start,
        },
        "conversations": [turn.as_dict() for turn in turns],
        "analytics": analytics.as_dict(),
    }


def default_export_name(now: Optional[datetime] = None) -> str:
    """e.g. ``conversation_2026-10-19T08-15-30.json``"""
    stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    return f"conversation_{stamp}.json"


def write_export(path: str, turns: Sequence[TurnRecord], analytics: Analytics) -> str:
    path = os.path.expanduser(path)
    if os.path.isdir(path):
        path = os.path.join(path, default_export_name())
    with open(path, "w", encoding="utf-8") as f:
        json.dump(build_export(turns, analytics), f, indent=2, ensure_ascii=False)
    return path


def load_export(path: str) -> Dict[str, Any]:
    """Read an export back; ``conversations`` becomes a list of TurnRecord."""
    with open(os.path.expanduser(path), "r", encoding="utf-8") as f:
        data = json.load(f)
    turns: List[TurnRecord] = [TurnRecord.from_dict(t) for t in data.get("conversations", [])]
    return {
        "metadata": data.get("metadata", {}),
        "conversations": turns,
        "analytics": Analytics.from_dict(data.get("analytics")),
    }

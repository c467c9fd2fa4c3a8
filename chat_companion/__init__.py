"""
Chat Companion console client.

This package contains a small chat client for a local language-model runtime:
per-message sentiment/intent/entity tagging, locally persisted conversation
history with generated titles, and an optional realtime voice channel.
The default entrypoint for local experiments is ``python main.py``.
"""

__all__ = [
    "analytics",
    "config",
    "interfaces",
    "models",
    "session",
    "store",
    "summary",
]

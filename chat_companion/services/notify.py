"""Console notification sink with auto-expiring notices."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List

from ..interfaces import NotificationSink

logger = logging.getLogger(__name__)

_ICONS = {
    "success": "✓",
    "info": "i",
    "warning": "!",
    "error": "✗",
}
_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class Notice:
    message: str
    level: str
    expires_at: float


class ConsoleNotifier(NotificationSink):
    """
    Prints notices immediately and keeps them "active" for a fixed interval.

    Nothing ever blocks on a notice; :meth:`active` simply stops returning it
    once ``lifetime`` seconds have passed.

    Usage:
        notifier = ConsoleNotifier(lifetime=3.0)
        notifier.notify("Conversation saved", "success")
    """

    def __init__(
        self,
        *,
        lifetime: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        echo: bool = True,
    ) -> None:
        self._lifetime = lifetime
        self._clock = clock
        self._echo = echo
        self._notices: List[Notice] = []
        self._lock = threading.Lock()

    def notify(self, message: str, level: str = "info") -> None:
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "notice: %s", message)
        with self._lock:
            self._notices.append(Notice(message, level, self._clock() + self._lifetime))
        if self._echo:
            print(f"[{_ICONS.get(level, 'i')}] {message}")

    def active(self) -> List[Notice]:
        """Notices that have not yet expired, oldest first."""
        now = self._clock()
        with self._lock:
            self._notices = [n for n in self._notices if n.expires_at > now]
            return list(self._notices)

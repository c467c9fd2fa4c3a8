"""Persisted, capped collection of conversation records."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from .exceptions import StorageError
from .interfaces import KeyValueStore
from .models import ConversationRecord, utc_now_iso
from .summary import SummaryGenerator

logger = logging.getLogger(__name__)

STORAGE_KEY = "chatbot_conversations"
MAX_CONVERSATIONS = 50
SUMMARY_REFRESH_INTERVAL = 5
SUMMARY_WINDOW = 10


class TranscriptStore:
    """
    Update-or-insert store of :class:`ConversationRecord` entries.

    The whole collection lives under one key as a JSON array, newest first.
    Every mutation re-reads the collection before writing it back so that a
    stale in-memory copy never clobbers what is on disk. Single writer only.

    Usage:
        store = TranscriptStore(JsonFileStore("~/.chat_companion"))
        store.save(record)
        titles = [r.title for r in store.search("tokyo")]
    """

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        summary: Optional[SummaryGenerator] = None,
        key: str = STORAGE_KEY,
        max_records: int = MAX_CONVERSATIONS,
        summary_refresh: int = SUMMARY_REFRESH_INTERVAL,
    ) -> None:
        self._backend = backend
        self._summary = summary or SummaryGenerator()
        self._key = key
        self._max_records = max_records
        self._summary_refresh = summary_refresh

    @property
    def max_records(self) -> int:
        return self._max_records

    def _read_raw(self) -> List[Any]:
        """Load the raw array; raise StorageError when it cannot be trusted."""
        raw = self._backend.get(self._key)
        if raw is None or not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Stored conversations are not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise StorageError("Stored conversations are not a list")
        return data

    def _write_raw(self, entries: List[Any]) -> None:
        try:
            payload = json.dumps(entries, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Could not serialize conversations: {exc}") from exc
        self._backend.set(self._key, payload)

    def list(self) -> List[ConversationRecord]:
        """All records, most recently saved first. Unreadable data yields []."""
        try:
            entries = self._read_raw()
        except StorageError as exc:
            logger.warning("Could not load conversations: %s", exc)
            return []
        records = []
        for entry in entries:
            try:
                records.append(ConversationRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed conversation entry: %s", exc)
        return records

    def get(self, conversation_id: str) -> Optional[ConversationRecord]:
        for record in self.list():
            if record.id == conversation_id:
                return record
        return None

    def save(self, record: ConversationRecord) -> ConversationRecord:
        """
        Insert or replace ``record`` and move it to the front.

        Entries past the cap are dropped. Raises StorageError without touching
        the stored collection when it cannot be read or written.
        """
        entries = self._read_raw()
        saved_at = utc_now_iso()
        entry = record.as_dict()
        entry["savedAt"] = saved_at
        entries = [e for e in entries if not (isinstance(e, dict) and e.get("id") == record.id)]
        entries.insert(0, entry)
        dropped = len(entries) - self._max_records
        if dropped > 0:
            logger.debug("Evicting %d conversation(s) beyond cap %d", dropped, self._max_records)
        self._write_raw(entries[: self._max_records])
        record.saved_at = saved_at
        logger.info("Conversation %s saved (%d messages)", record.id, record.message_count)
        return record

    def summarize(self, record: ConversationRecord) -> str:
        """
        Title for ``record``, reusing the existing one when possible.

        A new title is requested when there is none yet, or when the message
        count lands on a multiple of the refresh interval.
        """
        count = record.message_count
        if record.title and (count == 0 or count % self._summary_refresh != 0):
            return record.title
        return self._summary.generate(record.messages[:SUMMARY_WINDOW])

    def delete(self, conversation_id: str) -> bool:
        entries = self._read_raw()
        remaining = [e for e in entries if not (isinstance(e, dict) and e.get("id") == conversation_id)]
        if len(remaining) == len(entries):
            return False
        self._write_raw(remaining)
        logger.info("Conversation %s deleted", conversation_id)
        return True

    def delete_all(self) -> None:
        self._write_raw([])
        logger.info("All conversations deleted")

    def search(self, query: str) -> List[ConversationRecord]:
        """Case-insensitive substring match against titles."""
        needle = query.lower()
        return [r for r in self.list() if needle in (r.title or "").lower()]

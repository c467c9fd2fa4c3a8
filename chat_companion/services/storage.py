"""Key-value storage backends for the conversation collection."""

from __future__ import annotations

import logging
import os
import re
from typing import Dict, Optional

from ..exceptions import StorageError
from ..interfaces import KeyValueStore

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore(KeyValueStore):
    """
    Stores each key as ``<directory>/<key>.json``.

    Writes go to a temporary file first and are moved into place with
    ``os.replace``, so a failed write leaves the previous value intact.

    Usage:
        store = JsonFileStore("~/.chat_companion")
        store.set("chatbot_conversations", "[]")
    """

    def __init__(self, directory: str) -> None:
        self._directory = os.path.expanduser(directory)

    def _path(self, key: str) -> str:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return os.path.join(self._directory, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        temp_path = f"{path}.tmp"
        try:
            os.makedirs(self._directory, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(temp_path, path)
        except OSError as exc:
            raise StorageError(f"Could not write {path}: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(value), path)


class MemoryKeyValueStore(KeyValueStore):
    """In-process storage, mostly useful for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

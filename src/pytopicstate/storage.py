"""Key-value storage contract consumed by sequence stores."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from pytopicstate.exceptions import TopicStateStorageError

_logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Structural storage interface used by the persistence layer.

    Any object with these two coroutines can back a store (file, browser
    bridge, remote KV).  Values are JSON-compatible structures.
    """

    async def get_item(self, key: str) -> Any | None:
        ...

    async def set_item(self, key: str, value: Any) -> None:
        ...


class MemoryStorage:
    """Process-local storage keeping a JSON-encoded copy of every value.

    Encoding on write detaches the stored snapshot from the live objects
    the caller keeps mutating, mirroring what a real backend does.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._items: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._items[key] = self._encode(key, value)

    @staticmethod
    def _encode(key: str, value: Any) -> str:
        try:
            return json.dumps(value, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise TopicStateStorageError(f"Value for {key!r} is not JSON serializable: {exc}", key=key) from exc

    async def get_item(self, key: str) -> Any | None:
        raw = self._items.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set_item(self, key: str, value: Any) -> None:
        self._items[key] = self._encode(key, value)
        _logger.debug("Stored %s (%d bytes)", key, len(self._items[key]))

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

"""Snapshot persistence for sequence stores.

Each store owns exactly one storage slot.  Every write replaces the slot
with the full list of current sequences; there is no per-topic or delta
persistence.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pytopicstate._constants import NESTED_CONTEXT_DEPTH, NESTED_KEY_JOINER, STORAGE_KEY_SEPARATOR
from pytopicstate.config import StoreConfig
from pytopicstate.exceptions import TopicStateStorageError
from pytopicstate.storage import KeyValueStorage

_logger = logging.getLogger(__name__)


def nested_context(logger_name: str, depth: int = NESTED_CONTEXT_DEPTH) -> list[str]:
    """Return the last *depth* dot-separated segments of a logger name."""
    segments = [segment for segment in logger_name.split(".") if segment]
    return segments[-depth:] if depth > 0 else []


def build_storage_key(config: StoreConfig, nested: Sequence[str]) -> str:
    """Derive ``"{protocol}@{version}:{context}//{nested joined by ':'}"``."""
    return f"{config.key_prefix}{STORAGE_KEY_SEPARATOR}{NESTED_KEY_JOINER.join(nested)}"


class PersistenceAdapter:
    """Read and write the full snapshot under one derived key."""

    def __init__(self, storage: KeyValueStorage, key: str) -> None:
        self._storage = storage
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    async def read(self) -> list[Any] | None:
        """Load the persisted snapshot.

        Returns ``None`` when nothing was ever written under the key.
        Raises :class:`TopicStateStorageError` when the slot holds
        something other than a list.
        """
        persisted = await self._storage.get_item(self._key)
        if persisted is None:
            return None
        if not isinstance(persisted, list):
            raise TopicStateStorageError(
                f"Snapshot under {self._key} must be a list, got {type(persisted).__name__}",
                key=self._key,
            )
        return persisted

    async def write(self, values: list[Any]) -> None:
        _logger.debug("Persisting %d sequences to %s", len(values), self._key)
        await self._storage.set_item(self._key, values)

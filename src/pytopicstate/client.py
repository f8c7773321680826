"""Owning client that wires configuration and storage into sequence stores."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from pytopicstate.config import StoreConfig
from pytopicstate.state.store import SequenceStore
from pytopicstate.storage import KeyValueStorage, MemoryStorage

_logger = logging.getLogger(__name__)


class TopicStateClient:
    """Holds the identity and storage shared by a family of stores.

    Usage::

        client = TopicStateClient(StoreConfig(context="wallet"), storage=storage)
        sessions = client.store("session")
        async with client:
            await sessions.set(topic, sequence)
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        *,
        storage: KeyValueStorage | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or StoreConfig()
        self._storage: KeyValueStorage = storage if storage is not None else MemoryStorage()
        self._logger = logger if logger is not None else logging.getLogger("pytopicstate").getChild(self._config.context)
        self._stores: dict[str, SequenceStore[Any]] = {}

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TopicStateClient:
        await self.init()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.flush()

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def protocol(self) -> str:
        return self._config.protocol

    @property
    def version(self) -> int:
        return self._config.version

    @property
    def context(self) -> str:
        return self._config.context

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    @property
    def stores(self) -> dict[str, SequenceStore[Any]]:
        return dict(self._stores)

    def store(self, context: str, *, sequence_model: type[BaseModel] | None = None) -> SequenceStore[Any]:
        """Return the store named *context*, creating it on first use."""
        existing = self._stores.get(context)
        if existing is not None:
            return existing
        store: SequenceStore[Any] = SequenceStore(
            self._storage,
            context=context,
            config=self._config,
            logger=self._logger,
            sequence_model=sequence_model,
        )
        self._stores[context] = store
        _logger.debug("Created store %s at %s", context, store.storage_key)
        return store

    async def init(self) -> None:
        """Restore every store created so far, in creation order."""
        for store in list(self._stores.values()):
            await store.init()

    async def flush(self) -> None:
        for store in list(self._stores.values()):
            await store.flush()

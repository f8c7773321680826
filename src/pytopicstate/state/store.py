"""Topic-keyed sequence store with write-through persistence.

The store owns a :class:`SequenceMap`, restores it once from storage in
:meth:`SequenceStore.init`, and rewrites the full snapshot after every
mutation.  While a restore is being applied the :class:`RestoreGate`
holds every public operation back, so callers never see a partial map.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from pytopicstate._constants import NESTED_LABEL_JOINER
from pytopicstate._redact import redact_for_log
from pytopicstate.config import StoreConfig
from pytopicstate.exceptions import (
    NoMatchingTopicError,
    RestoreConflictError,
    TopicStateError,
    TopicStateStorageError,
)
from pytopicstate.state.bus import LifecycleBus, Listener
from pytopicstate.state.events import (
    MUTATION_EVENTS,
    CreatedEvent,
    DeletedEvent,
    Reason,
    StoreEvent,
    UpdatedEvent,
)
from pytopicstate.state.gate import GateState, RestoreGate
from pytopicstate.state.map import SequenceMap
from pytopicstate.state.persistence import PersistenceAdapter, build_storage_key, nested_context
from pytopicstate.storage import KeyValueStorage

S = TypeVar("S")


def _topic_of(sequence: Any) -> str:
    if isinstance(sequence, Mapping):
        topic = sequence.get("topic")
    else:
        topic = getattr(sequence, "topic", None)
    if not isinstance(topic, str) or not topic:
        raise TopicStateStorageError(f"Sequence has no usable topic: {sequence!r}")
    return topic


def _merge_sequence(existing: Any, update: Any) -> Any:
    """Shallow merge: fields in *update* overwrite, the rest are kept."""
    patch = update.model_dump(exclude_unset=True) if isinstance(update, BaseModel) else dict(update)
    if isinstance(existing, BaseModel):
        return existing.model_copy(update=patch)
    return {**existing, **patch}


def _dump_sequence(sequence: Any) -> Any:
    if isinstance(sequence, BaseModel):
        return sequence.model_dump(mode="json")
    return sequence


class SequenceStore(Generic[S]):
    """Async store of sequences keyed by topic.

    Usage::

        store = SequenceStore(storage, context="session")
        await store.init()
        await store.set(topic, {"topic": topic, "expiry": 300})

    Parameters
    ----------
    storage : KeyValueStorage
        Backing storage holding the persisted snapshot.
    context : str
        Store name; appended to *logger* to build the store logger, whose
        trailing name segments select the storage slot.
    config : StoreConfig or None
        Identity of the owning client used for key derivation.
    logger : logging.Logger or None
        Parent logger.  Defaults to the ``pytopicstate`` logger.
    sequence_model : type[BaseModel] or None
        When given, restored snapshot entries are validated into this
        model instead of being kept as plain dicts.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        context: str,
        config: StoreConfig | None = None,
        logger: logging.Logger | None = None,
        sequence_model: type[BaseModel] | None = None,
    ) -> None:
        if not context:
            raise TopicStateError("Store context must be non-empty")
        self._config = config or StoreConfig()
        self._context = context
        parent = logger if logger is not None else logging.getLogger("pytopicstate")
        self._logger = parent.getChild(context)
        self._nested = nested_context(self._logger.name)
        self._sequence_model = sequence_model

        self._sequences: SequenceMap[S] = SequenceMap()
        self._bus = LifecycleBus()
        self._gate = RestoreGate(on_enabled=functools.partial(self._bus.emit, StoreEvent.ENABLED))
        self._persistence = PersistenceAdapter(storage, build_storage_key(self._config, self._nested))
        self._pending_writes: set[asyncio.Task[None]] = set()

        self._register_event_listeners()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Restore the persisted snapshot.

        Best effort: conflicts and storage failures are logged and the
        store stays usable with whatever it already holds.
        """
        self._logger.debug("Initialized")
        await self._restore()

    async def flush(self) -> None:
        """Wait until every persistence write issued so far has finished."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def context(self) -> str:
        return self._context

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def storage_key(self) -> str:
        return self._persistence.key

    @property
    def gate_state(self) -> GateState:
        return self._gate.state

    @property
    def length(self) -> int:
        return self._sequences.size

    @property
    def topics(self) -> list[str]:
        return self._sequences.keys()

    @property
    def values(self) -> list[S]:
        return self._sequences.values()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def set(self, topic: str, sequence: S) -> None:
        """Insert *sequence*, or merge it into the existing one for *topic*."""
        await self._gate.wait_ready()
        if self._sequences.has(topic):
            await self.update(topic, sequence)
            return
        self._logger.debug("Setting sequence")
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("set topic=%s sequence=%s", topic, redact_for_log(sequence))
        self._sequences.put(topic, sequence)
        self._bus.emit(StoreEvent.CREATED, CreatedEvent(topic=topic, sequence=sequence))

    async def get(self, topic: str) -> S:
        """Return the sequence for *topic* or raise :class:`NoMatchingTopicError`."""
        await self._gate.wait_ready()
        self._logger.debug("Getting sequence")
        self._logger.debug("get topic=%s", topic)
        return self._get_state(topic)

    async def update(self, topic: str, update: Any) -> None:
        await self._gate.wait_ready()
        self._logger.debug("Updating sequence")
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("update topic=%s update=%s", topic, redact_for_log(update))
        sequence = _merge_sequence(self._get_state(topic), update)
        self._sequences.put(topic, sequence)
        self._bus.emit(StoreEvent.UPDATED, UpdatedEvent(topic=topic, sequence=sequence, update=update))

    async def delete(self, topic: str, reason: Reason | Mapping[str, Any]) -> None:
        """Remove *topic*.  Unknown topics are ignored."""
        await self._gate.wait_ready()
        if not self._sequences.has(topic):
            return
        reason = Reason.model_validate(reason)
        self._logger.debug("Deleting sequence")
        self._logger.debug("delete topic=%s reason=%s", topic, reason.message)
        sequence = self._get_state(topic)
        self._sequences.remove(topic)
        self._bus.emit(StoreEvent.DELETED, DeletedEvent(topic=topic, sequence=sequence, reason=reason))

    # ------------------------------------------------------------------
    # Event subscription
    # ------------------------------------------------------------------

    def on(self, event: str | StoreEvent, listener: Listener) -> None:
        self._bus.on(event, listener)

    def once(self, event: str | StoreEvent, listener: Listener) -> None:
        self._bus.once(event, listener)

    def off(self, event: str | StoreEvent, listener: Listener) -> None:
        self._bus.off(event, listener)

    def remove_listener(self, event: str | StoreEvent, listener: Listener) -> None:
        self._bus.remove_listener(event, listener)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def _state_context(self) -> str:
        return NESTED_LABEL_JOINER.join(self._nested)

    def _get_state(self, topic: str) -> S:
        sequence = self._sequences.get(topic)
        if sequence is None:
            error = NoMatchingTopicError(
                f"No matching {self._state_context} with topic: {topic}",
                topic=topic,
                context=self._state_context,
            )
            self._logger.error(str(error))
            raise error
        return sequence

    def _load_sequence(self, raw: Any) -> tuple[str, Any]:
        sequence = self._sequence_model.model_validate(raw) if self._sequence_model is not None else raw
        return _topic_of(sequence), sequence

    async def _restore(self) -> None:
        try:
            persisted = await self._persistence.read()
            if not persisted:
                return
            if self._sequences.size:
                raise RestoreConflictError(
                    f"Restore will override already set {self._state_context}",
                    context=self._state_context,
                )
            if self._gate.state is not GateState.IDLE:
                raise RestoreConflictError(
                    f"Restore already applied for {self._state_context}",
                    context=self._state_context,
                )
            # Decode everything before touching the map so a malformed
            # entry leaves it empty.
            restored = [self._load_sequence(raw) for raw in persisted]
            self._gate.begin_pending(len(restored))
            for topic, sequence in restored:
                self._sequences.put(topic, sequence)
            self._gate.clear()
            self._logger.debug("Successfully restored sequences for %s", self._state_context)
            if self._logger.isEnabledFor(logging.DEBUG):
                self._logger.debug("restore sequences=%s", redact_for_log(self.values))
        except RestoreConflictError as exc:
            self._logger.error("%s", exc)
        except Exception:
            self._logger.error("Failed to restore sequences for %s", self._state_context, exc_info=True)

    def _snapshot(self) -> list[Any]:
        return [_dump_sequence(sequence) for sequence in self._sequences.values()]

    def _schedule_persist(self) -> None:
        task = asyncio.get_running_loop().create_task(self._persist(self._snapshot()))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _persist(self, values: list[Any]) -> None:
        try:
            await self._persistence.write(values)
        except Exception:
            self._logger.warning("Failed to persist sequences for %s", self._state_context, exc_info=True)
            return
        self._bus.emit(StoreEvent.SYNCED)

    def _on_mutation(self, event: StoreEvent, payload: Any) -> None:
        self._logger.info("Emitting %s", event.value)
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("event=%s data=%s", event.value, redact_for_log(payload))
        self._schedule_persist()

    def _register_event_listeners(self) -> None:
        for event in sorted(MUTATION_EVENTS):
            self._bus.on(event, functools.partial(self._on_mutation, event))

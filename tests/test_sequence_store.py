from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from pytopicstate.config import StoreConfig
from pytopicstate.exceptions import NoMatchingTopicError
from pytopicstate.state.events import CreatedEvent, DeletedEvent, Reason, StoreEvent, UpdatedEvent
from pytopicstate.state.store import SequenceStore


class _RecordingStorage:
    def __init__(self, items: dict[str, Any] | None = None) -> None:
        self.items: dict[str, Any] = dict(items or {})
        self.writes: list[tuple[str, Any]] = []

    async def get_item(self, key: str) -> Any | None:
        return self.items.get(key)

    async def set_item(self, key: str, value: Any) -> None:
        self.writes.append((key, value))
        self.items[key] = value


def _store(storage: _RecordingStorage) -> SequenceStore[dict[str, Any]]:
    return SequenceStore(storage, context="session", config=StoreConfig(protocol="wc", version=2, context="client"))


@pytest.mark.asyncio
async def test_set_get_update_delete_scenario() -> None:
    store = _store(_RecordingStorage())
    await store.init()

    await store.set("t1", {"topic": "t1", "v": 1})
    assert await store.get("t1") == {"topic": "t1", "v": 1}

    await store.update("t1", {"v": 2})
    assert await store.get("t1") == {"topic": "t1", "v": 2}

    await store.delete("t1", {"code": 0, "message": "done"})
    await store.flush()
    with pytest.raises(NoMatchingTopicError):
        await store.get("t1")


@pytest.mark.asyncio
async def test_absent_topic_get_and_update_raise_delete_is_noop() -> None:
    storage = _RecordingStorage()
    store = _store(storage)

    with pytest.raises(NoMatchingTopicError) as exc_info:
        await store.get("missing")
    assert exc_info.value.topic == "missing"
    assert exc_info.value.context == "pytopicstate session"

    with pytest.raises(NoMatchingTopicError):
        await store.update("missing", {"v": 1})

    deleted: list[Any] = []
    store.on("deleted", deleted.append)
    await store.delete("missing", Reason(code=0, message="gone"))
    await store.flush()

    assert deleted == []
    assert storage.writes == []


@pytest.mark.asyncio
async def test_update_keeps_unpatched_fields() -> None:
    store = _store(_RecordingStorage())
    await store.set("t1", {"topic": "t1", "expiry": 300, "relay": {"protocol": "irn"}})

    await store.update("t1", {"expiry": 600})
    await store.flush()

    assert await store.get("t1") == {"topic": "t1", "expiry": 600, "relay": {"protocol": "irn"}}


@pytest.mark.asyncio
async def test_set_existing_topic_updates_instead_of_creating() -> None:
    store = _store(_RecordingStorage())
    created: list[CreatedEvent] = []
    updated: list[UpdatedEvent] = []
    store.on(StoreEvent.CREATED, created.append)
    store.on(StoreEvent.UPDATED, updated.append)

    await store.set("t1", {"topic": "t1", "v": 1, "keep": True})
    await store.set("t1", {"topic": "t1", "v": 5})
    await store.flush()

    assert len(created) == 1
    assert len(updated) == 1
    assert updated[0].update == {"topic": "t1", "v": 5}
    assert updated[0].sequence == {"topic": "t1", "v": 5, "keep": True}
    assert store.length == 1


@pytest.mark.asyncio
async def test_each_mutation_writes_full_snapshot_then_syncs() -> None:
    storage = _RecordingStorage()
    store = _store(storage)
    synced: list[None] = []
    store.on("synced", lambda: synced.append(None))

    await store.set("a", {"topic": "a", "n": 1})
    await store.flush()
    await store.set("b", {"topic": "b", "n": 2})
    await store.flush()
    await store.update("a", {"n": 3})
    await store.flush()
    await store.delete("b", {"code": 6000, "message": "user disconnected"})
    await store.flush()

    key = store.storage_key
    assert [value for _, value in storage.writes] == [
        [{"topic": "a", "n": 1}],
        [{"topic": "a", "n": 1}, {"topic": "b", "n": 2}],
        [{"topic": "a", "n": 3}, {"topic": "b", "n": 2}],
        [{"topic": "a", "n": 3}],
    ]
    assert all(write_key == key for write_key, _ in storage.writes)
    assert len(synced) == 4


@pytest.mark.asyncio
async def test_snapshot_is_captured_when_write_is_issued() -> None:
    storage = _RecordingStorage()
    store = _store(storage)

    await store.set("a", {"topic": "a"})
    await store.set("b", {"topic": "b"})
    await store.flush()

    assert [len(value) for _, value in storage.writes] == [1, 2]


@pytest.mark.asyncio
async def test_deleted_event_carries_reason_and_last_value() -> None:
    store = _store(_RecordingStorage())
    deleted: list[DeletedEvent] = []
    store.once("deleted", deleted.append)

    await store.set("t1", {"topic": "t1", "v": 1})
    await store.delete("t1", {"code": 0, "message": "done"})
    await store.flush()

    assert deleted[0].topic == "t1"
    assert deleted[0].sequence == {"topic": "t1", "v": 1}
    assert deleted[0].reason == Reason(code=0, message="done")
    assert store.topics == []


@pytest.mark.asyncio
async def test_write_failure_is_not_surfaced_to_caller(caplog: pytest.LogCaptureFixture) -> None:
    class _BrokenStorage(_RecordingStorage):
        async def set_item(self, key: str, value: Any) -> None:
            raise OSError("disk full")

    store = _store(_BrokenStorage())
    synced: list[None] = []
    store.on("synced", lambda: synced.append(None))

    with caplog.at_level("WARNING"):
        await store.set("t1", {"topic": "t1"})
        await store.flush()

    assert await store.get("t1") == {"topic": "t1"}
    assert synced == []
    assert "Failed to persist sequences" in caplog.text


@pytest.mark.asyncio
async def test_off_stops_delivery() -> None:
    store = _store(_RecordingStorage())
    seen: list[str] = []

    def listener(event: CreatedEvent) -> None:
        seen.append(event.topic)

    store.on("created", listener)
    await store.set("a", {"topic": "a"})
    store.off("created", listener)
    await store.set("b", {"topic": "b"})
    store.on("created", listener)
    store.remove_listener("created", listener)
    await store.set("c", {"topic": "c"})
    await store.flush()

    assert seen == ["a"]


@pytest.mark.asyncio
async def test_concurrent_sets_all_land() -> None:
    storage = _RecordingStorage()
    store = _store(storage)

    await asyncio.gather(*(store.set(f"t{i}", {"topic": f"t{i}", "i": i}) for i in range(10)))
    await store.flush()

    assert sorted(store.topics) == sorted(f"t{i}" for i in range(10))
    assert len(storage.writes) == 10


@pytest.mark.asyncio
async def test_records_not_redacted_when_debug_is_off(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[Any] = []
    monkeypatch.setattr("pytopicstate.state.store.redact_for_log", lambda value: calls.append(value) or value)
    parent = logging.getLogger("test_sequence_store.quiet")
    parent.setLevel(logging.INFO)
    store: SequenceStore[dict[str, Any]] = SequenceStore(_RecordingStorage(), context="session", logger=parent)

    await store.set("t1", {"topic": "t1", "v": 1})
    await store.update("t1", {"v": 2})
    await store.flush()

    assert calls == []

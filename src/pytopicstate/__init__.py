"""pytopicstate - Async topic-keyed sequence store with persisted snapshots."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytopicstate")
except PackageNotFoundError:
    __version__ = "0+local"
from pytopicstate.client import TopicStateClient
from pytopicstate.config import StoreConfig
from pytopicstate.exceptions import (
    NoMatchingTopicError,
    RestoreConflictError,
    TopicStateConfigError,
    TopicStateError,
    TopicStateStorageError,
)
from pytopicstate.state.bus import LifecycleBus
from pytopicstate.state.events import CreatedEvent, DeletedEvent, Reason, StoreEvent, UpdatedEvent
from pytopicstate.state.gate import GateState, RestoreGate
from pytopicstate.state.map import SequenceMap
from pytopicstate.state.persistence import PersistenceAdapter, build_storage_key
from pytopicstate.state.store import SequenceStore
from pytopicstate.storage import KeyValueStorage, MemoryStorage

__all__ = [
    "__version__",
    "CreatedEvent",
    "DeletedEvent",
    "GateState",
    "KeyValueStorage",
    "LifecycleBus",
    "MemoryStorage",
    "NoMatchingTopicError",
    "PersistenceAdapter",
    "Reason",
    "RestoreConflictError",
    "RestoreGate",
    "SequenceMap",
    "SequenceStore",
    "StoreConfig",
    "StoreEvent",
    "TopicStateClient",
    "TopicStateConfigError",
    "TopicStateError",
    "TopicStateStorageError",
    "UpdatedEvent",
    "build_storage_key",
]

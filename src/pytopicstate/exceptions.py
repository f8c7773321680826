"""Custom exception hierarchy for pytopicstate."""

from __future__ import annotations


class TopicStateError(Exception):
    """Base exception for all pytopicstate errors."""


class TopicStateConfigError(TopicStateError):
    """Invalid or missing configuration."""


class TopicStateStorageError(TopicStateError):
    """Storage-level failure (unreadable or malformed persisted snapshot)."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class NoMatchingTopicError(TopicStateError):
    """No sequence is stored under the requested topic.

    Raised by ``get`` and ``update``.  ``delete`` on an unknown topic is
    a silent no-op instead.
    """

    def __init__(self, message: str, *, topic: str = "", context: str = "") -> None:
        self.topic = topic
        self.context = context
        super().__init__(message)


class RestoreConflictError(TopicStateError):
    """Persisted snapshot found while the in-memory map is already populated.

    Restoring would override the live entries, so the persisted data is
    discarded.  The store logs this condition during ``init()`` and keeps
    serving the entries it already holds.
    """

    def __init__(self, message: str, *, context: str = "") -> None:
        self.context = context
        super().__init__(message)

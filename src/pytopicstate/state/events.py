"""Lifecycle events published by a sequence store."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StoreEvent(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SYNCED = "synced"
    ENABLED = "enabled"


#: Events whose delivery triggers a full snapshot write.
MUTATION_EVENTS: frozenset[StoreEvent] = frozenset({StoreEvent.CREATED, StoreEvent.UPDATED, StoreEvent.DELETED})


class Reason(BaseModel):
    """Why a sequence was deleted."""

    model_config = ConfigDict(frozen=True)

    code: int
    message: str = ""


class _TopicEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., description="Topic of the affected sequence")
    sequence: Any = Field(..., description="Sequence value after the transition")


class CreatedEvent(_TopicEvent):
    """A sequence was inserted under a new topic."""


class UpdatedEvent(_TopicEvent):
    """A sequence was merged with a partial update."""

    update: Any = Field(..., description="Raw patch as passed by the caller")


class DeletedEvent(_TopicEvent):
    """A sequence was removed."""

    reason: Reason

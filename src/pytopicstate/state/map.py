"""Topic-keyed mapping of sequences."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

S = TypeVar("S")


class SequenceMap(Generic[S]):
    """Plain topic -> sequence mapping.

    Holds no lock: all access goes through the owning store on a single
    event loop.
    """

    def __init__(self) -> None:
        self._sequences: dict[str, S] = {}

    def has(self, topic: str) -> bool:
        return topic in self._sequences

    def get(self, topic: str) -> S | None:
        return self._sequences.get(topic)

    def put(self, topic: str, sequence: S) -> None:
        self._sequences[topic] = sequence

    def remove(self, topic: str) -> S | None:
        return self._sequences.pop(topic, None)

    @property
    def size(self) -> int:
        return len(self._sequences)

    def keys(self) -> list[str]:
        return list(self._sequences.keys())

    def values(self) -> list[S]:
        return list(self._sequences.values())

    def __len__(self) -> int:
        return len(self._sequences)

    def __contains__(self, topic: object) -> bool:
        return topic in self._sequences

    def __iter__(self) -> Iterator[str]:
        return iter(self._sequences)

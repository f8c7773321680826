"""Restore gate blocking store access while a persisted snapshot is applied."""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable

from pytopicstate.exceptions import TopicStateError

_logger = logging.getLogger(__name__)


class GateState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    ENABLED = "enabled"


class RestoreGate:
    """One-shot broadcast condition guarding a store during restore.

    ``IDLE`` and ``ENABLED`` let callers through immediately.  While
    ``PENDING`` every caller of :meth:`wait_ready` parks a future that
    :meth:`clear` resolves.  A gate is entered at most once per store;
    there is no timeout, so a restore that never clears blocks callers
    indefinitely.
    """

    def __init__(self, *, on_enabled: Callable[[], None] | None = None) -> None:
        self._state = GateState.IDLE
        self._waiters: list[asyncio.Future[None]] = []
        self._on_enabled = on_enabled
        self._snapshot_size = 0

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is GateState.PENDING

    @property
    def snapshot_size(self) -> int:
        """Number of records the gate was entered for (0 if never entered)."""
        return self._snapshot_size

    async def wait_ready(self) -> None:
        if self._state is not GateState.PENDING:
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def begin_pending(self, snapshot_size: int) -> None:
        if self._state is not GateState.IDLE:
            raise TopicStateError(f"Restore gate cannot enter pending from {self._state.value}")
        self._state = GateState.PENDING
        self._snapshot_size = snapshot_size
        _logger.debug("Restore gate pending for %d sequences", snapshot_size)

    def clear(self) -> None:
        if self._state is not GateState.PENDING:
            return
        self._state = GateState.ENABLED
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
        _logger.debug("Restore gate cleared, released %d waiters", len(waiters))
        if self._on_enabled is not None:
            self._on_enabled()

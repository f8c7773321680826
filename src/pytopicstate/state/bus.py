"""Synchronous publish/subscribe for store lifecycle events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pytopicstate.state.events import StoreEvent

_logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


@dataclass(slots=True)
class _Subscription:
    listener: Listener
    once: bool = False


def _coerce_event(event: str | StoreEvent) -> StoreEvent:
    try:
        return StoreEvent(event)
    except ValueError:
        raise ValueError(f"Unknown store event: {event!r}") from None


class LifecycleBus:
    """In-process event emitter for ``created/updated/deleted/synced/enabled``.

    Listeners run synchronously in subscription order.  A listener that
    returns an awaitable is not awaited: follow-up work it schedules runs
    after :meth:`emit` returns.  A failing listener is logged and the
    remaining listeners still run.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[StoreEvent, list[_Subscription]] = {event: [] for event in StoreEvent}

    def on(self, event: str | StoreEvent, listener: Listener) -> None:
        self._subscriptions[_coerce_event(event)].append(_Subscription(listener))

    def once(self, event: str | StoreEvent, listener: Listener) -> None:
        self._subscriptions[_coerce_event(event)].append(_Subscription(listener, once=True))

    def off(self, event: str | StoreEvent, listener: Listener) -> None:
        """Remove the most recently added registration of *listener*."""
        subs = self._subscriptions[_coerce_event(event)]
        for index in range(len(subs) - 1, -1, -1):
            if subs[index].listener == listener:
                del subs[index]
                return

    def remove_listener(self, event: str | StoreEvent, listener: Listener) -> None:
        self.off(event, listener)

    def listener_count(self, event: str | StoreEvent) -> int:
        return len(self._subscriptions[_coerce_event(event)])

    def emit(self, event: str | StoreEvent, payload: Any = None) -> bool:
        """Deliver *payload* to every listener of *event*.

        Returns ``True`` when at least one listener was registered.
        """
        key = _coerce_event(event)
        subs = list(self._subscriptions[key])
        if not subs:
            return False
        self._subscriptions[key] = [sub for sub in self._subscriptions[key] if not sub.once]
        args = () if payload is None else (payload,)
        for sub in subs:
            try:
                sub.listener(*args)
            except Exception:
                _logger.debug("%s listener failed", key.value, exc_info=True)
        return True

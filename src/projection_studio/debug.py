from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

DebugEvent = dict[str, Any]
Subscriber = Callable[[DebugEvent], None]


class DebugLog:
    """
    Append-only stream of debug events (requests sent, backend debugInfo, failures).

    Producers only ever `publish`; renderers `subscribe` or read `events`.
    """

    def __init__(self) -> None:
        self._events: list[DebugEvent] = []
        self._subscribers: list[Subscriber] = []

    @property
    def events(self) -> list[DebugEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def publish(self, event: DebugEvent) -> None:
        event = dict(event)
        self._events.append(event)
        logger.debug("debug event: %s", event.get("type", "<untyped>"))
        for cb in list(self._subscribers):
            try:
                cb(event)
            except Exception:
                logger.exception("debug subscriber failed")

    def subscribe(self, cb: Subscriber) -> Callable[[], None]:
        self._subscribers.append(cb)

        def _unsubscribe() -> None:
            if cb in self._subscribers:
                self._subscribers.remove(cb)

        return _unsubscribe

    def clear(self) -> None:
        self._events.clear()

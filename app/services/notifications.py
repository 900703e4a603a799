"""Fan-out of domain events to notification sinks (push, speech, sync...)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from app.schemas.events import DomainEvent

logger = logging.getLogger(__name__)

EventSink = Callable[[DomainEvent], None]


class EventDispatcher:
    def __init__(self) -> None:
        self._sinks: list[EventSink] = []

    def subscribe(self, sink: EventSink) -> Callable[[], None]:
        """Register ``sink``; the returned callable unsubscribes it."""
        self._sinks.append(sink)

        def unsubscribe() -> None:
            if sink in self._sinks:
                self._sinks.remove(sink)

        return unsubscribe

    def dispatch(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            for sink in list(self._sinks):
                try:
                    sink(event)
                except Exception:
                    logger.exception("Notification sink %r failed on %s", sink, event.type)

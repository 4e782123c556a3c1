"""Cancellable one-shot timers kept in a priority queue.

Each component that needs deferred work owns its own ``TimerQueue``. Nothing
fires on its own: the owner calls ``run_due`` whenever it processes an event,
so a timer callback never interleaves with another state transition.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from visioncare.core.scheduling.clock import Clock

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledEvent:
    """A pending timer: ``{kind, fire_at, payload}`` plus its handle."""

    fire_at: int
    handle: int
    kind: str = field(compare=False)
    payload: Any = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)


class TimerQueue:
    """Min-heap of ``ScheduledEvent`` ordered by fire time, then handle."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._heap: list[ScheduledEvent] = []
        self._by_handle: dict[int, ScheduledEvent] = {}
        self._handles = itertools.count(1)

    def schedule(self, delay_ms: int, kind: str, payload: Any = None) -> int:
        """Schedule a one-shot event ``delay_ms`` from now and return its handle."""
        return self.schedule_at(self._clock.now_ms() + max(delay_ms, 0), kind, payload)

    def schedule_at(self, fire_at: int, kind: str, payload: Any = None) -> int:
        """Schedule a one-shot event at an absolute epoch-ms time."""
        event = ScheduledEvent(
            fire_at=fire_at,
            handle=next(self._handles),
            kind=kind,
            payload=payload,
        )
        heapq.heappush(self._heap, event)
        self._by_handle[event.handle] = event
        return event.handle

    def cancel(self, handle: int | None) -> bool:
        """Cancel a pending event. Returns False if it already fired or never existed."""
        if handle is None:
            return False
        event = self._by_handle.pop(handle, None)
        if event is None:
            return False
        event.cancelled = True
        return True

    def is_pending(self, handle: int | None) -> bool:
        return handle is not None and handle in self._by_handle

    def run_due(self, handler: Callable[[ScheduledEvent], None]) -> int:
        """Fire every event whose time has come, earliest first.

        Returns:
            Number of events handed to ``handler``.
        """
        now = self._clock.now_ms()
        fired = 0
        while self._heap and self._heap[0].fire_at <= now:
            event = heapq.heappop(self._heap)
            if event.cancelled:
                continue
            self._by_handle.pop(event.handle, None)
            logger.debug("Timer %d (%s) fired", event.handle, event.kind)
            handler(event)
            fired += 1
        return fired

    def __len__(self) -> int:
        return len(self._by_handle)

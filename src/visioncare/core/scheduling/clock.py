"""Clock abstraction for deferred work and timestamps.

All monitoring components read time through a ``Clock`` so tests can drive
timers deterministically with ``ManualClock``.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of wall-clock time in epoch milliseconds."""

    def now_ms(self) -> int:
        """Current time in milliseconds since the epoch."""
        ...


class SystemClock:
    """Clock backed by the host's wall clock."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """Clock that only moves when told to.

    Usage::

        clock = ManualClock()
        queue = TimerQueue(clock)
        queue.schedule(5000, "alert_expiry", payload=1)
        clock.advance(5001)
        queue.run_due(handler)
    """

    def __init__(self, start_ms: int = 1_767_225_600_000) -> None:
        self._now = start_ms

    def now_ms(self) -> int:
        return self._now

    def advance(self, ms: int) -> int:
        """Move the clock forward and return the new time."""
        if ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += ms
        return self._now


def iso_from_ms(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


def iso_timestamp(clock: Clock) -> str:
    """Render the clock's current time as an ISO 8601 UTC string."""
    return iso_from_ms(clock.now_ms())

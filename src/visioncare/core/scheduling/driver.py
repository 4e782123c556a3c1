"""Background driver that fires due timers while the server is running.

Components never fire their own timers. Inside a live server this driver
pulls them on a short interval; tests on a ``ManualClock`` keep pulling
explicitly through ``run_pending``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable

logger = logging.getLogger(__name__)


async def drive_timers(tick: Callable[[], int], interval_ms: int) -> None:
    """Call ``tick`` every ``interval_ms`` until cancelled."""
    interval = max(interval_ms, 1) / 1000
    while True:
        try:
            fired = tick()
        except Exception:
            logger.exception("Timer tick failed")
        else:
            if fired:
                logger.debug("Timer driver fired %d event(s)", fired)
        await asyncio.sleep(interval)


@contextlib.asynccontextmanager
async def running_timer_driver(
    tick: Callable[[], int], interval_ms: int
) -> AsyncIterator[asyncio.Task]:
    """Run ``drive_timers`` as a task for the lifetime of the block."""
    task = asyncio.create_task(drive_timers(tick, interval_ms))
    logger.info("Timer driver started (every %d ms)", interval_ms)
    try:
        yield task
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Timer driver stopped")

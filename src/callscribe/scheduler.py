"""Periodic tick source for pipeline cycles."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger("callscribe.scheduler")

TickCallback = Callable[[], Awaitable[object]]


class CycleScheduler:
    """Fires ``on_tick`` every ``interval`` seconds until stopped.

    Each tick runs as its own task; the timer never waits for a previous tick
    to finish. ``stop()`` cancels only the timer, never a running tick.
    """

    def __init__(self, name: str = "cycle") -> None:
        self.name = name
        self.tick_count = 0
        self._timer: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self, interval: float, on_tick: TickCallback) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0.")
        if self.running:
            raise RuntimeError(f"Scheduler {self.name} is already running.")
        self._timer = asyncio.get_running_loop().create_task(
            self._run(interval, on_tick), name=f"{self.name}-timer"
        )
        logger.info("Scheduler %s started (every %.1fs)", self.name, interval)

    def stop(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            logger.info("Scheduler %s stopped after %d ticks", self.name, self.tick_count)

    async def wait_idle(self) -> None:
        while self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)

    async def _run(self, interval: float, on_tick: TickCallback) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            next_at += interval
            self.tick_count += 1
            task = loop.create_task(
                self._fire(on_tick), name=f"{self.name}-tick-{self.tick_count}"
            )
            self._ticks.add(task)
            task.add_done_callback(self._ticks.discard)

    async def _fire(self, on_tick: TickCallback) -> None:
        try:
            await on_tick()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Tick handler for %s raised", self.name)

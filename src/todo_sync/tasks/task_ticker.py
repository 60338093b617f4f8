# src/todo_sync/tasks/task_ticker.py

from __future__ import annotations

"""
Countdown ticker.

A small repeating loop that samples the wall clock once per interval and hands
"now" to a callback, which re-evaluates remaining time for the visible tasks.
This is the only polling in the app. It never touches task state.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable

from .task_timer import current_time_millis

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]


async def run_ticker(
        on_tick: TickCallback,
        *,
        interval_seconds: float = 1.0,
        clock: Callable[[], int] = current_time_millis,
) -> None:
    """
    Call on_tick(now_ms) right away, then every interval_seconds until cancelled.

    A failing callback is logged and the loop keeps going.
    To stop the ticker, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        now_ms = clock()
        try:
            on_tick(now_ms)
        except Exception:
            logger.exception("tick callback failed now_ms=%s", now_ms)

        await asyncio.sleep(sleep_s)


class Ticker:
    """
    Owner-side handle around run_ticker with an explicit disposal path.

    start() must be called from a running event loop; stop() cancels and awaits
    the loop. Both are idempotent.
    """

    def __init__(
        self,
        on_tick: TickCallback,
        *,
        interval_seconds: float = 1.0,
        clock: Callable[[], int] = current_time_millis,
    ) -> None:
        self._on_tick = on_tick
        self._interval = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(
            run_ticker(self._on_tick, interval_seconds=self._interval, clock=self._clock)
        )
        logger.debug("Ticker started interval=%s", self._interval)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Ticker stopped")

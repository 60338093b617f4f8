# tests/test_task_ticker.py

from __future__ import annotations

import asyncio

import pytest

from todo_sync.tasks.task_ticker import Ticker, run_ticker


@pytest.mark.asyncio
async def test_ticker_samples_clock_until_cancelled() -> None:
    ticks: list[int] = []
    clock_values = iter(range(1000, 10_000_000, 1000))

    runner = asyncio.create_task(
        run_ticker(ticks.append, interval_seconds=0.01, clock=lambda: next(clock_values))
    )

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert ticks, "Ticker should fire at least once"
    assert ticks[0] == 1000
    assert ticks == sorted(ticks)


@pytest.mark.asyncio
async def test_first_tick_does_not_wait_for_the_interval() -> None:
    ticks: list[int] = []

    runner = asyncio.create_task(run_ticker(ticks.append, interval_seconds=10, clock=lambda: 42))
    await asyncio.sleep(0.02)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert ticks == [42]


@pytest.mark.asyncio
async def test_ticker_survives_failing_callback() -> None:
    calls = 0

    def on_tick(_now_ms: int) -> None:
        nonlocal calls
        calls += 1
        raise RuntimeError("render failed")

    runner = asyncio.create_task(run_ticker(on_tick, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert calls >= 2


@pytest.mark.asyncio
async def test_ticker_handle_start_stop() -> None:
    ticks: list[int] = []
    ticker = Ticker(ticks.append, interval_seconds=0.01)

    ticker.start()
    ticker.start()
    assert ticker.running
    await asyncio.sleep(0.03)
    await ticker.stop()
    await ticker.stop()

    assert not ticker.running
    count = len(ticks)
    await asyncio.sleep(0.03)
    assert len(ticks) == count

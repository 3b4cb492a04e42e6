from __future__ import annotations

import asyncio
import logging

import pytest

from pyleadmap.viewport.debounce import DebounceScheduler


@pytest.mark.asyncio
async def test_burst_collapses_to_one_run() -> None:
    runs: list[int] = []

    async def callback() -> None:
        runs.append(1)

    scheduler = DebounceScheduler(callback, 0.01)
    for _ in range(5):
        scheduler.schedule()

    await asyncio.sleep(0.05)
    await scheduler.wait_idle()

    assert runs == [1]
    assert not scheduler.pending


@pytest.mark.asyncio
async def test_callback_reads_state_at_fire_time() -> None:
    state = {"zoom": 3}
    seen: list[int] = []

    async def callback() -> None:
        seen.append(state["zoom"])

    scheduler = DebounceScheduler(callback, 0.01)
    scheduler.schedule()
    state["zoom"] = 13

    await asyncio.sleep(0.05)
    await scheduler.wait_idle()

    assert seen == [13]


@pytest.mark.asyncio
async def test_flush_runs_pending_now_and_cancel_drops_it() -> None:
    runs: list[int] = []

    async def callback() -> None:
        runs.append(1)

    scheduler = DebounceScheduler(callback, 10.0)
    scheduler.schedule()
    assert scheduler.pending

    await scheduler.flush()
    assert runs == [1]
    assert not scheduler.pending

    # Nothing pending: flush is a no-op.
    await scheduler.flush()
    assert runs == [1]

    scheduler.schedule()
    scheduler.cancel()
    assert not scheduler.pending
    assert runs == [1]


@pytest.mark.asyncio
async def test_failed_evaluation_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    async def callback() -> None:
        raise RuntimeError("boom")

    scheduler = DebounceScheduler(callback, 0.0)
    with caplog.at_level(logging.ERROR, logger="pyleadmap.viewport.debounce"):
        scheduler.schedule()
        await asyncio.sleep(0.01)
        await scheduler.wait_idle()

    assert "Debounced evaluation failed" in caplog.text


def test_negative_delay_is_clamped() -> None:
    async def callback() -> None:
        return None

    assert DebounceScheduler(callback, -1.0).delay == 0.0

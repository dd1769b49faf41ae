# tests/test_periodic.py

import asyncio

import pytest

from app.services.periodic import PeriodicJob


@pytest.mark.asyncio
async def test_run_once_skips_while_previous_run_is_active():
    release = asyncio.Event()
    calls = []

    async def slow():
        calls.append("run")
        await release.wait()

    job = PeriodicJob("slow", 60, slow)
    first = asyncio.create_task(job.run_once())
    await asyncio.sleep(0)

    assert await job.run_once() is False
    release.set()
    assert await first is True
    assert calls == ["run"]

    assert await job.run_once() is True
    assert calls == ["run", "run"]


@pytest.mark.asyncio
async def test_loop_runs_repeatedly_until_stopped():
    calls = []

    async def tick():
        calls.append(len(calls))

    job = PeriodicJob("ticker", 0.01, tick)
    job.start()
    assert job.running

    await asyncio.sleep(0.1)
    await job.stop()

    assert not job.running
    assert len(calls) >= 2
    stopped_at = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == stopped_at


@pytest.mark.asyncio
async def test_failing_run_does_not_kill_the_loop():
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("database unavailable")

    job = PeriodicJob("flaky", 0.01, flaky)
    job.start()
    await asyncio.sleep(0.1)

    assert job.running
    await job.stop()
    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_without_start_is_a_noop():
    async def noop():
        return None

    job = PeriodicJob("noop", 10, noop)
    await job.stop()

    job.start()
    task = job._task
    job.start()
    assert job._task is task
    await job.stop()

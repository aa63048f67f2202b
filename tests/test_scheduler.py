import asyncio

import pytest

from docx2pdf_service.conversion import JobScheduler, JobStatus


def test_concurrency_must_be_positive():
    with pytest.raises(ValueError):
        JobScheduler(0)


@pytest.mark.asyncio
async def test_result_and_exception_propagate():
    scheduler = JobScheduler(2)

    async def ok():
        return 42

    async def bad():
        raise KeyError("nope")

    assert await scheduler.submit(ok) == 42
    with pytest.raises(KeyError):
        await scheduler.submit(bad)


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 2, 3])
async def test_never_exceeds_limit_and_starts_in_order(limit):
    scheduler = JobScheduler(limit)
    active = 0
    peak = 0
    started: list[int] = []

    def make(i):
        async def task():
            nonlocal active, peak
            started.append(i)
            active += 1
            peak = max(peak, active)
            assert scheduler.running <= limit
            # uneven durations so completion order differs from start order
            await asyncio.sleep(0.01 * ((i * 7) % 5 + 1))
            active -= 1
            return i

        return task

    futures = [scheduler.submit(make(i)) for i in range(10)]
    results = await asyncio.gather(*futures)

    assert results == list(range(10))
    assert started == list(range(10))
    assert peak == limit
    assert scheduler.running == 0
    assert scheduler.waiting == 0


@pytest.mark.asyncio
async def test_waiting_count_while_saturated():
    scheduler = JobScheduler(1)
    gate = asyncio.Event()

    async def blocker():
        await gate.wait()

    async def quick():
        return "done"

    first = scheduler.submit(blocker)
    rest = [scheduler.submit(quick) for _ in range(3)]
    await asyncio.sleep(0)
    assert scheduler.running == 1
    assert scheduler.waiting == 3
    gate.set()
    await first
    assert await asyncio.gather(*rest) == ["done"] * 3


@pytest.mark.asyncio
async def test_failures_do_not_starve_the_queue():
    scheduler = JobScheduler(1)

    async def bad():
        raise RuntimeError("backend exploded")

    async def good():
        return "ok"

    futures = [scheduler.submit(bad), scheduler.submit(bad), scheduler.submit(good)]
    outcomes = await asyncio.gather(*futures, return_exceptions=True)
    assert isinstance(outcomes[0], RuntimeError)
    assert isinstance(outcomes[1], RuntimeError)
    assert outcomes[2] == "ok"
    assert scheduler.running == 0


@pytest.mark.asyncio
async def test_stop_cancels_waiting_jobs():
    scheduler = JobScheduler(1)
    gate = asyncio.Event()

    async def blocker():
        await gate.wait()

    running = scheduler.submit(blocker)
    queued = scheduler.submit(blocker)
    await asyncio.sleep(0)
    await scheduler.stop()
    assert queued.cancelled()
    assert running.cancelled()
    assert scheduler.running == 0


@pytest.mark.asyncio
async def test_cancelled_queued_job_never_starts():
    scheduler = JobScheduler(1)
    gate = asyncio.Event()
    ran: list[str] = []

    async def blocker():
        await gate.wait()
        ran.append("a")

    async def abandoned():
        ran.append("b")

    async def client():
        return await scheduler.submit(abandoned)

    first = scheduler.submit(blocker)
    caller = asyncio.create_task(client())
    await asyncio.sleep(0)
    assert scheduler.waiting == 1

    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller
    assert scheduler.waiting == 0

    gate.set()
    await first
    await asyncio.sleep(0)
    assert ran == ["a"]
    assert scheduler.running == 0


@pytest.mark.asyncio
async def test_abandoned_running_job_frees_its_slot():
    scheduler = JobScheduler(1)
    stopped = asyncio.Event()

    async def forever():
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            stopped.set()
            raise

    async def quick():
        return "next"

    async def client():
        return await scheduler.submit(forever)

    caller = asyncio.create_task(client())
    await asyncio.sleep(0)
    assert scheduler.running == 1
    follower = scheduler.submit(quick)
    await asyncio.sleep(0.01)

    caller.cancel()
    await asyncio.wait_for(stopped.wait(), 1)
    assert await asyncio.wait_for(follower, 1) == "next"
    await asyncio.sleep(0)
    assert scheduler.running == 0


@pytest.mark.asyncio
async def test_jobs_report_lifecycle():
    scheduler = JobScheduler(1)
    gate = asyncio.Event()

    async def blocker():
        await gate.wait()
        return "ok"

    async def bad():
        raise RuntimeError("boom")

    scheduler.submit(blocker)
    failing = scheduler.submit(bad)
    await asyncio.sleep(0)

    running, queued = scheduler.jobs()
    assert running.status == JobStatus.RUNNING
    assert running.started_at is not None
    assert queued.status == JobStatus.QUEUED
    assert queued.started_at is None
    assert running.id != queued.id
    info = queued.to_dict()
    assert info["status"] == "queued"
    assert info["submitted_at"].endswith("Z")
    assert info["finished_at"] is None

    gate.set()
    with pytest.raises(RuntimeError):
        await failing
    await asyncio.sleep(0)
    assert running.status == JobStatus.SUCCEEDED
    assert queued.status == JobStatus.FAILED
    assert running.finished_at is not None
    assert queued.finished_at is not None
    assert scheduler.jobs() == []


@pytest.mark.asyncio
async def test_cancelled_job_is_marked_cancelled():
    scheduler = JobScheduler(1)
    gate = asyncio.Event()

    async def blocker():
        await gate.wait()

    first = scheduler.submit(blocker)
    second = scheduler.submit(blocker)
    await asyncio.sleep(0)
    _, queued = scheduler.jobs()
    second.cancel()
    await asyncio.sleep(0)
    assert queued.status == JobStatus.CANCELLED
    assert queued.finished_at is not None
    gate.set()
    await first

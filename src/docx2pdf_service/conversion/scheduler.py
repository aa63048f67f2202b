import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 2


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class JobStatus:
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(eq=False)
class Job:
    task: Callable[[], Awaitable[Any]]
    future: "asyncio.Future[Any]"
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: str = JobStatus.QUEUED
    submitted_at: str = field(default_factory=_now)
    started_at: str | None = None
    finished_at: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "status": self.status,
            "submitted_at": self.submitted_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


class JobScheduler:
    """Bounded-concurrency FIFO admission queue.

    All state is touched only from the owning event loop, so `_dispatch` is
    the single mutator of `_running` and `_waiting` and cannot interleave
    with itself. Jobs are admitted strictly in submission order. A job whose
    future is cancelled (its caller went away) is dropped from the queue, or
    cancelled if it is already running, so it never holds a slot.
    """

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._concurrency = concurrency
        self._running = 0
        self._waiting: deque[Job] = deque()
        self._active: dict[str, tuple[Job, asyncio.Task]] = {}

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def running(self) -> int:
        return self._running

    @property
    def waiting(self) -> int:
        return sum(1 for job in self._waiting if not job.future.done())

    def jobs(self) -> list[Job]:
        """Running jobs first, then queued ones in admission order."""
        return [job for job, _ in self._active.values()] + [j for j in self._waiting if not j.future.done()]

    def submit(self, task: Callable[[], Awaitable[Any]]) -> "asyncio.Future[Any]":
        """Queue `task` and return a future resolved with its result or exception."""
        loop = asyncio.get_running_loop()
        job = Job(task=task, future=loop.create_future())
        job.future.add_done_callback(lambda _f: self._on_future_done(job))
        self._waiting.append(job)
        logger.info("job %s queued (running=%s waiting=%s)", job.id, self._running, self.waiting)
        self._dispatch()
        return job.future

    def _on_future_done(self, job: Job) -> None:
        if not job.future.cancelled():
            return
        if job.status == JobStatus.QUEUED and job in self._waiting:
            self._waiting.remove(job)
            job.status = JobStatus.CANCELLED
            job.finished_at = _now()
            logger.info("job %s cancelled before it started", job.id)
            return
        entry = self._active.get(job.id)
        if entry is not None:
            logger.info("job %s abandoned by its caller, cancelling", job.id)
            entry[1].cancel()

    def _dispatch(self) -> None:
        while self._running < self._concurrency and self._waiting:
            job = self._waiting.popleft()
            if job.future.done():
                job.status = JobStatus.CANCELLED
                job.finished_at = _now()
                logger.info("job %s cancelled before it started", job.id)
                continue
            self._running += 1
            job.status = JobStatus.RUNNING
            job.started_at = _now()
            t = asyncio.create_task(self._run(job), name=f"job-{job.id}")
            self._active[job.id] = (job, t)
            # bookkeeping lives in a done callback: it also fires for a task
            # cancelled before its first step, when _run never executes
            t.add_done_callback(lambda _t, job=job: self._finish(job))

    def _finish(self, job: Job) -> None:
        job.finished_at = _now()
        if job.status == JobStatus.RUNNING:
            job.status = JobStatus.CANCELLED
        if not job.future.done():
            job.future.cancel()
        self._active.pop(job.id, None)
        self._running -= 1
        self._dispatch()

    async def _run(self, job: Job) -> None:
        logger.info("job %s started", job.id)
        try:
            result = await job.task()
        except asyncio.CancelledError:
            job.status = JobStatus.CANCELLED
            if not job.future.done():
                job.future.cancel()
            raise
        except Exception as e:
            job.status = JobStatus.FAILED
            logger.info("job %s failed: %s", job.id, e)
            if not job.future.done():
                job.future.set_exception(e)
        else:
            job.status = JobStatus.SUCCEEDED
            logger.info("job %s succeeded", job.id)
            if not job.future.done():
                job.future.set_result(result)

    async def stop(self) -> None:
        """Cancel queued jobs and wait for running ones to wind down."""
        while self._waiting:
            job = self._waiting.popleft()
            job.status = JobStatus.CANCELLED
            job.future.cancel()
        tasks = [t for _, t in self._active.values()]
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

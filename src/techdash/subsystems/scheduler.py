"""
techdash.subsystems.scheduler

Periodic job scheduler.

Responsibilities:
- Run registered coroutine jobs at fixed intervals on the event loop.
- On shutdown: stop issuing new runs, let in-flight runs finish within the
  budget, abandon (cancel) the rest.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from techdash.observability.logging import get_logger

log = get_logger(__name__)


@dataclass(slots=True)
class Job:
    name: str
    interval: float
    func: Callable[[], Awaitable[None]]
    runs: int = 0
    failures: int = 0
    last_error: str | None = field(default=None)


class Scheduler:
    name = "scheduler"

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._loops: list[asyncio.Task[None]] = []
        self._in_flight: set[asyncio.Task[None]] = set()
        self._stopping = False
        self._started = False

    def add_job(self, name: str, interval: float, func: Callable[[], Awaitable[None]]) -> Job:
        if name in self._jobs:
            raise ValueError(f"job {name!r} already scheduled")
        if interval <= 0:
            raise ValueError("interval must be positive")
        job = Job(name=name, interval=interval, func=func)
        self._jobs[name] = job
        if self._started and not self._stopping:
            self._loops.append(asyncio.get_running_loop().create_task(self._loop(job)))
        return job

    @property
    def accepting(self) -> bool:
        return self._started and not self._stopping

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def status(self) -> dict[str, dict[str, object]]:
        return {
            job.name: {
                "interval": job.interval,
                "runs": job.runs,
                "failures": job.failures,
                "last_error": job.last_error,
            }
            for job in self._jobs.values()
        }

    async def init(self) -> None:
        self._stopping = False
        loop = asyncio.get_running_loop()
        self._loops = [
            loop.create_task(self._loop(job), name=f"job:{job.name}")
            for job in self._jobs.values()
        ]
        self._started = True

    async def _loop(self, job: Job) -> None:
        while not self._stopping:
            await asyncio.sleep(job.interval)
            if self._stopping:
                return
            run = asyncio.get_running_loop().create_task(self._run(job))
            self._in_flight.add(run)
            run.add_done_callback(self._in_flight.discard)
            # asyncio.wait does not cancel the run when this loop is cancelled.
            await asyncio.wait({run})

    async def _run(self, job: Job) -> None:
        try:
            await job.func()
        except Exception as e:
            job.failures += 1
            job.last_error = repr(e)
            log.exception("job_failed", job=job.name)
        finally:
            job.runs += 1

    async def shutdown(self, timeout: float) -> None:
        self._stopping = True
        for task in self._loops:
            task.cancel()
        await asyncio.gather(*self._loops, return_exceptions=True)
        self._loops = []
        self._started = False

        if self._in_flight:
            _, abandoned = await asyncio.wait(set(self._in_flight), timeout=timeout)
            for task in abandoned:
                task.cancel()
            if abandoned:
                await asyncio.gather(*abandoned, return_exceptions=True)
                log.warning("jobs_abandoned", count=len(abandoned))
        log.info("scheduler_stopped")

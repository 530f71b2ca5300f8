"""
Throttled work queue for pagination steps.

Pagination work is never fired directly. Each step is submitted to the
queue and a periodic drain tick starts at most ``batch_size`` of them,
which behaves like a token bucket of size ``batch_size`` refilled once
per ``tick_interval``.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from .config import DefaultConfiguration
from .errors import UpstreamFetchError
from .models import HarvestJob

logger = logging.getLogger(__name__)

WorkFunction = Callable[[HarvestJob], Awaitable[None]]


@dataclass
class QueuedWork:
    job: HarvestJob
    work: WorkFunction
    owner: "asyncio.Future[Any]"


class ThrottledWorkQueue:
    """Bounds how many pagination steps start per tick across all streams."""

    def __init__(
        self,
        batch_size: int = DefaultConfiguration.DEFAULT_BATCH_SIZE,
        tick_interval: float = DefaultConfiguration.DEFAULT_TICK_INTERVAL,
        job_timeout: Optional[float] = DefaultConfiguration.DEFAULT_JOB_TIMEOUT,
    ):
        self.batch_size = batch_size
        self.tick_interval = tick_interval
        self.job_timeout = job_timeout
        self._backlog: deque[QueuedWork] = deque()
        self._in_flight: set[asyncio.Task[None]] = set()
        self.ticks = 0

    @property
    def backlog_size(self) -> int:
        return len(self._backlog)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def submit(
        self, job: HarvestJob, work: WorkFunction, owner: "asyncio.Future[Any]"
    ) -> None:
        """Enqueue ``work`` for a later tick. Never runs it synchronously.

        ``owner`` is the future of the top-level unit the job belongs to;
        it is failed if the work raises.
        """
        self._backlog.append(QueuedWork(job, work, owner))

    def tick(self) -> int:
        """Start up to ``batch_size`` pending jobs and return how many started."""
        self.ticks += 1
        logger.info("Queue length: %d", len(self._backlog))

        started = 0
        while self._backlog and started < self.batch_size:
            item = self._backlog.popleft()
            if item.owner.done():
                continue
            task = asyncio.ensure_future(self._execute(item))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            started += 1
        return started

    async def run(self, until: "asyncio.Future[Any]") -> None:
        """Tick until ``until`` completes, then cancel anything still in flight."""
        try:
            while not until.done():
                self.tick()
                await asyncio.wait({until}, timeout=self.tick_interval)
        finally:
            for task in list(self._in_flight):
                task.cancel()
            if self._backlog:
                logger.debug("Drain stopped with %d jobs pending", len(self._backlog))

    async def _execute(self, item: QueuedWork) -> None:
        try:
            if self.job_timeout is None:
                await item.work(item.job)
            else:
                await asyncio.wait_for(item.work(item.job), self.job_timeout)
        except asyncio.TimeoutError:
            self._fail(
                item,
                UpstreamFetchError(
                    "pagination step",
                    f"page fetch exceeded {self.job_timeout}s deadline",
                    unit=item.job.stream_name,
                ),
            )
        except Exception as exc:
            self._fail(item, exc)

    @staticmethod
    def _fail(item: QueuedWork, exc: BaseException) -> None:
        logger.warning("Job for %s failed: %s", item.job.stream_name, exc)
        if not item.owner.done():
            item.owner.set_exception(exc)

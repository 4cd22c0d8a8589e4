"""Queue consumer that feeds jobs to the orchestrator."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from portrait_analysis.services.orchestrator import AnalysisOrchestrator
from portrait_analysis.services.queue import JobQueue, QueuedJob

_logger = logging.getLogger(__name__)


@dataclass
class AnalysisWorker:
    """Bounded-concurrency consumer with exponential redelivery backoff.

    A job whose processing raises is re-enqueued with its attempt counter
    incremented after ``backoff_seconds * 2 ** (attempt - 1)`` until
    ``max_attempts`` is reached. The concurrency slot is released before the
    backoff; the original message is acknowledged only after the re-enqueue.
    """

    queue: JobQueue
    orchestrator: AnalysisOrchestrator
    concurrency: int = 4
    max_attempts: int = 3
    backoff_seconds: float = 2.0
    poll_interval: float = 0.1
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _semaphore: asyncio.Semaphore = field(init=False)
    _running: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    _runner: asyncio.Task[None] | None = field(default=None, init=False)
    _stopping: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self._semaphore = asyncio.Semaphore(self.concurrency)

    def start(self) -> None:
        """Run the consume loop in the background."""
        if self._runner is None:
            self._stopping = False
            self._runner = asyncio.create_task(self.run())
            _logger.info("Analysis worker started with concurrency %s", self.concurrency)

    async def stop(self) -> None:
        """Stop receiving and wait for running jobs to finish."""
        self._stopping = True
        if self._runner is not None:
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
            self._runner = None
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
        _logger.info("Analysis worker stopped")

    async def run(self) -> None:
        while not self._stopping:
            try:
                jobs = await self.queue.receive(self.concurrency)
            except Exception:
                _logger.exception("Failed to receive analysis jobs")
                await self.sleep(self.backoff_seconds)
                continue
            if not jobs:
                await self.sleep(self.poll_interval)
                continue
            for job in jobs:
                await self._semaphore.acquire()
                task = asyncio.create_task(self._guarded(job))
                self._running.add(task)
                task.add_done_callback(self._running.discard)

    async def _guarded(self, job: QueuedJob) -> None:
        try:
            succeeded = await self._attempt(job)
        finally:
            self._semaphore.release()
        await self._settle(job, succeeded)

    async def handle(self, job: QueuedJob) -> None:
        """Process one job, scheduling a retry if processing raises."""
        await self._settle(job, await self._attempt(job))

    async def _settle(self, job: QueuedJob, succeeded: bool) -> None:
        if not succeeded:
            await self._retry(job)
        await self._ack(job)

    async def _attempt(self, job: QueuedJob) -> bool:
        _logger.info(
            "Processing analysis %s (attempt %s/%s)",
            job.request.id,
            job.attempt,
            self.max_attempts,
        )
        try:
            outcome = await self.orchestrator.process(job.request)
        except Exception:
            _logger.exception("Analysis %s raised on attempt %s", job.request.id, job.attempt)
            return False
        _logger.info("Analysis %s completed with outcome %s", job.request.id, outcome)
        return True

    async def _retry(self, job: QueuedJob) -> None:
        if job.attempt >= self.max_attempts:
            _logger.error(
                "Analysis %s dropped after %s attempts", job.request.id, job.attempt
            )
            return
        delay = self.backoff_seconds * 2 ** (job.attempt - 1)
        await self.sleep(delay)
        try:
            await self.queue.enqueue(job.request, attempt=job.attempt + 1)
        except Exception:
            _logger.exception("Failed to re-enqueue analysis %s", job.request.id)

    async def _ack(self, job: QueuedJob) -> None:
        try:
            await self.queue.ack(job.message_id)
        except Exception:
            _logger.exception("Failed to acknowledge message %s", job.message_id)

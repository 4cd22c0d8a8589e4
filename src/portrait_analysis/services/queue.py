"""Durable job queue port."""

from dataclasses import dataclass
from typing import Protocol

from portrait_analysis.domain.analysis import AnalysisRequest


@dataclass(frozen=True)
class QueuedJob:
    """A dequeued analysis job awaiting acknowledgement."""

    message_id: str
    request: AnalysisRequest
    attempt: int = 1


class JobQueue(Protocol):
    """Interface for the external durable queue."""

    async def enqueue(self, request: AnalysisRequest, *, attempt: int = 1) -> str:
        """Append a job and return the queue message id."""

    async def receive(self, count: int) -> list[QueuedJob]:
        """Return up to count jobs, waiting briefly when the queue is empty."""

    async def ack(self, message_id: str) -> None:
        """Acknowledge a processed job."""

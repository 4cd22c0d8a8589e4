"""Durable analysis job queue on a Redis stream with a consumer group."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import ResponseError

from portrait_analysis.domain.analysis import AnalysisRequest
from portrait_analysis.services.queue import QueuedJob

_logger = logging.getLogger(__name__)

StreamEntry = tuple[str, dict[str, str] | None]


@dataclass
class RedisJobQueue:
    """Jobs are stream entries with ``payload`` (JSON) and ``attempt`` fields.

    Entries delivered but never acknowledged are recovered two ways. On the
    first receives this consumer re-reads its own pending list, which covers
    a restart under the same consumer name. Every ``claim_interval_seconds``
    entries idle longer than ``claim_idle_ms`` in any consumer are claimed,
    which covers a consumer that never comes back.
    """

    redis: Redis
    stream: str
    group: str
    consumer: str
    block_ms: int = 1000
    claim_idle_ms: int = 600_000
    claim_interval_seconds: float = 60.0
    clock: Callable[[], float] = time.monotonic
    _group_ready: bool = field(default=False, init=False)
    _backlog_cursor: str | None = field(default="0", init=False)
    _last_claim: float | None = field(default=None, init=False)

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        redis_url: str,
        *,
        stream: str,
        group: str,
        consumer: str,
        claim_idle_ms: int = 600_000,
        claim_interval_seconds: float = 60.0,
    ) -> "RedisJobQueue":
        return cls(
            redis=Redis.from_url(redis_url, decode_responses=True),
            stream=stream,
            group=group,
            consumer=consumer,
            claim_idle_ms=claim_idle_ms,
            claim_interval_seconds=claim_interval_seconds,
        )

    async def ensure_group(self) -> None:
        """Create the consumer group and stream if they do not exist yet."""
        if self._group_ready:
            return
        try:
            await self.redis.xgroup_create(self.stream, self.group, id="0", mkstream=True)
            _logger.info("Created group %s on %s", self.group, self.stream)
        except ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise
        self._group_ready = True

    async def enqueue(self, request: AnalysisRequest, *, attempt: int = 1) -> str:
        message_id = await self.redis.xadd(
            self.stream,
            {"payload": request.model_dump_json(by_alias=True), "attempt": attempt},
        )
        _logger.info(
            "Enqueued analysis %s as %s (attempt %s)", request.id, message_id, attempt
        )
        return message_id

    async def receive(self, count: int) -> list[QueuedJob]:
        await self.ensure_group()
        if self._backlog_cursor is not None:
            entries = await self._read(self._backlog_cursor, count, block=None)
            if entries:
                self._backlog_cursor = entries[-1][0]
                _logger.info(
                    "Recovered %s pending jobs for consumer %s", len(entries), self.consumer
                )
                return await self._parse(entries)
            self._backlog_cursor = None

        now = self.clock()
        if self._last_claim is None or now - self._last_claim >= self.claim_interval_seconds:
            self._last_claim = now
            claimed = await self._claim_idle(count)
            if claimed:
                return await self._parse(claimed)

        return await self._parse(await self._read(">", count, block=self.block_ms))

    async def ack(self, message_id: str) -> None:
        await self.redis.xack(self.stream, self.group, message_id)

    async def close(self) -> None:
        await self.redis.aclose()

    async def _read(self, cursor: str, count: int, *, block: int | None) -> list[StreamEntry]:
        response = await self.redis.xreadgroup(
            self.group,
            self.consumer,
            streams={self.stream: cursor},
            count=count,
            block=block,
        )
        return [entry for _, entries in response or [] for entry in entries]

    async def _claim_idle(self, count: int) -> list[StreamEntry]:
        response = await self.redis.xautoclaim(
            self.stream,
            self.group,
            self.consumer,
            min_idle_time=self.claim_idle_ms,
            start_id="0-0",
            count=count,
        )
        entries = list(response[1]) if response else []
        if entries:
            _logger.warning(
                "Claimed %s stalled jobs idle over %sms", len(entries), self.claim_idle_ms
            )
        return entries

    async def _parse(self, entries: list[StreamEntry]) -> list[QueuedJob]:
        jobs: list[QueuedJob] = []
        for message_id, fields in entries:
            fields = fields or {}
            try:
                request = AnalysisRequest.model_validate_json(fields["payload"])
            except (KeyError, ValidationError):
                _logger.exception("Dropping malformed job message %s", message_id)
                await self.ack(message_id)
                continue
            jobs.append(
                QueuedJob(
                    message_id=message_id,
                    request=request,
                    attempt=int(fields.get("attempt", 1)),
                )
            )
        return jobs

"""Typing heartbeat shown to the user while a job is running."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from portrait_analysis.adapters.telegram_client import TelegramClient

_logger = logging.getLogger(__name__)


@dataclass
class TypingHeartbeat:
    """Repeating ``typing`` chat action bound to one job's lifetime.

    Each tick is sent as a detached task, so a slow or failing request never
    delays the next tick or the job itself. ``stop`` cancels future ticks
    without waiting for the in-flight one.
    """

    telegram_client: TelegramClient
    chat_id: int
    interval_seconds: float = 4.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    tick_count: int = field(default=0, init=False)
    _active: bool = field(default=False, init=False)
    _loop_task: asyncio.Task[None] | None = field(default=None, init=False)
    _in_flight: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    _started_at: float = field(default=0.0, init=False)

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Begin emitting ticks; a second call is a no-op."""
        if self._active:
            return
        self._active = True
        self._started_at = time.monotonic()
        self._loop_task = asyncio.create_task(self._run())
        _logger.info("Typing status started in chat %s", self.chat_id)

    def stop(self) -> None:
        """Cancel future ticks without awaiting in-flight ones."""
        if not self._active:
            return
        self._active = False
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
        _logger.info(
            "Typing status stopped in chat %s after %.0fms, sent %s updates",
            self.chat_id,
            (time.monotonic() - self._started_at) * 1000,
            self.tick_count,
        )

    async def _run(self) -> None:
        while self._active:
            self._emit_detached()
            await self.sleep(self.interval_seconds)

    def _emit_detached(self) -> None:
        self.tick_count += 1
        task = asyncio.create_task(self._emit(self.tick_count))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _emit(self, tick: int) -> None:
        try:
            await self.telegram_client.send_chat_action(self.chat_id, "typing")
        except Exception as exc:
            _logger.warning(
                "Failed to send typing status #%s to chat %s: %s",
                tick,
                self.chat_id,
                exc,
            )

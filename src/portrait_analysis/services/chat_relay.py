"""Chat delivery of lifecycle notifications."""

import asyncio
import logging
from dataclasses import dataclass, field

from portrait_analysis.adapters.telegram_client import TelegramClient
from portrait_analysis.domain.notifications import NotificationMessage, NotificationType
from portrait_analysis.services.notifications import NotificationBus

_logger = logging.getLogger(__name__)

TELEGRAM_MESSAGE_LIMIT = 3800

ANALYSIS_FAILED_TEXT = (
    "Не удалось завершить анализ. Попробуйте отправить фото ещё раз чуть позже."
)
FACE_NOT_DETECTED_TEXT = (
    "Не получилось найти лицо на фото. Кредиты возвращены, "
    "попробуйте другое фото, где лицо хорошо видно."
)
AI_REFUSAL_TEXT = (
    "К сожалению, это фото не удалось проанализировать. Кредиты возвращены, "
    "попробуйте другое фото."
)


def split_message(text: str, max_length: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Split long text into roughly equal parts, preferring paragraph then sentence breaks."""
    parts: list[str] = []
    remaining = text.strip()
    while len(remaining) > max_length:
        parts_left = -(-len(remaining) // max_length)
        target = len(remaining) // parts_left
        window_start = int(max(target * 0.7, target - 500))
        window_end = int(min(target * 1.3, target + 500, max_length))

        split_at = target
        paragraph = remaining.rfind("\n\n", 0, window_end)
        if paragraph >= window_start:
            split_at = paragraph
        else:
            sentence = remaining.rfind(". ", 0, window_end)
            if sentence >= window_start:
                split_at = sentence + 1

        parts.append(remaining[:split_at].strip())
        remaining = remaining[split_at:].strip()
    if remaining:
        parts.append(remaining)
    return parts


@dataclass
class ChatRelay:
    """Subscribes to the notification bus and renders one chat reply per envelope."""

    bus: NotificationBus
    telegram_client: TelegramClient
    _task: asyncio.Task[None] | None = field(default=None, init=False)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.bus.subscribe(self.handle))
            _logger.info("Chat relay started on %s", self.bus.channel)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _logger.info("Chat relay stopped")

    async def handle(self, message: NotificationMessage) -> None:
        """Send the chat reply for one envelope; unrelated types are ignored."""
        data = message.data
        match message.type:
            case NotificationType.ANALYSIS_COMPLETE:
                if data is None or not data.description:
                    _logger.warning("Analysis %s completed without text", message.analysis_id)
                    return
                for part in split_message(data.description):
                    await self.telegram_client.send_message(message.chat_id, part)
                if data.summary:
                    await self.telegram_client.send_message(message.chat_id, data.summary)
            case NotificationType.ANALYSIS_FAILED:
                await self.telegram_client.send_message(message.chat_id, ANALYSIS_FAILED_TEXT)
            case NotificationType.FACE_NOT_DETECTED:
                await self.telegram_client.send_message(
                    message.chat_id, FACE_NOT_DETECTED_TEXT
                )
            case NotificationType.AI_ANALYSIS_REFUSAL:
                await self.telegram_client.send_message(message.chat_id, AI_REFUSAL_TEXT)
            case NotificationType.FUNNEL_MESSAGE:
                if data is None or not data.message:
                    return
                await self.telegram_client.send_message(
                    message.chat_id, data.message, parse_mode=data.parse_mode
                )
            case _:
                _logger.debug("No chat reply for notification %s", message.type)
                return
        _logger.debug("Delivered %s to chat %s", message.type, message.chat_id)

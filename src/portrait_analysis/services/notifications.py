"""Publish/subscribe bus for lifecycle notifications."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from pydantic import ValidationError

from portrait_analysis.domain.analysis import AnalysisVariant
from portrait_analysis.domain.notifications import (
    NotificationData,
    NotificationMessage,
    NotificationType,
)

_logger = logging.getLogger(__name__)

NotificationHandler = Callable[[NotificationMessage], Awaitable[None]]


class MessageBroker(Protocol):
    """Interface for the external publish/subscribe broker."""

    async def publish(self, channel: str, message: str) -> None:
        """Publish a raw message on a channel."""

    def listen(self, channel: str) -> AsyncIterator[str]:
        """Yield raw messages received on a channel."""


@dataclass
class NotificationBus:
    """Fan-out of lifecycle envelopes on a single channel."""

    broker: MessageBroker
    channel: str = "bot_notifications"

    async def publish(self, message: NotificationMessage) -> None:
        """Publish an envelope; broker errors are logged and re-raised."""
        try:
            await self.broker.publish(self.channel, message.to_json())
        except Exception:
            _logger.exception(
                "Failed to publish notification %s for user %s",
                message.type,
                message.user_id,
            )
            raise
        _logger.debug("Notification published: %s for user %s", message.type, message.user_id)

    async def subscribe(self, handler: NotificationHandler) -> None:
        """Deliver every decoded envelope to the handler until cancelled."""
        _logger.info("Subscribed to %s", self.channel)
        async for raw in self.broker.listen(self.channel):
            try:
                message = NotificationMessage.model_validate_json(raw)
            except ValidationError:
                _logger.exception("Dropping undecodable notification")
                continue
            try:
                await handler(message)
            except Exception:
                _logger.exception("Failed to process notification %s", message.type)

    async def notify_analysis_complete(  # noqa: PLR0913
        self,
        *,
        user_id: UUID,
        chat_id: int,
        message_id: int | None,
        analysis_id: UUID,
        variant: AnalysisVariant,
        description: str,
        summary: str | None,
        card_image_ref: str | None,
    ) -> None:
        await self.publish(
            NotificationMessage(
                type=NotificationType.ANALYSIS_COMPLETE,
                user_id=user_id,
                chat_id=chat_id,
                message_id=message_id,
                analysis_id=analysis_id,
                variant=variant,
                data=NotificationData(
                    description=description,
                    summary=summary,
                    card_image_ref=card_image_ref,
                ),
            )
        )

    async def notify_analysis_failed(  # noqa: PLR0913
        self,
        *,
        user_id: UUID,
        chat_id: int,
        message_id: int | None,
        analysis_id: UUID,
        variant: AnalysisVariant,
        error: str,
    ) -> None:
        await self.publish(
            NotificationMessage(
                type=NotificationType.ANALYSIS_FAILED,
                user_id=user_id,
                chat_id=chat_id,
                message_id=message_id,
                analysis_id=analysis_id,
                variant=variant,
                data=NotificationData(error=error),
            )
        )

    async def notify_face_not_detected(
        self,
        *,
        user_id: UUID,
        chat_id: int,
        message_id: int | None,
        analysis_id: UUID,
        variant: AnalysisVariant,
    ) -> None:
        await self.publish(
            NotificationMessage(
                type=NotificationType.FACE_NOT_DETECTED,
                user_id=user_id,
                chat_id=chat_id,
                message_id=message_id,
                analysis_id=analysis_id,
                variant=variant,
            )
        )

    async def notify_ai_refusal(
        self,
        *,
        user_id: UUID,
        chat_id: int,
        message_id: int | None,
        analysis_id: UUID,
        variant: AnalysisVariant,
    ) -> None:
        await self.publish(
            NotificationMessage(
                type=NotificationType.AI_ANALYSIS_REFUSAL,
                user_id=user_id,
                chat_id=chat_id,
                message_id=message_id,
                analysis_id=analysis_id,
                variant=variant,
            )
        )

    async def notify_funnel_message(
        self, *, user_id: UUID, chat_id: int, text: str
    ) -> None:
        await self.publish(
            NotificationMessage(
                type=NotificationType.FUNNEL_MESSAGE,
                user_id=user_id,
                chat_id=chat_id,
                data=NotificationData(message=text, parse_mode="HTML"),
            )
        )

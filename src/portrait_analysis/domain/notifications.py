"""Lifecycle notification envelope published on the bus."""

from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from portrait_analysis.domain.analysis import AnalysisVariant


class NotificationType(StrEnum):
    """Closed set of envelope types carried on the notification channel."""

    ANALYSIS_COMPLETE = "analysis_complete"
    ANALYSIS_FAILED = "analysis_failed"
    FACE_NOT_DETECTED = "face_not_detected"
    AI_ANALYSIS_REFUSAL = "ai_analysis_refusal"
    FUNNEL_MESSAGE = "funnel_message"
    NEW_REFERRAL = "new_referral"
    REFERRAL_BONUS = "referral_bonus"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    MINI_APP_CLOSED = "mini_app_closed"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class NotificationData(_WireModel):
    """Type-specific payload fields."""

    summary: str | None = None
    description: str | None = None
    card_image_ref: str | None = None
    error: str | None = None
    message: str | None = None
    parse_mode: str | None = None


class NotificationMessage(_WireModel):
    """Envelope published once per lifecycle event."""

    type: NotificationType
    user_id: UUID
    chat_id: int
    message_id: int | None = None
    analysis_id: UUID | None = None
    variant: AnalysisVariant | None = None
    data: NotificationData | None = None

    def to_json(self) -> str:
        """Serialize to the camelCase wire format."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

"""Request and response bodies for the HTTP API."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portrait_analysis.domain.analysis import AnalysisVariant
from portrait_analysis.domain.funnel import FunnelBroadcastResult, FunnelStats
from portrait_analysis.domain.users import FunnelAction


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisSubmission(_CamelModel):
    """Analysis request submitted by the bot front end."""

    user_id: UUID
    photo_refs: list[str] = Field(min_length=1)
    chat_id: int
    variant: AnalysisVariant = AnalysisVariant.SOLO
    reply_to_message_id: int | None = None
    cost: int | None = Field(default=None, ge=1)


class AnalysisAccepted(_CamelModel):
    id: UUID
    status: str = "PENDING"


class FunnelMessageRequest(_CamelModel):
    target_cohort: FunnelAction | Literal["all"]
    message: str = Field(min_length=1, max_length=4096)


class FailedRecipientModel(_CamelModel):
    user_id: UUID
    reason: str


class FunnelMessageResponse(_CamelModel):
    sent_count: int
    failed_count: int
    total_targeted: int
    failed_users: list[FailedRecipientModel]

    @classmethod
    def from_result(cls, result: FunnelBroadcastResult) -> "FunnelMessageResponse":
        return cls(
            sent_count=result.sent_count,
            failed_count=result.failed_count,
            total_targeted=result.total_targeted,
            failed_users=[
                FailedRecipientModel(user_id=item.user_id, reason=item.reason)
                for item in result.failed_users
            ],
        )


class FunnelStatsResponse(_CamelModel):
    by_action: dict[str, int]
    blocked_users: int
    total_users: int

    @classmethod
    def from_stats(cls, stats: FunnelStats) -> "FunnelStatsResponse":
        return cls(
            by_action=stats.by_action,
            blocked_users=stats.blocked_users,
            total_users=stats.total_users,
        )


class CreditAdjustment(_CamelModel):
    amount: int = Field(ge=1)
    job_id: UUID | None = None


class CreditBalance(_CamelModel):
    user_id: UUID
    balance: int

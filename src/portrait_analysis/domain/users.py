"""Domain models for bot users."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class FunnelAction(StrEnum):
    """Marketing funnel stage reached by a user."""

    START = "START"
    ONBOARDING_COMPLETE = "ONBOARDING_COMPLETE"
    ANALYSIS_START = "ANALYSIS_START"
    ANALYSIS_COMPLETE = "ANALYSIS_COMPLETE"
    SUBSCRIPTION_PURCHASE = "SUBSCRIPTION_PURCHASE"
    REFERRAL_INVITE = "REFERRAL_INVITE"
    FEELINGS_SHARE = "FEELINGS_SHARE"
    PSY_TEST_COMPLETE = "PSY_TEST_COMPLETE"
    HYPOTHESIS_RECEIVE = "HYPOTHESIS_RECEIVE"
    VIDEO_SHARE = "VIDEO_SHARE"
    FUNNEL_COMPLETE = "FUNNEL_COMPLETE"


@dataclass(frozen=True)
class UserRecord:
    """Represents a user stored in the database."""

    id: UUID
    telegram_id: int
    telegram_chat_id: int | None = None
    analysis_credits: int = 0
    subscription_active: bool = False
    subscription_expiry: datetime | None = None
    is_banned: bool = False
    is_bot_blocked: bool = False
    funnel_action: FunnelAction | None = None

    def has_active_subscription(self, now: datetime) -> bool:
        """Return true when a paid subscription covers the given moment."""
        return (
            self.subscription_active
            and self.subscription_expiry is not None
            and self.subscription_expiry > now
        )

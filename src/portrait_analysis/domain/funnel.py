"""Models for funnel broadcasts."""

from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True)
class FailedRecipient:
    """Recipient whose funnel message could not be published."""

    user_id: UUID
    reason: str


@dataclass
class FunnelBroadcastResult:
    """Aggregate counts returned to the broadcast caller."""

    total_targeted: int
    sent_count: int = 0
    failed_count: int = 0
    failed_users: list[FailedRecipient] = field(default_factory=list)


@dataclass(frozen=True)
class FunnelStats:
    """User counts per funnel stage."""

    by_action: dict[str, int]
    blocked_users: int
    total_users: int

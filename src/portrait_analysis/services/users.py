"""User lookups needed by the pipeline and broadcasts."""

from typing import Protocol
from uuid import UUID

from portrait_analysis.domain.users import FunnelAction, UserRecord


class UserRepository(Protocol):
    """Persistence interface for user data."""

    def get_user(self, user_id: UUID) -> UserRecord | None:
        """Return a user by id, if present."""

    def list_reachable_users(
        self, funnel_action: FunnelAction | None
    ) -> list[UserRecord]:
        """Return non-banned users with a chat who have not blocked the bot."""

    def clear_bot_blocked(self, user_id: UUID) -> None:
        """Reset the bot-blocked marker after a successful interaction."""

    def count_by_funnel_action(self) -> dict[str, int]:
        """Return non-banned user counts grouped by funnel stage."""

    def count_blocked_users(self) -> int:
        """Return how many non-banned users have blocked the bot."""

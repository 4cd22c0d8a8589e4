"""Supabase-backed user repository."""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from portrait_analysis.domain.users import FunnelAction, UserRecord

USER_COLUMNS = (
    "id, telegram_id, telegram_chat_id, analysis_credits, subscription_active, "
    "subscription_expiry, is_banned, bot_blocked_at, funnel_action"
)


@dataclass
class SupabaseUserRepository:
    """Supabase implementation for user lookups and funnel queries."""

    client: Client

    def get_user(self, user_id: UUID) -> UserRecord | None:
        """Return the user row for an id, if present."""
        response = (
            self.client.table("users")
            .select(USER_COLUMNS)
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_user(response.data[0])

    def list_reachable_users(
        self, funnel_action: FunnelAction | None
    ) -> list[UserRecord]:
        """Return users a broadcast may reach, optionally for one funnel stage."""
        query = (
            self.client.table("users")
            .select(USER_COLUMNS)
            .eq("is_banned", False)
            .is_("bot_blocked_at", "null")
            .not_.is_("telegram_chat_id", "null")
        )
        if funnel_action is not None:
            query = query.eq("funnel_action", funnel_action.value)
        response = query.execute()
        return [parse_user(row) for row in response.data or []]

    def clear_bot_blocked(self, user_id: UUID) -> None:
        self.client.table("users").update({"bot_blocked_at": None}).eq(
            "id", str(user_id)
        ).execute()

    def count_by_funnel_action(self) -> dict[str, int]:
        response = (
            self.client.table("users")
            .select("funnel_action")
            .eq("is_banned", False)
            .execute()
        )
        counts = Counter(
            row["funnel_action"]
            for row in response.data or []
            if row.get("funnel_action")
        )
        return dict(counts)

    def count_blocked_users(self) -> int:
        response = (
            self.client.table("users")
            .select("id")
            .eq("is_banned", False)
            .not_.is_("bot_blocked_at", "null")
            .execute()
        )
        return len(response.data or [])


def parse_user(row: dict[str, object]) -> UserRecord:
    """Build a user record from a users table row."""
    expiry = row.get("subscription_expiry")
    funnel_action = row.get("funnel_action")
    return UserRecord(
        id=UUID(str(row["id"])),
        telegram_id=int(row["telegram_id"]),
        telegram_chat_id=(
            int(row["telegram_chat_id"])
            if row.get("telegram_chat_id") is not None
            else None
        ),
        analysis_credits=int(row.get("analysis_credits") or 0),
        subscription_active=bool(row.get("subscription_active")),
        subscription_expiry=(
            datetime.fromisoformat(expiry)
            if isinstance(expiry, str) and expiry
            else None
        ),
        is_banned=bool(row.get("is_banned")),
        is_bot_blocked=row.get("bot_blocked_at") is not None,
        funnel_action=FunnelAction(funnel_action) if funnel_action else None,
    )

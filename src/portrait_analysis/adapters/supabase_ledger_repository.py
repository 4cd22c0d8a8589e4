"""Supabase storage for credit balances and ledger entries."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from portrait_analysis.adapters.supabase_user_repository import USER_COLUMNS, parse_user
from portrait_analysis.domain.ledger import LedgerDirection, LedgerEntry
from portrait_analysis.domain.users import UserRecord

_LEDGER_TABLE = "credit_ledger"


@dataclass
class SupabaseLedgerRepository:
    """Balance changes go through the ``adjust_analysis_credits`` function.

    The function performs ``analysis_credits = analysis_credits + delta`` in a
    single statement and returns the new balance. Ledger rows are unique on
    ``(user_id, job_id, direction)``.
    """

    client: Client

    def get_user(self, user_id: UUID) -> UserRecord | None:
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

    def adjust_credits(self, user_id: UUID, delta: int) -> int:
        response = self.client.rpc(
            "adjust_analysis_credits",
            {"p_user_id": str(user_id), "p_delta": delta},
        ).execute()
        if response.data is None:
            raise RuntimeError(f"Failed to adjust credits for user {user_id}")
        data = response.data
        if isinstance(data, list):
            if not data:
                raise RuntimeError(f"Failed to adjust credits for user {user_id}")
            data = data[0]
        if isinstance(data, dict):
            data = data["analysis_credits"]
        return int(data)

    def record_entry(self, entry: LedgerEntry) -> bool:
        response = (
            self.client.table(_LEDGER_TABLE)
            .upsert(
                {
                    "user_id": str(entry.user_id),
                    "job_id": str(entry.job_id),
                    "direction": entry.direction.value,
                    "amount": entry.amount,
                },
                on_conflict="user_id,job_id,direction",
                ignore_duplicates=True,
            )
            .execute()
        )
        return bool(response.data)

    def has_entry(
        self, user_id: UUID, job_id: UUID, direction: LedgerDirection
    ) -> bool:
        response = (
            self.client.table(_LEDGER_TABLE)
            .select("id")
            .eq("user_id", str(user_id))
            .eq("job_id", str(job_id))
            .eq("direction", direction.value)
            .limit(1)
            .execute()
        )
        return bool(response.data)

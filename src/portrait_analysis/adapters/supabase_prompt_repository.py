"""Supabase repository for system prompt overrides."""

from dataclasses import dataclass

from supabase import Client


@dataclass
class SupabasePromptRepository:
    """Reads the active prompt row for a key."""

    client: Client

    def get_active_prompt(self, key: str) -> str | None:
        response = (
            self.client.table("prompts")
            .select("content")
            .eq("key", key)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        content = response.data[0].get("content")
        return content if isinstance(content, str) else None

"""Supabase repository for analysis records."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from portrait_analysis.domain.analysis import (
    AnalysisRecord,
    AnalysisRequest,
    AnalysisStatus,
    AnalysisVariant,
)

_TABLE = "analyses"


@dataclass
class SupabaseAnalysisRepository:
    """Supabase-backed analysis record storage.

    Terminal updates are scoped to PENDING rows, so a record never leaves a
    terminal status once written.
    """

    client: Client

    def create_pending(self, request: AnalysisRequest) -> AnalysisRecord:
        """Insert a PENDING row for a newly admitted request."""
        response = (
            self.client.table(_TABLE)
            .insert(
                {
                    "id": str(request.id),
                    "user_id": str(request.user_id),
                    "variant": request.variant.value,
                    "cost": request.cost,
                    "status": AnalysisStatus.PENDING.value,
                    "photo_refs": request.photo_refs,
                    "chat_id": request.chat_id,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create analysis record")
        return _parse_record(response.data[0])

    def get(self, analysis_id: UUID) -> AnalysisRecord | None:
        response = (
            self.client.table(_TABLE)
            .select(
                "id, user_id, variant, cost, status, result_text, summary_text, "
                "card_image_ref, error_message"
            )
            .eq("id", str(analysis_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_record(response.data[0])

    def complete(
        self,
        analysis_id: UUID,
        result_text: str,
        summary_text: str | None,
        card_image_ref: str | None,
    ) -> None:
        self._finish(
            analysis_id,
            {
                "status": AnalysisStatus.COMPLETED.value,
                "result_text": result_text,
                "summary_text": summary_text,
                "card_image_ref": card_image_ref,
            },
        )

    def fail(self, analysis_id: UUID, error_message: str) -> None:
        self._finish(
            analysis_id,
            {"status": AnalysisStatus.FAILED.value, "error_message": error_message},
        )

    def delete(self, analysis_id: UUID) -> None:
        self.client.table(_TABLE).delete().eq("id", str(analysis_id)).execute()

    def _finish(self, analysis_id: UUID, payload: dict[str, object]) -> None:
        (
            self.client.table(_TABLE)
            .update(payload)
            .eq("id", str(analysis_id))
            .eq("status", AnalysisStatus.PENDING.value)
            .execute()
        )


def _parse_record(row: dict[str, object]) -> AnalysisRecord:
    return AnalysisRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        variant=AnalysisVariant(row["variant"]),
        cost=int(row["cost"]),
        status=AnalysisStatus(row["status"]),
        result_text=row.get("result_text"),
        summary_text=row.get("summary_text"),
        card_image_ref=row.get("card_image_ref"),
        error_message=row.get("error_message"),
    )

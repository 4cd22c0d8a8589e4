"""Persistence port for analysis records."""

from typing import Protocol
from uuid import UUID

from portrait_analysis.domain.analysis import AnalysisRecord, AnalysisRequest


class AnalysisRepository(Protocol):
    """Persistence interface for analysis records."""

    def create_pending(self, request: AnalysisRequest) -> AnalysisRecord:
        """Create a PENDING record for a request."""

    def get(self, analysis_id: UUID) -> AnalysisRecord | None:
        """Return a record by id, if present."""

    def complete(
        self,
        analysis_id: UUID,
        result_text: str,
        summary_text: str | None,
        card_image_ref: str | None,
    ) -> None:
        """Mark a PENDING record COMPLETED."""

    def fail(self, analysis_id: UUID, error_message: str) -> None:
        """Mark a PENDING record FAILED."""

    def delete(self, analysis_id: UUID) -> None:
        """Delete a record."""

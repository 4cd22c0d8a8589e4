"""Domain models for photo analysis jobs."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portrait_analysis.domain.errors import InvalidPhotoCountError


class AnalysisVariant(StrEnum):
    """Analysis subject: one person or a couple."""

    SOLO = "SOLO"
    PAIRED = "PAIRED"

    @property
    def photo_limits(self) -> tuple[int, int]:
        """Inclusive (min, max) photo count accepted for the variant."""
        if self is AnalysisVariant.PAIRED:
            return 1, 2
        return 1, 3

    def validate_photo_count(self, count: int) -> None:
        """Raise when the photo count does not fit the variant."""
        low, high = self.photo_limits
        if not low <= count <= high:
            raise InvalidPhotoCountError(self.value, count, low, high)


class AnalysisStatus(StrEnum):
    """Persisted status of an analysis record."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class AnalysisRequest(BaseModel):
    """Queued analysis job, immutable once enqueued."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: UUID
    user_id: UUID
    photo_refs: list[str]
    chat_id: int
    reply_to_message_id: int | None = None
    cost: int = Field(default=1, ge=1)
    variant: AnalysisVariant = AnalysisVariant.SOLO


@dataclass(frozen=True)
class AnalysisRecord:
    """Persisted analysis outcome."""

    id: UUID
    user_id: UUID
    variant: AnalysisVariant
    cost: int
    status: AnalysisStatus
    result_text: str | None = None
    summary_text: str | None = None
    card_image_ref: str | None = None
    error_message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not AnalysisStatus.PENDING


@dataclass(frozen=True)
class AnalysisSucceeded:
    """Model produced a usable analysis."""

    text: str


@dataclass(frozen=True)
class SentinelDetected:
    """Model reported that no analyzable face is present."""

    raw_text: str


@dataclass(frozen=True)
class AnalysisRefused:
    """Model declined or returned unusable output after the retry."""

    attempts: int


@dataclass(frozen=True)
class AnalysisErrored:
    """Model call failed for a reason other than a refusal."""

    reason: str


GatewayResult = AnalysisSucceeded | SentinelDetected | AnalysisRefused | AnalysisErrored


class JobOutcome(StrEnum):
    """Terminal branch taken by the orchestrator for a job."""

    COMPLETED = "completed"
    FAILED = "failed"
    SENTINEL = "sentinel"
    REFUSED = "refused"
    SKIPPED = "skipped"

"""Domain models for credit ledger entries."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class LedgerDirection(StrEnum):
    """Direction of a balance movement."""

    DEBIT = "DEBIT"
    REFUND = "REFUND"


@dataclass(frozen=True)
class LedgerEntry:
    """One balance movement tied to an analysis job."""

    user_id: UUID
    job_id: UUID
    direction: LedgerDirection
    amount: int

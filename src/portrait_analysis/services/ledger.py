"""Credit ledger for prepaid analysis balance."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from portrait_analysis.domain.errors import (
    InsufficientCreditsError,
    UserNotFoundError,
)
from portrait_analysis.domain.ledger import LedgerDirection, LedgerEntry
from portrait_analysis.domain.users import UserRecord

_logger = logging.getLogger(__name__)


class LedgerRepository(Protocol):
    """Persistence interface for balances and ledger entries."""

    def get_user(self, user_id: UUID) -> UserRecord | None:
        """Return a user with its current balance."""

    def adjust_credits(self, user_id: UUID, delta: int) -> int:
        """Atomically add delta to the balance and return the new value."""

    def record_entry(self, entry: LedgerEntry) -> bool:
        """Insert a ledger entry; return False if the key already exists."""

    def has_entry(
        self, user_id: UUID, job_id: UUID, direction: LedgerDirection
    ) -> bool:
        """Return true when an entry exists for the key."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CreditLedger:
    """Debits and credits a per-user integer balance."""

    repository: LedgerRepository
    clock: Callable[[], datetime] = field(default=_utcnow)

    def debit(self, user_id: UUID, amount: int, *, job_id: UUID | None = None) -> int:
        """Reserve credits; an active subscription skips the debit entirely."""
        user = self._require_user(user_id)
        if user.has_active_subscription(self.clock()):
            _logger.info("Debit skipped for subscribed user %s", user_id)
            return user.analysis_credits
        if user.analysis_credits < amount:
            raise InsufficientCreditsError(
                f"User {user_id} has {user.analysis_credits} credits, needs {amount}"
            )
        if job_id is not None and not self.repository.record_entry(
            LedgerEntry(user_id, job_id, LedgerDirection.DEBIT, amount)
        ):
            _logger.warning("Duplicate debit ignored: user=%s job=%s", user_id, job_id)
            return user.analysis_credits
        balance = self.repository.adjust_credits(user_id, -amount)
        _logger.info("Credits deducted: %s from user %s", amount, user_id)
        return balance

    def credit(
        self, user_id: UUID, amount: int, *, job_id: UUID | None = None
    ) -> int:
        """Unconditionally add credits to the balance."""
        user = self._require_user(user_id)
        if job_id is not None and not self.repository.record_entry(
            LedgerEntry(user_id, job_id, LedgerDirection.REFUND, amount)
        ):
            _logger.warning("Duplicate credit ignored: user=%s job=%s", user_id, job_id)
            return user.analysis_credits
        balance = self.repository.adjust_credits(user_id, amount)
        _logger.info("Credits added: %s to user %s", amount, user_id)
        return balance

    def refund(self, user_id: UUID, amount: int, *, job_id: UUID) -> bool:
        """Return a job's debit at most once; True when credits moved."""
        if not self.repository.has_entry(user_id, job_id, LedgerDirection.DEBIT):
            _logger.info("No debit recorded for job %s, refund skipped", job_id)
            return False
        if not self.repository.record_entry(
            LedgerEntry(user_id, job_id, LedgerDirection.REFUND, amount)
        ):
            _logger.warning("Job %s already refunded", job_id)
            return False
        self.repository.adjust_credits(user_id, amount)
        _logger.info("Refunded %s credits to user %s for job %s", amount, user_id, job_id)
        return True

    def _require_user(self, user_id: UUID) -> UserRecord:
        user = self.repository.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

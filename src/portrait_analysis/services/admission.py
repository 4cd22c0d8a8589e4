"""Admission of new analysis requests."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID, uuid4

from portrait_analysis.domain.analysis import AnalysisRequest, AnalysisVariant
from portrait_analysis.services.analyses import AnalysisRepository
from portrait_analysis.services.ledger import CreditLedger
from portrait_analysis.services.queue import JobQueue

_logger = logging.getLogger(__name__)


@dataclass
class AdmissionService:
    """Reserve credits, create the PENDING record and enqueue the job."""

    ledger: CreditLedger
    analyses: AnalysisRepository
    queue: JobQueue
    default_cost: int = 1

    async def admit(  # noqa: PLR0913
        self,
        *,
        user_id: UUID,
        photo_refs: Sequence[str],
        variant: AnalysisVariant,
        chat_id: int,
        reply_to_message_id: int | None = None,
        cost: int | None = None,
    ) -> AnalysisRequest:
        """Admit a request; on failure after the debit the credits are returned."""
        variant.validate_photo_count(len(photo_refs))
        request = AnalysisRequest(
            id=uuid4(),
            user_id=user_id,
            photo_refs=list(photo_refs),
            chat_id=chat_id,
            reply_to_message_id=reply_to_message_id,
            cost=cost or self.default_cost,
            variant=variant,
        )
        self.ledger.debit(user_id, request.cost, job_id=request.id)
        try:
            self.analyses.create_pending(request)
            await self.queue.enqueue(request)
        except Exception:
            _logger.exception("Failed to admit analysis %s", request.id)
            self.ledger.refund(user_id, request.cost, job_id=request.id)
            try:
                self.analyses.delete(request.id)
            except Exception:
                _logger.exception("Failed to remove record for analysis %s", request.id)
            raise
        _logger.info("Analysis %s admitted for user %s", request.id, user_id)
        return request

"""Analysis orchestrator: one state sequence per dequeued job."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import assert_never

from portrait_analysis.domain.analysis import (
    AnalysisErrored,
    AnalysisRefused,
    AnalysisRequest,
    AnalysisSucceeded,
    AnalysisVariant,
    JobOutcome,
    SentinelDetected,
)
from portrait_analysis.domain.errors import (
    CompositionError,
    InvalidPhotoCountError,
    MediaDownloadError,
)
from portrait_analysis.services.analyses import AnalysisRepository
from portrait_analysis.services.compositor import ImageCompositor
from portrait_analysis.services.gateway import AnalysisGateway
from portrait_analysis.services.heartbeat import TypingHeartbeat
from portrait_analysis.services.ledger import CreditLedger
from portrait_analysis.services.media import MediaFetcher
from portrait_analysis.services.notifications import NotificationBus
from portrait_analysis.services.users import UserRepository

_logger = logging.getLogger(__name__)

REFUSAL_FALLBACK_ERROR = "AI analysis refused"


@dataclass
class _JobProgress:
    terminal_written: bool = False
    notified: bool = False


@dataclass
class AnalysisOrchestrator:
    """Runs fetch, composite, analyze, compensate, persist and notify for a job.

    Every job ends in exactly one of: record COMPLETED, record FAILED, or
    record deleted (sentinel and refusal). Download and validation failures,
    sentinel and refusal return the job's debit; other model failures do not.
    The refund runs before the record write so a persistence failure cannot
    leave the user debited.
    """

    analyses: AnalysisRepository
    users: UserRepository
    ledger: CreditLedger
    media: MediaFetcher
    compositor: ImageCompositor
    gateway: AnalysisGateway
    bus: NotificationBus
    heartbeat_factory: Callable[[int], TypingHeartbeat]

    async def process(self, request: AnalysisRequest) -> JobOutcome:
        """Process one job and return the terminal branch taken."""
        record = self.analyses.get(request.id)
        if record is None or record.is_terminal:
            _logger.warning(
                "Skipping analysis %s: record %s",
                request.id,
                "missing" if record is None else record.status,
            )
            return JobOutcome.SKIPPED

        started = time.monotonic()
        heartbeat = self.heartbeat_factory(request.chat_id)
        heartbeat.start()
        progress = _JobProgress()
        try:
            outcome = await self._run(request, progress)
        except Exception as exc:
            _logger.exception("Photo analysis failed for user %s", request.user_id)
            await self._fail_safely(request, str(exc) or type(exc).__name__, progress)
            outcome = JobOutcome.FAILED
        finally:
            heartbeat.stop()
        _logger.info(
            "Analysis %s finished as %s in %.0fms",
            request.id,
            outcome,
            (time.monotonic() - started) * 1000,
        )
        return outcome

    async def _run(self, request: AnalysisRequest, progress: _JobProgress) -> JobOutcome:
        try:
            request.variant.validate_photo_count(len(request.photo_refs))
        except InvalidPhotoCountError as exc:
            return await self._fail_with_refund(request, str(exc), progress)

        photos: list[Path] = []
        try:
            for ref in request.photo_refs:
                photos.append(await self.media.fetch(ref))
        except MediaDownloadError as exc:
            _logger.error("Media download failed for analysis %s: %s", request.id, exc)
            return await self._fail_with_refund(request, str(exc), progress)

        if request.variant is AnalysisVariant.PAIRED and len(photos) == 2:
            try:
                photos = [await self.compositor.combine_horizontally(photos)]
            except CompositionError:
                _logger.warning(
                    "Combining photos failed for analysis %s, sending them separately",
                    request.id,
                    exc_info=True,
                )

        result = await self.gateway.analyze(photos, request.variant, user_id=request.user_id)
        match result:
            case AnalysisSucceeded(text=text):
                return await self._complete(request, photos[0], text, progress)
            case SentinelDetected():
                return await self._handle_sentinel(request, progress)
            case AnalysisRefused():
                return await self._handle_refusal(request, progress)
            case AnalysisErrored(reason=reason):
                self.analyses.fail(request.id, reason)
                progress.terminal_written = True
                await self._notify_failed(request, reason, progress)
                return JobOutcome.FAILED
            case _:
                assert_never(result)

    async def _complete(
        self,
        request: AnalysisRequest,
        base_photo: Path,
        text: str,
        progress: _JobProgress,
    ) -> JobOutcome:
        summary = await self.gateway.summarize(text, user_id=request.user_id)
        card_ref = None
        if summary:
            card_ref = await self._render_card(request, base_photo, summary)

        self.analyses.complete(request.id, text, summary, card_ref)
        progress.terminal_written = True
        await self.bus.notify_analysis_complete(
            user_id=request.user_id,
            chat_id=request.chat_id,
            message_id=request.reply_to_message_id,
            analysis_id=request.id,
            variant=request.variant,
            description=text,
            summary=summary,
            card_image_ref=card_ref,
        )
        progress.notified = True
        return JobOutcome.COMPLETED

    async def _render_card(
        self, request: AnalysisRequest, base_photo: Path, summary: str
    ) -> str | None:
        avatar: Path | None = None
        try:
            user = self.users.get_user(request.user_id)
            if user is not None:
                avatar = await self.media.fetch_avatar(user.telegram_id)
            card = await self.compositor.render_share_card(base_photo, summary, avatar)
        except Exception:
            _logger.exception("Failed to generate share card for analysis %s", request.id)
            return None
        finally:
            if avatar is not None:
                avatar.unlink(missing_ok=True)
        return str(card)

    async def _handle_sentinel(
        self, request: AnalysisRequest, progress: _JobProgress
    ) -> JobOutcome:
        self.ledger.refund(request.user_id, request.cost, job_id=request.id)
        self.analyses.delete(request.id)
        progress.terminal_written = True
        await self.bus.notify_face_not_detected(
            user_id=request.user_id,
            chat_id=request.chat_id,
            message_id=request.reply_to_message_id,
            analysis_id=request.id,
            variant=request.variant,
        )
        progress.notified = True
        return JobOutcome.SENTINEL

    async def _handle_refusal(
        self, request: AnalysisRequest, progress: _JobProgress
    ) -> JobOutcome:
        try:
            self.ledger.refund(request.user_id, request.cost, job_id=request.id)
            self.analyses.delete(request.id)
            progress.terminal_written = True
        except Exception:
            _logger.exception("Failed to handle AI refusal for analysis %s", request.id)
            if not progress.terminal_written:
                self.analyses.fail(request.id, REFUSAL_FALLBACK_ERROR)
                progress.terminal_written = True
            await self._notify_failed(request, REFUSAL_FALLBACK_ERROR, progress)
            return JobOutcome.FAILED

        await self.bus.notify_ai_refusal(
            user_id=request.user_id,
            chat_id=request.chat_id,
            message_id=request.reply_to_message_id,
            analysis_id=request.id,
            variant=request.variant,
        )
        progress.notified = True
        return JobOutcome.REFUSED

    async def _fail_with_refund(
        self, request: AnalysisRequest, error: str, progress: _JobProgress
    ) -> JobOutcome:
        self.ledger.refund(request.user_id, request.cost, job_id=request.id)
        self.analyses.fail(request.id, error)
        progress.terminal_written = True
        await self._notify_failed(request, error, progress)
        return JobOutcome.FAILED

    async def _notify_failed(
        self, request: AnalysisRequest, error: str, progress: _JobProgress
    ) -> None:
        await self.bus.notify_analysis_failed(
            user_id=request.user_id,
            chat_id=request.chat_id,
            message_id=request.reply_to_message_id,
            analysis_id=request.id,
            variant=request.variant,
            error=error,
        )
        progress.notified = True

    async def _fail_safely(
        self, request: AnalysisRequest, error: str, progress: _JobProgress
    ) -> None:
        if not progress.terminal_written:
            try:
                self.analyses.fail(request.id, error)
                progress.terminal_written = True
            except Exception:
                _logger.exception("Failed to mark analysis %s as failed", request.id)
        if not progress.notified:
            try:
                await self._notify_failed(request, error, progress)
            except Exception:
                _logger.exception("Failed to send failure notification for %s", request.id)

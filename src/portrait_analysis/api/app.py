"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from portrait_analysis.api.admin import router as admin_router
from portrait_analysis.api.models import AnalysisAccepted, AnalysisSubmission
from portrait_analysis.app_logging import configure_logging
from portrait_analysis.containers import AppContainer
from portrait_analysis.domain.errors import (
    InsufficientCreditsError,
    InvalidPhotoCountError,
    UserNotFoundError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        settings = state_container.settings
        if settings.run_worker:
            state_container.worker.start()
        if settings.run_chat_relay:
            state_container.chat_relay.start()
        yield
        if settings.run_chat_relay:
            await state_container.chat_relay.stop()
        if settings.run_worker:
            await state_container.worker.stop()
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post(
        "/analyses",
        status_code=status.HTTP_202_ACCEPTED,
        response_model_by_alias=True,
    )
    async def submit_analysis(
        body: AnalysisSubmission, request: Request
    ) -> AnalysisAccepted:
        """Reserve credits and queue a photo analysis."""
        state_container: AppContainer = request.app.state.container
        try:
            analysis = await state_container.admission_service.admit(
                user_id=body.user_id,
                photo_refs=body.photo_refs,
                variant=body.variant,
                chat_id=body.chat_id,
                reply_to_message_id=body.reply_to_message_id,
                cost=body.cost,
            )
        except InvalidPhotoCountError as exc:
            raise HTTPException(
                status_code=422, detail=str(exc)
            )
        except InsufficientCreditsError as exc:
            raise HTTPException(
                status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc)
            )
        except UserNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
        logger.info("Analysis %s accepted for user %s", analysis.id, body.user_id)
        return AnalysisAccepted(id=analysis.id)

    return app

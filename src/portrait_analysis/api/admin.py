"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from portrait_analysis.api.models import (
    CreditAdjustment,
    CreditBalance,
    FunnelMessageRequest,
    FunnelMessageResponse,
    FunnelStatsResponse,
)
from portrait_analysis.domain.errors import (
    InsufficientCreditsError,
    UserNotFoundError,
)

if TYPE_CHECKING:
    from portrait_analysis.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post(
    "/funnel/messages",
    dependencies=[Depends(require_admin)],
    response_model_by_alias=True,
)
async def send_funnel_message(
    body: FunnelMessageRequest, request: Request
) -> FunnelMessageResponse:
    """Broadcast a message to a funnel cohort."""
    container: AppContainer = request.app.state.container
    result = await container.funnel_broadcaster.broadcast(
        body.target_cohort, body.message
    )
    return FunnelMessageResponse.from_result(result)


@router.get(
    "/funnel/stats",
    dependencies=[Depends(require_admin)],
    response_model_by_alias=True,
)
async def funnel_stats(request: Request) -> FunnelStatsResponse:
    """Return user counts per funnel stage."""
    container: AppContainer = request.app.state.container
    return FunnelStatsResponse.from_stats(container.funnel_broadcaster.stats())


@router.post(
    "/users/{user_id}/credits/debit",
    dependencies=[Depends(require_admin)],
    response_model_by_alias=True,
)
async def debit_credits(
    user_id: UUID, body: CreditAdjustment, request: Request
) -> CreditBalance:
    """Deduct analysis credits from a user."""
    container: AppContainer = request.app.state.container
    try:
        balance = container.ledger.debit(user_id, body.amount, job_id=body.job_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InsufficientCreditsError as exc:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=str(exc)
        )
    return CreditBalance(user_id=user_id, balance=balance)


@router.post(
    "/users/{user_id}/credits/credit",
    dependencies=[Depends(require_admin)],
    response_model_by_alias=True,
)
async def credit_credits(
    user_id: UUID, body: CreditAdjustment, request: Request
) -> CreditBalance:
    """Add analysis credits to a user."""
    container: AppContainer = request.app.state.container
    try:
        balance = container.ledger.credit(user_id, body.amount, job_id=body.job_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return CreditBalance(user_id=user_id, balance=balance)

"""Mismatch API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_current_user, get_item_ids, get_metrics
from src.core.logging import get_logger
from src.db import get_db
from src.db.models import User
from src.schemas import ErrorResponse, MismatchResponse, ReviewDecisionRequest
from src.services.metrics import MetricsRecorder, record_request
from src.services.mismatch_store import MismatchStore
from src.services.review import Actor, ReviewWorkflow

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "",
    response_model=list[MismatchResponse],
    summary="List mismatches for items",
    description=(
        "Return mismatches about the given items. By default only pending "
        "mismatches of non-expired imports are listed."
    ),
)
async def list_mismatches(
    item_ids: list[str] = Depends(get_item_ids),
    include_reviewed: bool = Query(default=False, description="Include accepted/rejected mismatches"),
    include_expired: bool = Query(default=False, description="Include mismatches of expired imports"),
    db: AsyncSession = Depends(get_db),
    metrics: MetricsRecorder = Depends(get_metrics),
) -> list[MismatchResponse]:
    """List mismatches for a set of item ids."""
    store = MismatchStore(db)
    try:
        mismatches = await store.fetch_for_subjects(
            item_ids,
            include_reviewed=include_reviewed,
            include_expired=include_expired,
        )
    finally:
        await record_request(metrics)

    return [MismatchResponse.model_validate(m) for m in mismatches]


@router.put(
    "/{mismatch_id}",
    response_model=MismatchResponse,
    summary="Review a mismatch",
    description="Accept or reject a pending mismatch as the authenticated user.",
    responses={
        404: {"model": ErrorResponse, "description": "Mismatch not found"},
        409: {"model": ErrorResponse, "description": "Mismatch already reviewed"},
        422: {"model": ErrorResponse, "description": "Invalid review status"},
    },
)
async def review_mismatch(
    mismatch_id: UUID,
    decision: ReviewDecisionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    metrics: MetricsRecorder = Depends(get_metrics),
) -> MismatchResponse:
    """Apply one review decision."""
    workflow = ReviewWorkflow(MismatchStore(db), metrics)
    mismatch = await workflow.review(mismatch_id, decision.review_status, Actor.from_user(user))

    logger.info(
        "Review applied",
        mismatch_id=str(mismatch_id),
        review_status=mismatch.review_status,
    )

    return MismatchResponse.model_validate(mismatch)

"""Results page API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import (
    get_current_user,
    get_item_ids,
    get_locale,
    get_metrics,
    get_optional_user,
    get_reference_source,
)
from src.core.config import settings
from src.core.logging import get_logger
from src.db import get_db
from src.db.models import User
from src.schemas import (
    BatchReviewItem,
    BatchReviewResponse,
    ErrorDetail,
    ErrorResponse,
    MismatchResponse,
    ResultsResponse,
    ReviewDecisionRequest,
)
from src.services.enrichment import EnrichmentPipeline
from src.services.metrics import MetricsRecorder, record_request
from src.services.mismatch_store import MismatchStore
from src.services.presentation import assemble_results
from src.services.reference import ReferenceDataSource
from src.services.review import Actor, ReviewOutcome, ReviewWorkflow

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================


def outcome_to_item(outcome: ReviewOutcome) -> BatchReviewItem:
    """Convert a workflow outcome to its API representation."""
    return BatchReviewItem(
        mismatch_id=outcome.mismatch_id,
        ok=outcome.ok,
        mismatch=MismatchResponse.model_validate(outcome.mismatch) if outcome.mismatch else None,
        error=ErrorDetail.from_exception(outcome.error) if outcome.error else None,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "",
    response_model=ResultsResponse,
    response_model_exclude_unset=True,
    summary="Enriched mismatches for items",
    description=(
        "Pending, non-expired mismatches for the given items, grouped by item "
        "and enriched with labels and formatted time values in the request "
        "language. `results` is omitted when nothing matched."
    ),
    responses={502: {"model": ErrorResponse, "description": "Reference data unavailable"}},
)
async def get_results(
    item_ids: list[str] = Depends(get_item_ids),
    locale: str = Depends(get_locale),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    source: ReferenceDataSource = Depends(get_reference_source),
    metrics: MetricsRecorder = Depends(get_metrics),
) -> ResultsResponse:
    """Build the results page payload."""
    try:
        mismatches = await MismatchStore(db).fetch_for_subjects(item_ids)
        enrichment = await EnrichmentPipeline(source).enrich(
            mismatches,
            item_ids,
            locale,
            timeout=settings.enrichment_timeout,
        )
    finally:
        await record_request(metrics)

    return ResultsResponse(**assemble_results(item_ids, enrichment, user))


@router.put(
    "",
    response_model=BatchReviewResponse,
    summary="Review mismatches in bulk",
    description=(
        "Apply review decisions keyed by mismatch id, in request order. Each "
        "decision succeeds or fails on its own; failures are reported per item."
    ),
)
async def review_results(
    decisions: dict[UUID, ReviewDecisionRequest] = Body(
        description="Review decision per mismatch id",
        examples=[{"0190b1b6-7d3e-7c4a-9f51-1c2d3e4f5a6b": {"review_status": "accepted"}}],
    ),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    metrics: MetricsRecorder = Depends(get_metrics),
) -> BatchReviewResponse:
    """Apply a batch of review decisions."""
    workflow = ReviewWorkflow(MismatchStore(db), metrics)
    outcomes = await workflow.review_batch(
        ((mismatch_id, decision.review_status) for mismatch_id, decision in decisions.items()),
        Actor.from_user(user),
    )

    items = [outcome_to_item(outcome) for outcome in outcomes]
    succeeded = sum(1 for item in items if item.ok)

    return BatchReviewResponse(
        items=items,
        succeeded=succeeded,
        failed=len(items) - succeeded,
    )

"""
Review decisions on mismatches.

A review moves one pending mismatch to accepted or rejected. Each successful
review:
- persists the new status and the reviewer (conditional update, pending only)
- appends an AuditLog row in the same transaction
- writes a line to the `mismatch_updates` log channel
- records a review metric

Batches apply the same steps item by item, in input order. Each item commits
on its own; one item's failure is reported as that item's outcome and the
remaining items still run.
"""

import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import inspect

from src.core.exceptions import (
    InvalidReviewStatusError,
    MismatchFinderError,
    ReviewConflictError,
)
from src.core.logging import get_audit_logger, get_logger
from src.db.enums import ReviewStatus, validate_decision
from src.db.models import AuditLog, Mismatch, User
from src.db.session import transaction
from src.services.metrics import MetricsRecorder, record_review
from src.services.mismatch_store import MismatchStore, utcnow

logger = get_logger(__name__)
audit_logger = get_audit_logger()


@dataclass(frozen=True)
class Actor:
    """Identity of the reviewing user, detached from the ORM session."""

    user_id: uuid.UUID
    username: str
    mw_userid: int

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, username=user.username, mw_userid=user.mw_userid)


@dataclass
class ReviewOutcome:
    """Result of one item of a batch review."""

    mismatch_id: uuid.UUID
    mismatch: Mismatch | None = None
    error: MismatchFinderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_decision(review_status: str | ReviewStatus, mismatch_id: uuid.UUID | None = None) -> ReviewStatus:
    """
    Validate a requested review status.

    Raises:
        InvalidReviewStatusError: If the status is not accepted or rejected
    """
    value = review_status.value if isinstance(review_status, ReviewStatus) else review_status
    try:
        return validate_decision(value)
    except ValueError as e:
        raise InvalidReviewStatusError(value, mismatch_id) from e


class ReviewWorkflow:
    """
    Applies review decisions through a MismatchStore.

    Usage:
        workflow = ReviewWorkflow(MismatchStore(db), metrics)
        mismatch = await workflow.review(mismatch_id, "accepted", Actor.from_user(user))
    """

    def __init__(
        self,
        store: MismatchStore,
        metrics: MetricsRecorder,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.metrics = metrics
        self.clock = clock

    async def review(
        self,
        mismatch_id: uuid.UUID,
        decision: str | ReviewStatus,
        actor: Actor,
    ) -> Mismatch:
        """
        Apply one review decision.

        Returns:
            The updated mismatch

        Raises:
            InvalidReviewStatusError: If the decision is not accepted or rejected
            MismatchNotFoundError: If the mismatch does not exist
            ReviewConflictError: If the mismatch is no longer pending
        """
        new_status = parse_decision(decision, mismatch_id)

        # Reject early without opening a write transaction
        mismatch = await self.store.fetch_by_id(mismatch_id)
        old_status = mismatch.review_status
        if not mismatch.is_pending:
            raise ReviewConflictError(mismatch_id, old_status)

        async with transaction(self.store.db):
            updated = await self.store.persist_status(
                mismatch_id,
                new_status.value,
                reviewer_id=actor.user_id,
            )
            entry = AuditLog.create_review(
                mismatch_id=mismatch_id,
                old_status=old_status,
                new_status=new_status.value,
                actor_username=actor.username,
                actor_mw_userid=actor.mw_userid,
                at=self.clock(),
            )
            self.store.append_audit(entry)

        audit_logger.info("Mismatch reviewed", **entry.to_log_fields())
        await record_review(self.metrics)

        return updated

    async def review_batch(
        self,
        decisions: Iterable[tuple[uuid.UUID, str | ReviewStatus]],
        actor: Actor,
    ) -> list[ReviewOutcome]:
        """
        Apply decisions in input order, reporting each outcome independently.

        Already applied decisions stay applied when a later item fails.
        """
        outcomes: list[ReviewOutcome] = []

        for mismatch_id, decision in decisions:
            try:
                mismatch = await self.review(mismatch_id, decision, actor)
            except MismatchFinderError as e:
                logger.info(
                    "Batch review item failed",
                    mismatch_id=str(mismatch_id),
                    error=e.code,
                )
                outcomes.append(ReviewOutcome(mismatch_id=mismatch_id, error=e))
            else:
                outcomes.append(ReviewOutcome(mismatch_id=mismatch_id, mismatch=mismatch))

        # A rolled back item expires every instance in the session
        for outcome in outcomes:
            if outcome.mismatch is not None and inspect(outcome.mismatch).expired_attributes:
                await self.store.db.refresh(outcome.mismatch)

        logger.info(
            "Batch review completed",
            total=len(outcomes),
            succeeded=sum(1 for o in outcomes if o.ok),
            actor=actor.username,
        )
        return outcomes

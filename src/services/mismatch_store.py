"""
Persistence access for mismatches and their import metadata.

The store is the only place that talks SQL about mismatches. Expiry is
evaluated against the joined import metadata on every query, never cached,
and status changes go through a single conditional UPDATE so concurrent
reviews of the same row cannot both succeed.
"""

import uuid
from collections.abc import Callable, Collection, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import (
    MismatchNotFoundError,
    ReviewConflictError,
    UpstreamUnavailableError,
)
from src.core.logging import get_logger
from src.db.enums import ReviewStatus
from src.db.models import AuditLog, ImportMeta, Mismatch

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


@contextmanager
def _store_errors() -> Iterator[None]:
    """Translate connection-level database failures into UpstreamUnavailableError."""
    try:
        yield
    except OperationalError as e:
        logger.error("Mismatch store unavailable", error=str(e))
        raise UpstreamUnavailableError("Mismatch store unavailable") from e


class MismatchStore:
    """
    Read/write access to mismatch records.

    Usage:
        store = MismatchStore(db)
        pending = await store.fetch_for_subjects({"Q42", "Q64"})
        mismatch = await store.persist_status(pending[0].id, "accepted", reviewer_id=user.id)
    """

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        """
        Initialize the store.

        Args:
            db: Request-scoped async session
            clock: Source of "now" for expiry checks
        """
        self.db = db
        self.clock = clock

    async def fetch_for_subjects(
        self,
        item_ids: Collection[str],
        include_reviewed: bool = False,
        include_expired: bool = False,
    ) -> list[Mismatch]:
        """
        Fetch mismatches about the given items.

        Args:
            item_ids: Subject item ids
            include_reviewed: Also return accepted/rejected mismatches
            include_expired: Also return mismatches of expired imports

        Returns:
            Matching mismatches in storage (creation) order
        """
        if not item_ids:
            return []

        query = select(Mismatch).where(Mismatch.item_id.in_(sorted(set(item_ids))))

        if not include_reviewed:
            query = query.where(Mismatch.review_status == ReviewStatus.PENDING.value)

        if not include_expired:
            query = query.join(Mismatch.import_meta).where(ImportMeta.expires >= self.clock())

        query = query.order_by(Mismatch.id)

        with _store_errors():
            result = await self.db.execute(query)
            mismatches = list(result.scalars().all())

        logger.debug(
            "Fetched mismatches",
            item_count=len(item_ids),
            found=len(mismatches),
            include_reviewed=include_reviewed,
            include_expired=include_expired,
        )
        return mismatches

    async def fetch_by_id(self, mismatch_id: uuid.UUID) -> Mismatch:
        """
        Load one mismatch with fresh column values.

        Raises:
            MismatchNotFoundError: If no mismatch has this id
        """
        query = (
            select(Mismatch)
            .where(Mismatch.id == mismatch_id)
            .execution_options(populate_existing=True)
        )
        with _store_errors():
            result = await self.db.execute(query)
            mismatch = result.scalar_one_or_none()

        if mismatch is None:
            raise MismatchNotFoundError(mismatch_id)
        return mismatch

    async def persist_status(
        self,
        mismatch_id: uuid.UUID,
        new_status: str,
        reviewer_id: uuid.UUID | None = None,
    ) -> Mismatch:
        """
        Move a pending mismatch to a new review status.

        The update only matches rows that are still pending, which makes the
        transition one-way even under concurrent reviewers.

        Raises:
            MismatchNotFoundError: If no mismatch has this id
            ReviewConflictError: If the mismatch is no longer pending
        """
        stmt = (
            update(Mismatch)
            .where(
                Mismatch.id == mismatch_id,
                Mismatch.review_status == ReviewStatus.PENDING.value,
            )
            .values(
                review_status=new_status,
                reviewer_id=reviewer_id,
            )
            .execution_options(synchronize_session=False)
        )

        with _store_errors():
            result = await self.db.execute(stmt)

            if result.rowcount == 0:
                current_status = await self.db.scalar(
                    select(Mismatch.review_status).where(Mismatch.id == mismatch_id)
                )
                if current_status is None:
                    raise MismatchNotFoundError(mismatch_id)
                raise ReviewConflictError(mismatch_id, current_status)

        return await self.fetch_by_id(mismatch_id)

    def append_audit(self, entry: AuditLog) -> None:
        """Add an audit entry to the current transaction."""
        self.db.add(entry)

"""
AuditLog model for tracking mismatch review decisions.

Every successful status transition writes exactly one entry, in the same
transaction as the status update, so the audit trail and the mismatch table
can never disagree.

Key features:
- Captures status before and after the review
- Records the acting MediaWiki user by name and numeric id, so entries stay
  meaningful even if the user row is later renamed
- Append-only (immutable records)

Usage:
    async with transaction(session):
        await store.persist_status(mismatch.id, "accepted", reviewer_id=user.id)
        store.append_audit(
            AuditLog.create_review(
                mismatch_id=mismatch.id,
                old_status="pending",
                new_status="accepted",
                actor_username=user.username,
                actor_mw_userid=user.mw_userid,
                at=now,
            )
        )
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base, UUIDMixin


class AuditLog(UUIDMixin, Base):
    """
    Audit log entry for one review decision.

    Attributes:
        id: UUID7 primary key
        mismatch_id: Reviewed mismatch
        old_status: Review status before the decision
        new_status: Review status after the decision
        actor_username: MediaWiki username of the reviewer
        actor_mw_userid: MediaWiki user id of the reviewer
        created_at: When the decision was recorded

    This table is append-only - records should never be updated or deleted.
    """

    mismatch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("mismatches.id", ondelete="CASCADE"),
        nullable=False,
        comment="Reviewed mismatch",
    )

    old_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Review status before the decision",
    )

    new_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Review status after the decision",
    )

    actor_username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="MediaWiki username of the reviewer",
    )

    actor_mw_userid: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="MediaWiki user id of the reviewer",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the decision was recorded",
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(mismatch={self.mismatch_id}, {self.old_status} -> {self.new_status}, "
            f"actor={self.actor_username})>"
        )

    @classmethod
    def create_review(
        cls,
        mismatch_id: uuid.UUID,
        old_status: str,
        new_status: str,
        actor_username: str,
        actor_mw_userid: int,
        at: datetime,
    ) -> "AuditLog":
        """
        Create an audit log entry for a review decision.

        Args:
            mismatch_id: UUID of the reviewed mismatch
            old_status: Status before the review
            new_status: Status after the review
            actor_username: MediaWiki username of the reviewer
            actor_mw_userid: MediaWiki user id of the reviewer
            at: Time of the decision

        Returns:
            New AuditLog instance
        """
        return cls(
            mismatch_id=mismatch_id,
            old_status=old_status,
            new_status=new_status,
            actor_username=actor_username,
            actor_mw_userid=actor_mw_userid,
            created_at=at,
        )

    def to_log_fields(self) -> dict[str, str | int]:
        """Fields written to the review log channel."""
        return {
            "mismatch_id": str(self.mismatch_id),
            "old_status": self.old_status,
            "new_status": self.new_status,
            "username": self.actor_username,
            "mw_userid": self.actor_mw_userid,
            "time": self.created_at.isoformat(),
        }


# === Indexes ===
# All entries for one mismatch, oldest first
Index("ix_audit_logs_mismatch_id", AuditLog.mismatch_id, AuditLog.created_at)

Index("ix_audit_logs_created_at", AuditLog.created_at.desc())

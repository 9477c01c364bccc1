"""
Mismatch model for discrepancies between Wikidata and external datasets.

A mismatch records that, for one item and property, the value in Wikidata
disagrees with the value reported by an external source. Curators review
each mismatch exactly once; review moves it out of the pending queue.

Key features:
- Raw Wikidata value kept verbatim (it is the lookup key for formatted values)
- Optional meta value (calendar model item id for time values)
- Review status stored as an opaque string (see ReviewStatus)
- Import metadata and reviewer eager loaded for serialization
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import Base, TimestampMixin, UUIDMixin
from src.db.enums import MismatchType, ReviewStatus

if TYPE_CHECKING:
    from src.db.models.import_meta import ImportMeta
    from src.db.models.user import User


class Mismatch(UUIDMixin, TimestampMixin, Base):
    """
    A reported discrepancy for one (item, property) pair.

    Attributes:
        id: UUID7 primary key
        item_id: Subject item id in Wikidata (e.g. "Q42")
        statement_guid: GUID of the Wikidata statement, if it exists
        property_id: Property being compared (e.g. "P569")
        wikidata_value: Value in Wikidata; "" means the property is missing
        meta_wikidata_value: Auxiliary qualifier such as a calendar model item id
        external_value: Value reported by the external source
        external_url: Link to the external record
        type: "statement" or "qualifier"
        review_status: pending, accepted or rejected
        reviewer_id: User who reviewed the mismatch
        import_id: Import batch this mismatch belongs to

    Lifecycle:
        Created pending by an import, moved once to accepted or rejected by
        a review. Never deleted by the service.
    """

    # === Subject ===
    item_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Subject item id",
    )

    statement_guid: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Wikidata statement GUID",
    )

    property_id: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Compared property id",
    )

    # === Values ===
    wikidata_value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Value in Wikidata (empty when the property is missing)",
    )

    meta_wikidata_value: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Auxiliary qualifier, e.g. calendar model item id",
    )

    external_value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Value reported by the external source",
    )

    external_url: Mapped[str | None] = mapped_column(
        String(1500),
        nullable=True,
        comment="Link to the external record",
    )

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MismatchType.STATEMENT.value,
        comment="statement or qualifier",
    )

    # === Review ===
    review_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReviewStatus.PENDING.value,
        comment="pending, accepted or rejected",
    )

    reviewer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who reviewed the mismatch",
    )

    import_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("import_meta.id", ondelete="CASCADE"),
        nullable=False,
        comment="Import batch",
    )

    # === Relationships ===
    import_meta: Mapped["ImportMeta"] = relationship(lazy="selectin")

    reviewer: Mapped["User | None"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<Mismatch(id={self.id}, item={self.item_id}, property={self.property_id}, "
            f"status={self.review_status})>"
        )

    @property
    def is_pending(self) -> bool:
        """Check if the mismatch still awaits review."""
        return self.review_status == ReviewStatus.PENDING.value

    @property
    def value_key(self) -> str:
        """Key of this mismatch's value in the formatted values table."""
        return f"{self.meta_wikidata_value or ''}|{self.wikidata_value}"


# === Indexes ===
# Lookups always filter by subject, usually together with status
Index("ix_mismatches_item_status", Mismatch.item_id, Mismatch.review_status)

Index("ix_mismatches_import_id", Mismatch.import_id)

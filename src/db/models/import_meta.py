"""
ImportMeta model for the provenance and expiry of an import batch.

Mismatches are imported in batches by an external process. Every batch
records who uploaded it, where the external values come from, and when the
batch expires. Expired batches stay in the database but their mismatches are
no longer offered for review.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import Base, CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from src.db.models.user import User


class ImportMeta(UUIDMixin, CreatedAtMixin, Base):
    """
    Metadata of one mismatch import.

    Attributes:
        id: UUID7 primary key
        user_id: Importer (FK to users)
        expires: After this instant the import's mismatches are not reviewable
        description: Free-text description shown to curators
        external_source: Name of the external dataset
        external_source_url: Link to the external dataset
        created_at: When the import was uploaded

    Relationships:
        user: The importing user (eager loaded)
    """

    __tablename__ = "import_meta"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Importing user",
    )

    expires: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Expiry of the import's mismatches",
    )

    description: Mapped[str | None] = mapped_column(
        String(350),
        nullable=True,
        comment="Description of the import",
    )

    external_source: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Name of the external dataset",
    )

    external_source_url: Mapped[str | None] = mapped_column(
        String(1500),
        nullable=True,
        comment="URL of the external dataset",
    )

    # === Relationships ===
    user: Mapped["User"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<ImportMeta(id={self.id}, source={self.external_source!r}, expires={self.expires})>"


Index("ix_import_meta_expires", ImportMeta.expires)

"""Initial schema - create mismatch review tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

This migration creates the complete review schema:
- users: MediaWiki accounts that import or review mismatches
- import_meta: Provenance and expiry of each mismatch import
- mismatches: Reported discrepancies between Wikidata and external sources
- audit_logs: Append-only record of review decisions

It also creates:
- All indexes for the read path (item + status, import expiry)
- All constraints for data integrity
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables, indexes, and constraints."""

    # --------------------------------------------------------------------------
    # users table
    # --------------------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column(
            "username",
            sa.String(length=255),
            nullable=False,
            comment="MediaWiki username",
        ),
        sa.Column(
            "mw_userid",
            sa.Integer(),
            nullable=False,
            comment="Numeric MediaWiki user id",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("mw_userid", name="uq_users_mw_userid"),
    )

    # --------------------------------------------------------------------------
    # import_meta table
    # --------------------------------------------------------------------------
    op.create_table(
        "import_meta",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column("user_id", sa.UUID(), nullable=False, comment="Importing user"),
        sa.Column(
            "expires",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="Mismatches of this import are reviewable until this time",
        ),
        sa.Column(
            "description",
            sa.String(length=350),
            nullable=True,
            comment="Free-text description of the import",
        ),
        sa.Column(
            "external_source",
            sa.String(length=100),
            nullable=False,
            comment="Name of the external dataset",
        ),
        sa.Column(
            "external_source_url",
            sa.String(length=1500),
            nullable=True,
            comment="URL of the external dataset",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_import_meta_user_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_import_meta"),
    )
    op.create_index("ix_import_meta_expires", "import_meta", ["expires"], unique=False)

    # --------------------------------------------------------------------------
    # mismatches table
    # --------------------------------------------------------------------------
    op.create_table(
        "mismatches",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column("item_id", sa.String(length=50), nullable=False, comment="Subject item id"),
        sa.Column(
            "statement_guid",
            sa.String(length=255),
            nullable=True,
            comment="Wikidata statement GUID",
        ),
        sa.Column(
            "property_id", sa.String(length=50), nullable=False, comment="Compared property id"
        ),
        sa.Column(
            "wikidata_value",
            sa.Text(),
            nullable=False,
            comment="Value in Wikidata, empty when the property is missing",
        ),
        sa.Column(
            "meta_wikidata_value",
            sa.String(length=50),
            nullable=True,
            comment="Auxiliary value, e.g. the calendar model item",
        ),
        sa.Column(
            "external_value", sa.Text(), nullable=False, comment="Value in the external source"
        ),
        sa.Column(
            "external_url",
            sa.String(length=1500),
            nullable=True,
            comment="Link to the external record",
        ),
        sa.Column(
            "type",
            sa.String(length=20),
            nullable=False,
            comment="statement or qualifier",
        ),
        sa.Column(
            "review_status",
            sa.String(length=20),
            nullable=False,
            comment="pending, accepted or rejected",
        ),
        sa.Column("reviewer_id", sa.UUID(), nullable=True, comment="Reviewing user"),
        sa.Column("import_id", sa.UUID(), nullable=False, comment="Import this row came from"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["reviewer_id"],
            ["users.id"],
            name="fk_mismatches_reviewer_id_users",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["import_id"],
            ["import_meta.id"],
            name="fk_mismatches_import_id_import_meta",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_mismatches"),
    )
    op.create_index(
        "ix_mismatches_item_status",
        "mismatches",
        ["item_id", "review_status"],
        unique=False,
    )
    op.create_index("ix_mismatches_import_id", "mismatches", ["import_id"], unique=False)

    # --------------------------------------------------------------------------
    # audit_logs table (append-only)
    # --------------------------------------------------------------------------
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID7 primary key"),
        sa.Column("mismatch_id", sa.UUID(), nullable=False, comment="Reviewed mismatch"),
        sa.Column(
            "old_status",
            sa.String(length=20),
            nullable=False,
            comment="Review status before the decision",
        ),
        sa.Column(
            "new_status",
            sa.String(length=20),
            nullable=False,
            comment="Review status after the decision",
        ),
        sa.Column(
            "actor_username",
            sa.String(length=255),
            nullable=False,
            comment="MediaWiki username of the reviewer",
        ),
        sa.Column(
            "actor_mw_userid",
            sa.Integer(),
            nullable=False,
            comment="MediaWiki user id of the reviewer",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the decision was recorded",
        ),
        sa.ForeignKeyConstraint(
            ["mismatch_id"],
            ["mismatches.id"],
            name="fk_audit_logs_mismatch_id_mismatches",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index(
        "ix_audit_logs_mismatch_id",
        "audit_logs",
        ["mismatch_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_audit_logs_created_at",
        "audit_logs",
        [sa.text("created_at DESC")],
        unique=False,
    )


def downgrade() -> None:
    """Drop all tables in reverse order."""

    # Drop tables in reverse dependency order
    op.drop_table("audit_logs")
    op.drop_table("mismatches")
    op.drop_table("import_meta")
    op.drop_table("users")

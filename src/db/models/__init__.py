"""
Database models for mismatch review.

This package contains SQLAlchemy models for:
- User: MediaWiki accounts that import or review mismatches
- ImportMeta: Provenance and expiry of an import batch
- Mismatch: A Wikidata / external value discrepancy awaiting review
- AuditLog: Append-only record of review decisions

Usage:
    from src.db.models import Mismatch, ImportMeta, User, AuditLog

All models inherit from the base classes in src.db.base and use:
- UUID7 primary keys (time-sortable, globally unique)
- Timestamp mixins (created_at, updated_at)
"""

from src.db.models.audit_log import AuditLog
from src.db.models.import_meta import ImportMeta
from src.db.models.mismatch import Mismatch
from src.db.models.user import User

__all__ = [
    # Core models
    "Mismatch",
    "ImportMeta",
    "User",
    # Audit models
    "AuditLog",
]

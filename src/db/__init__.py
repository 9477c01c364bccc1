"""
Database package - SQLAlchemy models, session management, and utilities.

Exports:
- Base classes and mixins for model definition
- Session management for FastAPI and standalone usage
- Database lifecycle utilities
- Review status vocabulary
- All database models

Usage:
    from src.db import Base, get_db, transaction
    from src.db import Mismatch, ImportMeta, User, AuditLog
    from src.db import ReviewStatus
"""

from src.db.base import (
    # Engine and session factory
    AsyncSessionLocal,
    # Base classes
    Base,
    # Mixins
    CreatedAtMixin,
    TimestampMixin,
    UUIDMixin,
    # Lifecycle utilities
    dispose_engine,
    engine,
    metadata,
)
from src.db.enums import (
    MismatchType,
    ReviewStatus,
    is_valid_decision,
    validate_decision,
)
from src.db.models import (
    AuditLog,
    ImportMeta,
    Mismatch,
    User,
)
from src.db.session import get_db, transaction

__all__ = [
    # Base classes
    "Base",
    # Mixins
    "UUIDMixin",
    "TimestampMixin",
    "CreatedAtMixin",
    # Enums
    "ReviewStatus",
    "MismatchType",
    # Validation helpers
    "is_valid_decision",
    "validate_decision",
    # Models
    "Mismatch",
    "ImportMeta",
    "User",
    "AuditLog",
    # Engine and factory
    "engine",
    "AsyncSessionLocal",
    "metadata",
    # Session utilities
    "get_db",
    "transaction",
    # Lifecycle
    "dispose_engine",
]

"""
Database session management for FastAPI.

This module provides:
- FastAPI dependency for request-scoped database sessions
- Transaction helper used by the review workflow

Usage in FastAPI:
    @router.get("/mismatches")
    async def list_mismatches(db: AsyncSession = Depends(get_db)):
        store = MismatchStore(db)
        return await store.fetch_for_subjects({"Q42"})
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.base import AsyncSessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session.

    One session per request, closed when the request completes. The session
    is NOT auto-committed; writes go through `transaction()`.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for explicit transaction control.

    Commits on successful completion, rolls back on any exception.

    Usage:
        async with transaction(db):
            await store.persist_status(mismatch_id, "accepted", reviewer=user)
            store.append_audit(entry)
            # Both are committed or neither is committed
    """
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise

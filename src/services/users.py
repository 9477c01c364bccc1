"""Lookup of MediaWiki accounts reported by the upstream auth proxy."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import get_logger
from src.db.models import User

logger = get_logger(__name__)


async def sync_user(db: AsyncSession, username: str, mw_userid: int) -> User:
    """
    Return the local user row for a MediaWiki account, creating it on first sight.

    A changed username (MediaWiki rename) is written back to the row. When a
    concurrent request registers the same account first, its row is returned.
    """
    query = select(User).where(User.mw_userid == mw_userid)
    result = await db.execute(query)
    user = result.scalar_one_or_none()

    if user is None:
        user = User(username=username, mw_userid=mw_userid)
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("User registered concurrently", username=username, mw_userid=mw_userid)
            result = await db.execute(query)
            return result.scalar_one()
        logger.info("Registered user", username=username, mw_userid=mw_userid)
    elif user.username != username:
        user.username = username
        await db.commit()
        logger.info("Updated username", username=username, mw_userid=mw_userid)

    return user

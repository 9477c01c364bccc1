"""Shared FastAPI dependencies for the mismatch endpoints."""

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.logging import bind_context
from src.db import get_db
from src.db.models import User
from src.schemas import parse_item_ids
from src.services.metrics import MetricsRecorder
from src.services.reference import ReferenceDataSource
from src.services.users import sync_user

# =============================================================================
# Application Clients
# =============================================================================


def get_reference_source(request: Request) -> ReferenceDataSource:
    """Reference data source opened by the application lifespan."""
    return request.app.state.reference_source


def get_metrics(request: Request) -> MetricsRecorder:
    """Metrics recorder opened by the application lifespan."""
    return request.app.state.metrics


# =============================================================================
# Acting User
# =============================================================================


async def get_optional_user(
    x_mw_username: str | None = Header(default=None),
    x_mw_userid: int | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """
    Resolve the acting user from the auth proxy headers.

    The proxy in front of the service authenticates against MediaWiki and
    forwards the account as `X-MW-Username` and `X-MW-Userid`. Returns None
    for anonymous requests.
    """
    if not x_mw_username or x_mw_userid is None:
        return None

    user = await sync_user(db, x_mw_username, x_mw_userid)
    bind_context(actor=user.username)
    return user


async def get_current_user(
    user: User | None = Depends(get_optional_user),
) -> User:
    """Require an authenticated acting user."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


# =============================================================================
# Query Parameters
# =============================================================================


def get_item_ids(
    ids: str = Query(description="Item ids separated by '|', e.g. Q42|Q64"),
) -> list[str]:
    """Parse and validate the requested item ids."""
    try:
        return parse_item_ids(ids, settings.max_ids)
    except ValueError as e:
        raise HTTPException(
            status_code=422,
            detail=str(e),
        ) from e


def get_locale(
    uselang: str | None = Query(
        default=None,
        max_length=20,
        pattern=r"^[a-z]{2,3}(-[a-z0-9-]+)?$",
        description="Language code for labels and formatted values",
    ),
) -> str:
    """Display language of the request, defaulting to the configured locale."""
    return uselang or settings.default_locale

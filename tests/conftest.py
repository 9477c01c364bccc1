"""Pytest configuration and shared fixtures."""

import copy
from collections.abc import AsyncGenerator, Awaitable, Callable, Collection, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.api.deps import get_metrics, get_reference_source
from src.db import Base, get_db
from src.db.models import ImportMeta, Mismatch, User
from src.main import create_app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Gregorian calendar item, as stored in meta_wikidata_value
GREGORIAN = "Q1985727"


# =============================================================================
# Test Doubles
# =============================================================================


class RecordingMetrics:
    """MetricsRecorder that remembers every event."""

    def __init__(self) -> None:
        self.events: list[str] = []

    async def record(self, event: str) -> None:
        self.events.append(event)


class StubReferenceSource:
    """
    Deterministic ReferenceDataSource.

    Every call is recorded as (method, argument) so tests can assert which
    lookups happened. Formatting renders "<time> [<calendar item>] (<locale>)".
    """

    def __init__(
        self,
        datatypes: dict[str, str] | None = None,
        labels: dict[str, str] | None = None,
    ) -> None:
        self.datatypes = datatypes or {}
        self.labels = labels or {}
        self.calls: list[tuple[str, Any]] = []

    async def get_property_datatypes(self, property_ids: Collection[str]) -> dict[str, str]:
        self.calls.append(("get_property_datatypes", set(property_ids)))
        return {pid: self.datatypes[pid] for pid in property_ids if pid in self.datatypes}

    async def parse_values(
        self,
        values_by_property: Mapping[str, Sequence[str]],
    ) -> dict[str, dict[str, Any]]:
        self.calls.append(("parse_values", {k: list(v) for k, v in values_by_property.items()}))
        return {
            property_id: {
                raw: {
                    "value": {
                        "time": raw,
                        "precision": 11,
                        "calendarmodel": "http://www.wikidata.org/entity/" + GREGORIAN,
                    },
                    "type": "time",
                }
                for raw in values
                if raw
            }
            for property_id, values in values_by_property.items()
        }

    async def format_values(
        self,
        values_by_property: Mapping[str, Mapping[str, Any]],
        locale: str,
    ) -> dict[str, dict[str, str]]:
        self.calls.append(("format_values", copy.deepcopy(dict(values_by_property))))
        formatted: dict[str, dict[str, str]] = {}
        for property_id, values in values_by_property.items():
            for key, datavalue in values.items():
                calendar = datavalue["value"]["calendarmodel"].rsplit("/", 1)[-1]
                formatted.setdefault(property_id, {})[key] = (
                    f"{datavalue['value']['time']} [{calendar}] ({locale})"
                )
        return formatted

    async def get_labels(self, entity_ids: Collection[str], locale: str) -> dict[str, str]:
        self.calls.append(("get_labels", set(entity_ids)))
        return {eid: self.labels[eid] for eid in entity_ids if eid in self.labels}

    def called(self, method: str) -> list[Any]:
        """Arguments of every call to `method`."""
        return [arg for name, arg in self.calls if name == method]


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async with session_factory() as session:
        yield session


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Create and commit a user."""

    async def factory(username: str = "Curator", mw_userid: int = 1001) -> User:
        user = User(username=username, mw_userid=mw_userid)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return factory


@pytest.fixture
def make_import(db_session: AsyncSession) -> Callable[..., Awaitable[ImportMeta]]:
    """Create and commit an import; expires in 30 days unless told otherwise."""

    async def factory(
        user: User,
        expires: datetime | None = None,
        external_source: str = "Test Dataset",
    ) -> ImportMeta:
        import_meta = ImportMeta(
            user_id=user.id,
            expires=expires or datetime.now(timezone.utc) + timedelta(days=30),
            external_source=external_source,
            external_source_url="https://example.org/dataset",
            description="Mismatches found by the test suite",
        )
        db_session.add(import_meta)
        await db_session.commit()
        await db_session.refresh(import_meta)
        return import_meta

    return factory


@pytest.fixture
def make_mismatch(db_session: AsyncSession) -> Callable[..., Awaitable[Mismatch]]:
    """Create and commit a mismatch."""

    async def factory(
        import_meta: ImportMeta,
        item_id: str = "Q1",
        property_id: str = "P1",
        wikidata_value: str = "+2020-01-01T00:00:00Z",
        meta_wikidata_value: str | None = None,
        external_value: str = "2019-12-31",
        review_status: str = "pending",
    ) -> Mismatch:
        mismatch = Mismatch(
            import_id=import_meta.id,
            item_id=item_id,
            property_id=property_id,
            wikidata_value=wikidata_value,
            meta_wikidata_value=meta_wikidata_value,
            external_value=external_value,
            external_url=f"https://example.org/record/{item_id}",
            review_status=review_status,
        )
        db_session.add(mismatch)
        await db_session.commit()
        await db_session.refresh(mismatch)
        return mismatch

    return factory


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def metrics() -> RecordingMetrics:
    """Recording metrics stub."""
    return RecordingMetrics()


@pytest.fixture
def reference_source() -> StubReferenceSource:
    """Reference data stub with a time property and an item property."""
    return StubReferenceSource(
        datatypes={"P1": "time", "P569": "time", "P31": "wikibase-item"},
        labels={
            "Q1": "Universe",
            "Q2": "Earth",
            "Q5": "human",
            "P1": "point in time",
            "P31": "instance of",
            "P569": "date of birth",
        },
    )


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    reference_source: StubReferenceSource,
    metrics: RecordingMetrics,
) -> FastAPI:
    """Application wired to the test database and stubs."""
    app = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reference_source] = lambda: reference_source
    app.dependency_overrides[get_metrics] = lambda: metrics
    return app


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an asynchronous test client for FastAPI."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Headers the auth proxy sets for a logged-in MediaWiki user."""
    return {"X-MW-Username": "Curator", "X-MW-Userid": "1001"}

"""Shared test fixtures for the async snapshot store and sample results feeds."""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from results_api.core.config import Settings
from results_api.models.base import Base
from results_api.services.snapshot_store import SnapshotStore

CSV_HEADER = (
    "GEMS Contest ID,Contest Sort Seq,District Type,District Type Subheading,District Name,"
    "Ballot Title,Ballots Counted for District,Registered Voters for District,"
    "Percent Turnout for District,Candidate Sort Seq,Ballot Response,Party Preference,"
    "Votes,Percent of Votes"
)


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        results_source_url="https://results.example.com/feed.csv",
        results_refresh_enabled=False,
    )


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine shared by every session in a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
def tick_clock() -> Callable[[], datetime]:
    """Clock that advances one minute per call, so snapshot timestamps never collide."""
    start = datetime(2026, 11, 3, 20, 0, 0, tzinfo=UTC)
    calls = {"n": 0}

    def clock() -> datetime:
        now = start + timedelta(minutes=calls["n"])
        calls["n"] += 1
        return now

    return clock


@pytest.fixture
def snapshot_store(
    session_factory: async_sessionmaker[AsyncSession],
    tick_clock: Callable[[], datetime],
) -> SnapshotStore:
    """Snapshot store over the in-memory database."""
    return SnapshotStore(session_factory, clock=tick_clock)


@pytest.fixture
def sample_csv() -> str:
    """Two contests; the first has two candidates, the second one write-in."""
    rows = [
        '101,1,County,,King County,Mayor,"1000",2000,"50.00",1,Alice Able,Prefers Democratic Party,600,"60.00"',
        '101,1,County,,King County,Mayor,"1000",2000,"50.00",2,Bob Baker,Prefers Republican Party,400,"40.00"',
        "202,2,City,Ward 3,Seattle,Proposition 1,800,1600,50.00,1,Yes,,500,100.00",
    ]
    return "\n".join([CSV_HEADER, *rows]) + "\n"

"""Async database engine and session management.

One pooled SQLAlchemy 2.x engine per process (asyncpg in production,
aiosqlite in tests). Each snapshot store operation checks out its own
session, and with it its own pooled connection, for its duration.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(
    database_url: str,
    schema: str | None,
    pool_size: int,
    max_overflow: int,
    options: dict[str, object],
) -> dict[str, object]:
    """Merge schema routing and pool sizing into caller-supplied engine options."""
    if schema is not None:
        connect_args = options.pop("connect_args", {})
        if not isinstance(connect_args, dict):
            msg = "connect_args must be a dict"
            raise TypeError(msg)
        options["connect_args"] = {**connect_args, "options": f"-c search_path={schema},public"}

    # SQLite engines use a single static connection; pool sizing does not apply
    if options.get("poolclass") is not StaticPool and not database_url.startswith("sqlite"):
        options.setdefault("pool_size", pool_size)
        options.setdefault("max_overflow", max_overflow)
        options.setdefault("pool_pre_ping", True)
    return options


def init_engine(
    database_url: str,
    *,
    schema: str | None = None,
    pool_size: int = 10,
    max_overflow: int = 5,
    **kwargs: object,
) -> AsyncEngine:
    """Create the process-wide engine and session factory.

    Args:
        database_url: SQLAlchemy async connection string.
        schema: PostgreSQL schema to put first on the search path.
        pool_size: Connections kept open for server-backed databases.
        max_overflow: Extra connections allowed beyond ``pool_size``.
        **kwargs: Passed through to ``create_async_engine``.

    Returns:
        The new engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    options = _engine_options(database_url, schema, pool_size, max_overflow, dict(kwargs))
    _engine = create_async_engine(database_url, **options)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine


def get_engine() -> AsyncEngine:
    """Return the process-wide engine.

    Raises:
        RuntimeError: If ``init_engine`` has not been called.
    """
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory.

    Raises:
        RuntimeError: If ``init_engine`` has not been called.
    """
    if _session_factory is None:
        msg = "Session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None

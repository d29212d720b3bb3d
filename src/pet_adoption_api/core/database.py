"""Process-wide async engine and session factory.

``init_engine`` runs once at startup (app lifespan or CLI command);
everything else reaches the engine through the accessors below.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

_POOL_DEFAULTS = {"pool_size": 10, "max_overflow": 5, "pool_pre_ping": True}


def _not_ready(what: str) -> RuntimeError:
    return RuntimeError(f"{what} not initialized. Call init_engine() first.")


def get_engine() -> AsyncEngine:
    """The engine created by ``init_engine``."""
    if _engine is None:
        raise _not_ready("Database engine")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the current engine."""
    if _session_factory is None:
        raise _not_ready("Session factory")
    return _session_factory


def _sqlite_pragmas(dbapi_connection: object, _record: object) -> None:
    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create the engine and session factory for ``database_url``.

    Server databases get pooling defaults, which callers may override
    through ``kwargs``. SQLite gets ``PRAGMA foreign_keys=ON`` on every
    connection, otherwise the RESTRICT rules on user references are
    silently ignored.
    """
    global _engine, _session_factory  # noqa: PLW0603
    sqlite = database_url.startswith("sqlite")
    if not sqlite:
        for key, value in _POOL_DEFAULTS.items():
            kwargs.setdefault(key, value)

    engine = create_async_engine(database_url, **kwargs)
    if sqlite:
        event.listen(engine.sync_engine, "connect", _sqlite_pragmas)

    _engine = engine
    _session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return engine


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory  # noqa: PLW0603
    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()


@asynccontextmanager
async def standalone_session(database_url: str) -> AsyncIterator[AsyncSession]:
    """One session on a short-lived engine, for commands running outside the app."""
    init_engine(database_url)
    try:
        async with get_session_factory()() as session:
            yield session
    finally:
        await dispose_engine()

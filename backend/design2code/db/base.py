"""Declarative base and the process-wide async engine.

One engine per process: ``init_db()`` creates it at startup (and the
tables with it), ``close_db()`` disposes it. PostgreSQL through asyncpg is
the deployed database; SQLite through aiosqlite is accepted for local runs
and tests, with foreign keys switched on so project ownership is enforced
the same way on both.
"""

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from design2code.core.config import Settings, get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def engine_options(url: str, settings: Settings) -> dict:
    """Keyword arguments for create_async_engine for ``url``.

    SQLite keeps SQLAlchemy's default pool; server databases get a sized
    pool with pre-ping so connections dropped by the server are replaced.
    """
    options: dict = {"echo": settings.debug}
    if not is_sqlite(url):
        options["pool_pre_ping"] = True
        options["pool_size"] = settings.database_pool_size
    return options


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def init_db(url: str | None = None) -> AsyncEngine:
    """Create the engine, the session factory and all tables.

    A second call while an engine is open returns that engine unchanged.
    """
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    settings = get_settings()
    db_url = url or settings.database_url

    engine = create_async_engine(db_url, **engine_options(db_url, settings))
    if is_sqlite(db_url):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    # Models register themselves on Base.metadata when imported
    import design2code.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    _engine = engine
    _session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine


async def close_db() -> None:
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory. Raises RuntimeError before init_db()."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory

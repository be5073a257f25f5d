"""
Database engine and session factories.

- ``get_db``: FastAPI dependency yielding one ``AsyncSession`` per request,
  used by every write path.
- ``read_sessions``: opens several independent sessions at once for the
  aggregate reads that fan out with ``asyncio.gather``.  An ``AsyncSession``
  must never be used by two coroutines concurrently, so each parallel read
  gets its own.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager
from typing import List

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backoffice.core.config import settings

if settings.USE_SQLITE:
    # StaticPool makes every connection share the same in-memory database;
    # otherwise each connection would open its own empty one.
    from sqlalchemy.pool import StaticPool

    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # ON DELETE CASCADE (investor → investments / entries / returns) only
    # works in SQLite with foreign keys switched on per connection.
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )

# expire_on_commit=False: attribute access after commit would otherwise
# trigger a lazy load, which async sessions cannot do implicitly.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async session closed after the request."""
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def read_sessions(count: int) -> AsyncIterator[List[AsyncSession]]:
    """Open ``count`` independent sessions and close them all on exit."""
    async with AsyncExitStack() as stack:
        sessions = [await stack.enter_async_context(AsyncSessionLocal()) for _ in range(count)]
        yield sessions

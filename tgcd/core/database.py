"""Database management for the tag store."""

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import Executable, Result, event
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from tgcd.models import Base

logger = logging.getLogger(__name__)

__all__ = ["Base", "ConnectionPool", "DatabaseManager", "PooledConnection"]


def _emit_sqlite_begin(engine: AsyncEngine) -> None:
    """
    Make SQLite transactions start where SQLAlchemy begins them.

    The sqlite3 driver defers `BEGIN` until the first write, which leaves
    earlier reads outside the transaction and breaks savepoints.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN")


class DatabaseManager:
    """Owns the async engine for one database and creates its schema."""

    def __init__(self, database_url: str):
        """
        Initialize the DatabaseManager.

        Args:
            database_url: The database connection URL, e.g. `postgresql+psycopg://...`
                or `sqlite+aiosqlite:///./tgcd.db`.

        """
        self.database_url = database_url
        self._engine: AsyncEngine | None = None
        self._initialize_engine()

    def _initialize_engine(self) -> None:
        """Initialize the async engine."""
        if not self.database_url:
            raise ValueError("DATABASE_URL not set. Cannot initialize database.")

        self._engine = create_async_engine(
            self.database_url,
            # echo=True # Uncomment for debugging SQL statements
        )
        if self._engine.dialect.name == "sqlite":
            _emit_sqlite_begin(self._engine)
        logger.info("Initialized async database engine for (%s)", self._engine.url.render_as_string())

    @property
    def engine(self) -> AsyncEngine:
        """Return the SQLAlchemy AsyncEngine."""
        if self._engine is None:
            raise RuntimeError("Async Database engine has not been initialized.")
        return self._engine

    async def create_db_and_tables(self) -> None:
        """Create all tables that do not exist yet."""
        logger.info("Attempting to create database tables...")
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created (or verified existing).")
        except Exception:
            logger.exception("Error creating tables.")
            raise

    async def dispose(self) -> None:
        """Close every connection held by the engine."""
        if self._engine is not None:
            await self._engine.dispose()


class PooledConnection:
    """
    A connection handed out by `ConnectionPool`.

    Statements issued through `execute` are serialized by a lock, so several
    tasks working for the same request may share one handle.
    """

    def __init__(self, connection: AsyncConnection):
        self.connection = connection
        self._lock = asyncio.Lock()

    @property
    def dialect_name(self) -> str:
        """Return the name of the SQL dialect, e.g. `postgresql` or `sqlite`."""
        return self.connection.dialect.name

    async def execute(self, statement: Executable, parameters: Mapping[str, Any] | None = None) -> Result[Any]:
        """Execute one statement and return its buffered result."""
        async with self._lock:
            return await self.connection.execute(statement, parameters)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["PooledConnection"]:
        """
        Run the enclosed statements in one transaction.

        Commits on normal exit and rolls back if the block raises or is cancelled.
        """
        if self.connection.in_transaction():
            # End the implicit transaction left open by earlier reads.
            await self.connection.rollback()
        async with self.connection.begin():
            yield self

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator["PooledConnection"]:
        """Run the enclosed statements in a nested transaction."""
        async with self.connection.begin_nested():
            yield self

    async def reset(self) -> None:
        """Roll back whatever is still open so the connection can be reused."""
        if self.connection.in_transaction():
            await self.connection.rollback()


class ConnectionPool:
    """
    A fixed number of connections shared by all in-flight requests.

    `acquire` suspends until a connection is idle; waiters are served first in,
    first out. The handle is always returned to the pool, with any open
    transaction rolled back, when the `async with` block exits.
    """

    def __init__(self, engine: AsyncEngine, size: int = 1):
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")
        self.engine = engine
        self.size = size
        self._idle: asyncio.Queue[PooledConnection] = asyncio.Queue(maxsize=size)
        self._handles: list[PooledConnection] = []

    @property
    def is_open(self) -> bool:
        """Return whether `open` has been called and `close` has not."""
        return bool(self._handles)

    @property
    def idle_count(self) -> int:
        """Return the number of connections not currently checked out."""
        return self._idle.qsize()

    async def open(self) -> None:
        """Connect all pool members."""
        if self.is_open:
            raise RuntimeError("Connection pool is already open.")
        try:
            for _ in range(self.size):
                handle = PooledConnection(await self.engine.connect())
                self._handles.append(handle)
                self._idle.put_nowait(handle)
        except SQLAlchemyError:
            await self.close()
            raise
        logger.info("Opened connection pool with %d connection(s)", self.size)

    async def close(self) -> None:
        """Close every pool member, including ones still checked out."""
        handles, self._handles = self._handles, []
        while not self._idle.empty():
            self._idle.get_nowait()
        for handle in handles:
            await handle.connection.close()
        if handles:
            logger.info("Closed connection pool")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[PooledConnection]:
        """Check out a connection for the duration of the block."""
        if not self.is_open:
            raise RuntimeError("Connection pool is not open.")
        handle = await self._idle.get()
        try:
            yield handle
        finally:
            await self._release(handle)

    async def _release(self, handle: PooledConnection) -> None:
        if handle not in self._handles:
            return  # closed while checked out
        try:
            await handle.reset()
        except SQLAlchemyError:
            logger.exception("Rollback failed on release; invalidating connection")
            await handle.connection.invalidate()
        finally:
            self._idle.put_nowait(handle)

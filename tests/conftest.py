import io
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio

from tgcd.core.database import ConnectionPool, DatabaseManager
from tgcd.core.types import Digest
from tgcd.services.tag_store import TagStore


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """A file-backed SQLite database unique to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'tgcd_test.db'}"


@pytest_asyncio.fixture
async def db_manager(database_url: str) -> AsyncGenerator[DatabaseManager, None]:
    manager = DatabaseManager(database_url)
    await manager.create_db_and_tables()
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture
async def pool(db_manager: DatabaseManager) -> AsyncGenerator[ConnectionPool, None]:
    connection_pool = ConnectionPool(db_manager.engine, size=1)
    await connection_pool.open()
    yield connection_pool
    await connection_pool.close()


@pytest_asyncio.fixture
async def tag_store(pool: ConnectionPool) -> TagStore:
    return TagStore(pool)


@pytest.fixture
def make_digest() -> Callable[[str], Digest]:
    """Return a helper that hashes a short string into a Digest."""

    def _make_digest(content: str) -> Digest:
        return Digest.compute(io.BytesIO(content.encode("utf-8")))

    return _make_digest

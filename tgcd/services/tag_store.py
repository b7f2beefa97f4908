"""The tag store engine: the four tag operations and their transaction boundaries."""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError

from tgcd.core.database import ConnectionPool, PooledConnection
from tgcd.core.exceptions import StorageError, TgcdError
from tgcd.core.types import Digest, Tag
from tgcd.functions import tag_functions

logger = logging.getLogger(__name__)


class TagStore:
    """
    Reads and writes tag associations through a `ConnectionPool`.

    Each operation checks out one connection for its whole duration. Writes run
    in a single transaction, so a failure leaves none of that call's rows
    behind. Any database failure surfaces as `StorageError`; nothing is retried.
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[PooledConnection]:
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except TgcdError:
            raise
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"{operation} failed: {e}") from e

    @staticmethod
    async def _read_tags(conn: PooledConnection, digest: Digest) -> set[Tag]:
        names = await tag_functions.select_tag_names(conn, digest)
        try:
            return {Tag.parse(name) for name in names}
        except TgcdError as e:
            raise StorageError(f"Stored tag for {digest} is invalid: {e}") from e

    async def get_tags(self, digest: Digest) -> set[Tag]:
        """Return the tags attached to `digest`. An unknown digest has no tags."""
        async with self._connection("get_tags") as conn:
            return await self._read_tags(conn, digest)

    async def add_tags_to_hash(self, digest: Digest, tags: Iterable[Tag]) -> None:
        """Attach all of `tags` to `digest` atomically. Adding an existing tag is a no-op."""
        tag_list = list(tags)
        async with self._connection("add_tags_to_hash") as conn:
            async with conn.transaction():
                await tag_functions.add_tags_to_hash(conn, digest, tag_list)
        logger.info("Added %d tag(s) to %s", len(tag_list), digest)

    async def get_multiple_tags(self, digests: Sequence[Digest]) -> list[set[Tag]]:
        """
        Return the tags of each digest, aligned with the input.

        The lookups run concurrently on one connection; `result[i]` always
        belongs to `digests[i]` whatever order they complete in.
        """
        if not digests:
            return []
        async with self._connection("get_multiple_tags") as conn:
            # Every lookup finishes before the connection goes back to the pool.
            results = await asyncio.gather(
                *(self._read_tags(conn, digest) for digest in digests), return_exceptions=True
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
        return list(results)

    async def copy_tags(self, src: Digest, dest: Digest) -> None:
        """
        Add every tag of `src` to `dest`.

        Tags already on `dest` are kept. The read of `src` and the write to
        `dest` share one transaction, so the copy reflects a single state of `src`.
        """
        async with self._connection("copy_tags") as conn:
            async with conn.transaction():
                src_tags = sorted(await self._read_tags(conn, src))
                await tag_functions.add_tags_to_hash(conn, dest, src_tags)
        logger.info("Copied %d tag(s) from %s to %s", len(src_tags), src, dest)

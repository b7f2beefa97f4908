"""Relational protocol for digests, tag names and their associations."""

import logging
from typing import Any

from sqlalchemy import CompoundSelect, Insert, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import InstrumentedAttribute

from tgcd.core.database import PooledConnection
from tgcd.core.types import Digest, Tag
from tgcd.models import HashRecord, HashTagLink, TagRecord

logger = logging.getLogger(__name__)


def _insert_ignoring_conflict(dialect_name: str, model: type[Any], values: dict[str, Any]) -> Insert | None:
    """Build an `INSERT ... ON CONFLICT DO NOTHING` for dialects that have one."""
    if dialect_name == "postgresql":
        return postgresql.insert(model).values(values).on_conflict_do_nothing()
    if dialect_name == "sqlite":
        return sqlite.insert(model).values(values).on_conflict_do_nothing()
    return None


async def _insert_or_ignore(conn: PooledConnection, model: type[Any], values: dict[str, Any]) -> None:
    """Insert a row unless it would violate a uniqueness constraint."""
    stmt = _insert_ignoring_conflict(conn.dialect_name, model, values)
    if stmt is not None:
        await conn.execute(stmt)
        return

    # No conflict clause available: let the insert fail inside a savepoint so
    # the enclosing transaction survives.
    try:
        async with conn.savepoint():
            await conn.execute(insert(model).values(values))
    except IntegrityError:
        logger.debug("Row %r already present in %s", values, model.__tablename__)


def postgres_get_or_insert_statement(
    model: type[Any], key_column: InstrumentedAttribute[Any], key: Any
) -> CompoundSelect:
    """Build the single-statement insert-or-select used on PostgreSQL."""
    inserted = (
        postgresql.insert(model)
        .values({key_column.key: key})
        .on_conflict_do_nothing()
        .returning(model.id)
        .cte("inserted")
    )
    return select(inserted.c.id).union_all(select(model.id).where(key_column == key))


async def get_or_insert(
    conn: PooledConnection,
    model: type[Any],
    key_column: InstrumentedAttribute[Any],
    key: Any,
) -> int:
    """
    Return the id of the row whose `key_column` equals `key`, creating it if absent.

    Must run inside a transaction. On PostgreSQL the insert and the lookup are
    one statement; elsewhere they are two statements in the caller's transaction.
    Concurrent calls for the same key converge on one row.
    """
    if conn.dialect_name == "postgresql":
        stmt = postgres_get_or_insert_statement(model, key_column, key)
        row_id = (await conn.execute(stmt)).scalar_one_or_none()
        if row_id is not None:
            return row_id
        # A concurrent writer committed the key after this statement's snapshot
        # was taken; a new statement sees it.
    else:
        await _insert_or_ignore(conn, model, {key_column.key: key})

    return (await conn.execute(select(model.id).where(key_column == key))).scalar_one()


async def get_or_insert_hash(conn: PooledConnection, digest: Digest) -> int:
    """Return the id of the hash row for `digest`, creating it if absent."""
    return await get_or_insert(conn, HashRecord, HashRecord.hash, digest.to_bytes())


async def get_or_insert_tag(conn: PooledConnection, tag: Tag) -> int:
    """Return the id of the tag row for `tag`, creating it if absent."""
    return await get_or_insert(conn, TagRecord, TagRecord.name, tag.name)


async def link_tag(conn: PooledConnection, hash_id: int, tag_id: int) -> None:
    """Associate a hash row with a tag row. Existing associations are left as they are."""
    await _insert_or_ignore(conn, HashTagLink, {"hash_id": hash_id, "tag_id": tag_id})


async def add_tags_to_hash(conn: PooledConnection, digest: Digest, tags: list[Tag]) -> None:
    """Attach every tag in `tags` to `digest`. Must run inside a transaction."""
    hash_id = await get_or_insert_hash(conn, digest)
    for tag in tags:
        tag_id = await get_or_insert_tag(conn, tag)
        await link_tag(conn, hash_id, tag_id)
    logger.debug("Linked %d tag(s) to %s", len(tags), digest)


async def select_tag_names(conn: PooledConnection, digest: Digest) -> list[str]:
    """Return the names of all tags attached to `digest`; empty if the digest is unknown."""
    stmt = (
        select(TagRecord.name)
        .join(HashTagLink, HashTagLink.tag_id == TagRecord.id)
        .join(HashRecord, HashRecord.id == HashTagLink.hash_id)
        .where(HashRecord.hash == digest.to_bytes())
    )
    result = await conn.execute(stmt)
    return list(result.scalars().all())

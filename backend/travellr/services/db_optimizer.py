"""Query and bulk-write helpers over the async ORM session."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import InstrumentedAttribute, load_only

from travellr.db.base import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

DEFAULT_BATCH_SIZE = 1000


@dataclass(slots=True)
class CursorPage(Generic[ModelT]):
    items: list[ModelT]
    next_cursor: Any | None
    has_more: bool


def optimize_query(
    stmt: Select[tuple[ModelT]], *columns: InstrumentedAttribute[Any]
) -> Select[tuple[ModelT]]:
    """Restrict a read-only query to the given columns."""
    if not columns:
        return stmt
    return stmt.options(load_only(*columns))


async def cursor_paginate(
    session: AsyncSession,
    stmt: Select[tuple[ModelT]],
    id_column: InstrumentedAttribute[Any],
    *,
    cursor: Any | None = None,
    limit: int = 20,
) -> CursorPage[ModelT]:
    """Keyset pagination on ``id_column``; fetches one extra row to detect more."""
    if cursor is not None:
        stmt = stmt.where(id_column > cursor)
    stmt = stmt.order_by(id_column.asc()).limit(limit + 1)
    rows = list((await session.execute(stmt)).scalars().all())
    has_more = len(rows) > limit
    items = rows[:limit]
    next_cursor = getattr(items[-1], id_column.key) if has_more and items else None
    return CursorPage(items=items, next_cursor=next_cursor, has_more=has_more)


async def batch_insert(
    session: AsyncSession,
    model: type[ModelT],
    rows: Sequence[Mapping[str, Any]],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> list[ModelT]:
    """Insert ``rows`` in committed chunks.

    A failing chunk propagates its error; earlier chunks stay committed.
    """

    created: list[ModelT] = []
    for start in range(0, len(rows), batch_size):
        batch = [model(**row) for row in rows[start : start + batch_size]]
        session.add_all(batch)
        try:
            await session.commit()
        except Exception:
            logger.exception(
                "Batch insert into %s failed at offset %s", model.__tablename__, start
            )
            await session.rollback()
            raise
        created.extend(batch)
    return created


async def batch_update(
    session: AsyncSession,
    model: type[ModelT],
    updates: Iterable[tuple[Any, Mapping[str, Any]]],
) -> int:
    """Apply ``(primary key, values)`` pairs as one bulk UPDATE."""
    params = [{"id": pk, **values} for pk, values in updates]
    if not params:
        return 0
    await session.execute(update(model), params)
    await session.commit()
    return len(params)


async def ensure_indexes(engine: AsyncEngine) -> None:
    """Create any declared tables and indexes that are missing."""
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

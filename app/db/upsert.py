"""Dialect-aware INSERT ... ON CONFLICT DO UPDATE.

PostgreSQL in production, SQLite in the test suite; both dialects expose the
same ``on_conflict_do_update(index_elements=..., set_=...)`` API.
"""

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def _insert_for(db: AsyncSession):
    return sqlite_insert if db.get_bind().dialect.name == "sqlite" else pg_insert


async def upsert(
    db: AsyncSession,
    model,
    values: dict[str, Any] | list[dict[str, Any]],
    conflict_cols: list[str],
    update_cols: list[str] | None = None,
) -> None:
    """Insert rows, updating ``update_cols`` when the natural key already exists.

    ``update_cols`` defaults to every supplied column outside the conflict key.
    An empty update set turns the statement into ON CONFLICT DO NOTHING.
    """
    rows = values if isinstance(values, list) else [values]
    if not rows:
        return

    insert = _insert_for(db)
    stmt = insert(model).values(rows)
    if update_cols is None:
        update_cols = [c for c in rows[0] if c not in conflict_cols]

    if update_cols:
        stmt = stmt.on_conflict_do_update(
            index_elements=conflict_cols,
            set_={col: stmt.excluded[col] for col in update_cols},
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=conflict_cols)
    await db.execute(stmt)

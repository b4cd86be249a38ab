"""Schema introspection helpers used by the archive purger.

The purger never holds a fixed table list: it asks the live database which
tables expose a given column contract and reflects them into ``Table``
objects, so generic ``select``/``delete`` expressions can be built for any of
them. SQLAlchemy's inspector keeps this dialect-neutral (PostgreSQL in
production, SQLite in tests).
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import Connection, MetaData, Table, inspect
from sqlalchemy.ext.asyncio import AsyncConnection

# Tables owned by tooling rather than the application
_IGNORED_TABLES = frozenset({"alembic_version"})


def _tables_with_columns(sync_conn: Connection, columns: frozenset[str]) -> list[str]:
    inspector = inspect(sync_conn)
    matches = []
    for name in inspector.get_table_names():
        if name in _IGNORED_TABLES:
            continue
        present = {col["name"] for col in inspector.get_columns(name)}
        if columns <= present:
            matches.append(name)
    return sorted(matches)


async def list_tables_with_columns(conn: AsyncConnection, columns: Iterable[str]) -> list[str]:
    """Return the names of every table carrying all of ``columns``."""
    required = frozenset(columns)
    return await conn.run_sync(_tables_with_columns, required)


def _reflect(sync_conn: Connection, names: list[str]) -> list[Table]:
    metadata = MetaData()
    metadata.reflect(bind=sync_conn, only=names)
    wanted = set(names)
    # sorted_tables puts referenced tables first; reverse it so rows holding
    # foreign keys go before the rows they point at.
    return [t for t in reversed(metadata.sorted_tables) if t.name in wanted]


async def reflect_tables(conn: AsyncConnection, names: Iterable[str]) -> list[Table]:
    """Reflect ``names`` into ``Table`` objects, referencing tables first."""
    names = list(names)
    if not names:
        return []
    return await conn.run_sync(_reflect, names)

"""
Dialect-native INSERT ... ON CONFLICT builders.

PostgreSQL in production, SQLite in tests. Both support the same
`on_conflict_do_update` / `on_conflict_do_nothing` surface.
"""

from typing import Any, Dict, List, Sequence, Type

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from adgate.database.models import Base

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: AsyncSession, model: Type[Base]):
    """Return the `insert()` construct matching the session's bound dialect."""
    name = session.get_bind().dialect.name
    try:
        return _INSERTS[name](model)
    except KeyError:
        raise NotImplementedError(f"Upsert not supported for dialect '{name}'") from None


def build_upsert(
    session: AsyncSession,
    model: Type[Base],
    records: List[Dict[str, Any]],
    conflict_keys: Sequence[str],
):
    """
    Build an upsert that overwrites every non-key column on conflict.

    Falls back to DO NOTHING when the records carry only key columns.
    """
    stmt = dialect_insert(session, model).values(records)
    update_cols = [c for c in records[0] if c not in conflict_keys]
    if not update_cols:
        return stmt.on_conflict_do_nothing(index_elements=list(conflict_keys))
    return stmt.on_conflict_do_update(
        index_elements=list(conflict_keys),
        set_={c: stmt.excluded[c] for c in update_cols},
    )


def build_insert_ignore(
    session: AsyncSession,
    model: Type[Base],
    records: List[Dict[str, Any]],
):
    """Plain insert that silently skips rows hitting any unique constraint."""
    return dialect_insert(session, model).values(records).on_conflict_do_nothing()

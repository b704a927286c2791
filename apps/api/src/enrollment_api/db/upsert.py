"""Dialect-native ``INSERT ... ON CONFLICT`` construction."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_insert(session: AsyncSession, model: Any):
    """Return an ``Insert`` for ``model`` that supports ``on_conflict_do_*``."""

    dialect_name = session.get_bind().dialect.name
    try:
        factory = _INSERT_BY_DIALECT[dialect_name]
    except KeyError as error:
        raise RuntimeError(f"Upserts are not supported on the {dialect_name} dialect") from error
    return factory(model)


__all__ = ["upsert_insert"]

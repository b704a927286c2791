from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import sqlite

from enrollment_api.db.upsert import upsert_insert
from enrollment_api.models.enrollment import RewardCard


def _session_on(dialect_name: str):
    bind = SimpleNamespace(dialect=SimpleNamespace(name=dialect_name))
    return SimpleNamespace(get_bind=lambda: bind)


def test_upsert_insert_uses_the_bound_dialect() -> None:
    stmt = upsert_insert(_session_on("sqlite"), RewardCard)

    assert isinstance(stmt, sqlite.Insert)
    assert hasattr(stmt, "on_conflict_do_update")


def test_upsert_insert_rejects_unsupported_dialects() -> None:
    with pytest.raises(RuntimeError, match="mysql"):
        upsert_insert(_session_on("mysql"), RewardCard)

# src/focus_timeline/remote/offline.py

from __future__ import annotations

import itertools
from collections.abc import Iterable, Sequence

from ..core.ports import Filter, Row


def _cell(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def row_matches(row: Row, filters: Sequence[Filter]) -> bool:
    """Evaluate eq/gte/lte PostgREST filters against one row (string comparison)."""
    for column, expr in filters:
        op, _, wanted = expr.partition(".")
        actual = _cell(row.get(column))
        if op == "eq" and actual != wanted:
            return False
        if op == "gte" and not actual >= wanted:
            return False
        if op == "lte" and not actual <= wanted:
            return False
        if op not in ("eq", "gte", "lte"):
            raise ValueError(f"Unsupported filter operator: {op!r}")
    return True


class OfflineTaskStore:
    """
    In-memory RemoteTaskStore used for demos when no Supabase project is configured.

    Behavior:
    - tables are plain lists of dict rows, created on first use
    - rows inserted without an id get a sequential integer id (like serial columns)
    - nothing is persisted; state is lost on exit
    """

    def __init__(self, tables: dict[str, Iterable[Row]] | None = None) -> None:
        self.tables: dict[str, list[Row]] = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self._serial = itertools.count(1)

    def rows(self, table: str) -> list[Row]:
        return self.tables.setdefault(table, [])

    async def select(self, table: str, filters: Sequence[Filter] = ()) -> list[Row]:
        return [dict(r) for r in self.rows(table) if row_matches(r, filters)]

    async def insert(self, table: str, row: Row) -> list[Row]:
        stored = dict(row)
        if stored.get("id") is None:
            stored["id"] = next(self._serial)
        self.rows(table).append(stored)
        return [dict(stored)]

    async def update(self, table: str, filters: Sequence[Filter], patch: Row) -> None:
        for r in self.rows(table):
            if row_matches(r, filters):
                r.update(patch)

    async def delete(self, table: str, filters: Sequence[Filter]) -> None:
        self.tables[table] = [r for r in self.rows(table) if not row_matches(r, filters)]

    async def aclose(self) -> None:
        return None

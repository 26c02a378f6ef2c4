from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from marketsearch.supabase_client import SupabaseError


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _matches(row: dict[str, Any], column: str, expr: str) -> bool:
    value = row.get(column)
    if expr == "not.is.null":
        return value is not None
    op, _, operand = expr.partition(".")
    if op == "eq":
        return value is not None and _as_text(value) == operand
    if op == "gte":
        return value is not None and _as_text(value) >= operand
    if op == "ilike":
        return value is not None and operand.strip("*").lower() in str(value).lower()
    raise AssertionError(f"fake backend does not understand {expr!r}")


class FakeSupabase:
    """In-memory stand-in for SupabaseClient."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.rpc_calls: list[tuple[str, dict[str, Any]]] = []
        self.rpc_handlers: dict[str, Callable[[dict[str, Any]], Any]] = {}
        self.access_token: str | None = None
        self._ids = itertools.count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> str:
        self._clock += timedelta(minutes=1)
        return self._clock.isoformat()

    def for_user(self, access_token: str | None) -> "FakeSupabase":
        self.access_token = access_token
        return self

    def _filtered(self, table: str, filters: dict[str, str] | None) -> list[dict[str, Any]]:
        rows = self.tables.get(table, [])
        return [r for r in rows if all(_matches(r, c, e) for c, e in (filters or {}).items())]

    async def select(self, table, *, select="*", filters=None, order=None, limit=None):
        rows = [dict(r) for r in self._filtered(table, filters)]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda r: r.get(column) or "", reverse=direction == "desc")
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table, row):
        now = self._now()
        stored = {"id": f"{table}-{next(self._ids)}", "created_at": now, "updated_at": now, **row}
        self.tables.setdefault(table, []).append(stored)
        return dict(stored)

    async def update(self, table, values, *, filters):
        out = []
        for row in self._filtered(table, filters):
            row.update(values)
            row["updated_at"] = self._now()
            out.append(dict(row))
        return out

    async def delete(self, table, *, filters):
        doomed = self._filtered(table, filters)
        self.tables[table] = [r for r in self.tables.get(table, []) if r not in doomed]

    async def rpc(self, function, params):
        self.rpc_calls.append((function, params))
        handler = self.rpc_handlers.get(function)
        if handler is None:
            return []
        return handler(params)

    async def aclose(self) -> None:
        return None


def rows_of(n: int) -> list[dict[str, Any]]:
    return [{"id": f"row-{i}"} for i in range(n)]


def failing(status: int = 500, message: str = "boom") -> Callable[[dict[str, Any]], Any]:
    def _raise(params: dict[str, Any]) -> Any:
        raise SupabaseError(status, message)

    return _raise


@pytest.fixture
def fake() -> FakeSupabase:
    return FakeSupabase()

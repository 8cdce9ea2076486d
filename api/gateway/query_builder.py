"""
Pure translation of action payloads into parameterized SQL.

Nothing here touches the database. Every function validates the table and
column names against `gateway/tables.py` before they are placed in SQL text;
only values travel as positional arguments ($1, $2, ...).

Ownership:
- `owner_id` given  -> the row is scoped to that subject (ordinary actions)
- `owner_id` None   -> no scoping (admin actions, gated by role upstream)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, NamedTuple

from .tables import OWNER_COLUMN, QueryValidationError, TableSpec


class Statement(NamedTuple):
    sql: str
    args: list[Any]


class _Params:
    """Positional placeholder allocator shared by all clauses of one statement."""

    def __init__(self, table: TableSpec) -> None:
        self.table = table
        self.args: list[Any] = []

    def bind(self, column: str, value: Any) -> str:
        self.args.append(self.table.coerce(column, value))
        return f"${len(self.args)}"

    def equals(self, conditions: Mapping[str, Any]) -> list[str]:
        return [f"{col} = {self.bind(col, val)}" for col, val in conditions.items()]


def _require_ordinary_write(table: TableSpec) -> None:
    if table.admin_writes_only:
        raise QueryValidationError(f"Table {table.name} is read-only; use an admin action.")
    if not table.has_owner:
        raise QueryValidationError(f"Table {table.name} has no owner column; use an admin action.")


def _owned_row(table: TableSpec, data: Mapping[str, Any], owner_id: str | None) -> dict[str, Any]:
    row = dict(data)
    if owner_id is not None:
        _require_ordinary_write(table)
        # Any caller-supplied user_id is overwritten.
        row[OWNER_COLUMN] = owner_id
    if not row:
        raise QueryValidationError("data must not be empty")
    table.check_columns(row)
    return row


def build_select(
    table: TableSpec,
    *,
    filters: Mapping[str, Any] | None = None,
    order_column: str | None = None,
    ascending: bool = True,
) -> Statement:
    filters = filters or {}
    table.check_columns(filters, what="filter column")

    params = _Params(table)
    sql = f"SELECT * FROM {table.qualified_name}"
    conditions = params.equals(filters)
    if conditions:
        sql += f" WHERE {' AND '.join(conditions)}"

    if order_column is not None:
        table.check_columns([order_column], what="order column")
        sql += f" ORDER BY {order_column} {'ASC' if ascending else 'DESC'}"

    return Statement(sql, params.args)


def build_insert(table: TableSpec, data: Mapping[str, Any], *, owner_id: str | None = None) -> Statement:
    row = _owned_row(table, data, owner_id)

    params = _Params(table)
    placeholders = [params.bind(col, val) for col, val in row.items()]
    sql = (
        f"INSERT INTO {table.qualified_name} ({', '.join(row)}) "
        f"VALUES ({', '.join(placeholders)}) RETURNING *"
    )
    return Statement(sql, params.args)


def build_update(
    table: TableSpec,
    data: Mapping[str, Any],
    match: Mapping[str, Any] | None = None,
    *,
    owner_id: str | None = None,
) -> Statement:
    match = match or {}
    if not data:
        raise QueryValidationError("data must not be empty")
    table.check_columns(data)
    table.check_columns(match, what="match column")
    if owner_id is None and not match:
        raise QueryValidationError("match must not be empty")

    params = _Params(table)
    set_clauses = [f"{col} = {params.bind(col, val)}" for col, val in data.items()]
    conditions = params.equals(match)
    if owner_id is not None:
        _require_ordinary_write(table)
        # Scoping term is always last so `match` can never widen it.
        conditions.append(f"{OWNER_COLUMN} = {params.bind(OWNER_COLUMN, owner_id)}")

    sql = (
        f"UPDATE {table.qualified_name} SET {', '.join(set_clauses)} "
        f"WHERE {' AND '.join(conditions)} RETURNING *"
    )
    return Statement(sql, params.args)


def parse_conflict_columns(on_conflict: str | Iterable[str]) -> list[str]:
    if isinstance(on_conflict, str):
        on_conflict = on_conflict.split(",")
    columns = [c.strip() for c in on_conflict if c and c.strip()]
    if not columns:
        raise QueryValidationError("onConflict must name at least one column")
    return columns


def build_upsert(
    table: TableSpec,
    data: Mapping[str, Any],
    on_conflict: str | Iterable[str],
    *,
    owner_id: str | None = None,
) -> Statement:
    row = _owned_row(table, data, owner_id)
    conflict_columns = parse_conflict_columns(on_conflict)
    table.check_columns(conflict_columns, what="conflict column")

    params = _Params(table)
    placeholders = [params.bind(col, val) for col, val in row.items()]
    sql = (
        f"INSERT INTO {table.qualified_name} ({', '.join(row)}) "
        f"VALUES ({', '.join(placeholders)}) "
        f"ON CONFLICT ({', '.join(conflict_columns)})"
    )

    update_columns = [c for c in row if c not in conflict_columns]
    if update_columns:
        sql += " DO UPDATE SET " + ", ".join(f"{c} = EXCLUDED.{c}" for c in update_columns)
        if owner_id is not None:
            # A conflicting row owned by someone else is left untouched.
            sql += f" WHERE {table.qualified_name}.{OWNER_COLUMN} = EXCLUDED.{OWNER_COLUMN}"
    else:
        sql += " DO NOTHING"

    return Statement(sql + " RETURNING *", params.args)


def build_delete(
    table: TableSpec,
    match: Mapping[str, Any] | None = None,
    *,
    owner_id: str | None = None,
) -> Statement:
    match = match or {}
    table.check_columns(match, what="match column")
    if owner_id is None and not match:
        raise QueryValidationError("match must not be empty")

    params = _Params(table)
    conditions = params.equals(match)
    if owner_id is not None:
        _require_ordinary_write(table)
        conditions.append(f"{OWNER_COLUMN} = {params.bind(OWNER_COLUMN, owner_id)}")

    return Statement(f"DELETE FROM {table.qualified_name} WHERE {' AND '.join(conditions)}", params.args)


def build_children_select(
    child: TableSpec,
    *,
    foreign_key: str,
    sort_column: str,
    parent_ids: list[Any],
) -> Statement:
    child.check_columns([foreign_key, sort_column])
    ids = [child.coerce(foreign_key, pid) for pid in parent_ids]
    sql = (
        f"SELECT * FROM {child.qualified_name} "
        f"WHERE {foreign_key} = ANY($1) ORDER BY {sort_column}"
    )
    return Statement(sql, [ids])

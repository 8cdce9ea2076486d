"""
Gateway action handlers.

Each handler runs its statements sequentially on the request's connection
and returns the success envelope for its action. Ordinary actions are scoped
to `ctx.subject_id`; admin actions reach here only after the role gate and
run unscoped.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from auth.service import AuthContext
from core import db

from . import ddl, hydration, query_builder
from .schemas import BatchQuery, BatchRequest, DeleteRequest, InsertRequest, SelectRequest, UpdateRequest, UpsertRequest
from .tables import get_table

logger = logging.getLogger(__name__)


def _owner_id(request: Any, ctx: AuthContext) -> str | None:
    if request.privileged:
        return None
    return ctx.subject_id


async def _run_select(conn: asyncpg.Connection, request: SelectRequest | BatchQuery) -> Any:
    table = get_table(request.table)
    statement = query_builder.build_select(
        table,
        filters=request.filters,
        order_column=request.order.column if request.order else None,
        ascending=request.order.ascending if request.order else True,
    )
    rows = await db.fetch_all(conn, statement.sql, *statement.args)
    if request.single:
        rows = rows[:1]

    declared = hydration.HYDRATIONS.get(table.name)
    if request.with_steps and declared is not None:
        rows = await hydration.hydrate(conn, declared, rows)

    if request.single:
        return rows[0] if rows else None
    return rows


async def select(conn: asyncpg.Connection, request: SelectRequest) -> dict:
    return {"data": await _run_select(conn, request)}


async def batch(conn: asyncpg.Connection, request: BatchRequest) -> dict:
    results: list[dict[str, Any]] = []
    for query in request.queries:
        # The first failing query aborts the whole batch.
        results.append({"data": await _run_select(conn, query)})
    return {"results": results}


async def insert(conn: asyncpg.Connection, request: InsertRequest, ctx: AuthContext) -> dict:
    statement = query_builder.build_insert(
        get_table(request.table),
        request.data,
        owner_id=_owner_id(request, ctx),
    )
    return {"data": await db.fetch_one(conn, statement.sql, *statement.args)}


async def update(conn: asyncpg.Connection, request: UpdateRequest, ctx: AuthContext) -> dict:
    statement = query_builder.build_update(
        get_table(request.table),
        request.data,
        request.match,
        owner_id=_owner_id(request, ctx),
    )
    return {"data": await db.fetch_one(conn, statement.sql, *statement.args)}


async def upsert(conn: asyncpg.Connection, request: UpsertRequest, ctx: AuthContext) -> dict:
    statement = query_builder.build_upsert(
        get_table(request.table),
        request.data,
        request.on_conflict,
        owner_id=_owner_id(request, ctx),
    )
    return {"data": await db.fetch_one(conn, statement.sql, *statement.args)}


async def delete(conn: asyncpg.Connection, request: DeleteRequest, ctx: AuthContext) -> dict:
    statement = query_builder.build_delete(
        get_table(request.table),
        request.match,
        owner_id=_owner_id(request, ctx),
    )
    await db.execute(conn, statement.sql, *statement.args)
    return {"success": True}


async def setup(conn: asyncpg.Connection) -> dict:
    await ddl.ensure_schema(conn)
    return {"success": True, "message": "Schema created"}

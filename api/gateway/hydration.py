"""
One-to-many hydration of parent rows with their ordered child rows.

Only one relationship is declared: roadmaps -> roadmap_steps.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import asyncpg

from core import db

from . import query_builder
from .tables import TABLES


@dataclass(frozen=True)
class Hydration:
    parent_table: str
    child_table: str
    foreign_key: str
    sort_column: str
    field: str


ROADMAP_STEPS = Hydration(
    parent_table="roadmaps",
    child_table="roadmap_steps",
    foreign_key="roadmap_id",
    sort_column="sort_order",
    field="roadmap_steps",
)

HYDRATIONS: dict[str, Hydration] = {ROADMAP_STEPS.parent_table: ROADMAP_STEPS}


def _sort_key(hydration: Hydration):
    # NULL sort values go last, as in PostgreSQL's ascending order.
    def key(row: dict[str, Any]):
        value = row.get(hydration.sort_column)
        return (value is None, value if value is not None else 0)

    return key


def attach_children(
    hydration: Hydration,
    parents: list[dict[str, Any]],
    children: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """
    Group `children` by foreign key and attach them to every parent.

    Parents without children get an empty list, never a missing field.
    """
    grouped: dict[Any, list[dict[str, Any]]] = {}
    for child in children:
        grouped.setdefault(child[hydration.foreign_key], []).append(child)

    key = _sort_key(hydration)
    return [
        {**parent, hydration.field: sorted(grouped.get(parent["id"], []), key=key)}
        for parent in parents
    ]


async def hydrate(
    conn: asyncpg.Connection,
    hydration: Hydration,
    parents: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    if not parents:
        return []

    statement = query_builder.build_children_select(
        TABLES[hydration.child_table],
        foreign_key=hydration.foreign_key,
        sort_column=hydration.sort_column,
        parent_ids=[p["id"] for p in parents],
    )
    children = await db.fetch_all(conn, statement.sql, *statement.args)
    return attach_children(hydration, parents, children)

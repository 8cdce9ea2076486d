"""
Auth persistence helpers.
"""

from __future__ import annotations

import uuid

import asyncpg

from core import db
from gateway.tables import SCHEMA


async def get_role(conn: asyncpg.Connection, user_id: str) -> str | None:
    try:
        subject = uuid.UUID(str(user_id))
    except ValueError:
        return None

    row = await db.fetch_one(
        conn,
        f"""
        SELECT role
        FROM {SCHEMA}.user_roles
        WHERE user_id = $1
        LIMIT 1
        """,
        subject,
    )
    if row is None:
        return None
    return str(row["role"])

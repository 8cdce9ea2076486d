"""
Idempotent schema bootstrap for the `mentoring` schema.

Every statement is "create if absent", so running `setup` repeatedly is safe.
"""

from __future__ import annotations

import logging

import asyncpg

from core import db

from .tables import SCHEMA, TABLES, TableSpec

logger = logging.getLogger(__name__)


def create_table_sql(table: TableSpec) -> str:
    columns = ",\n  ".join(f"{name} {col.ddl}" for name, col in table.columns.items())
    return f"CREATE TABLE IF NOT EXISTS {table.qualified_name} (\n  {columns}\n);"


def unique_constraints_sql() -> str:
    checks: list[str] = []
    for table in TABLES.values():
        for constraint in table.unique_constraints:
            checks.append(
                f"""
  IF NOT EXISTS (
    SELECT 1 FROM pg_constraint
    WHERE conname = '{constraint.name}'
      AND conrelid = '{table.qualified_name}'::regclass
  ) THEN
    ALTER TABLE {table.qualified_name}
      ADD CONSTRAINT {constraint.name} UNIQUE ({', '.join(constraint.columns)});
  END IF;"""
            )
    if not checks:
        return ""
    return "DO $$ BEGIN" + "".join(checks) + "\nEND $$;"


def schema_sql() -> str:
    parts = [f"CREATE SCHEMA IF NOT EXISTS {SCHEMA};"]
    parts.extend(create_table_sql(table) for table in TABLES.values())
    parts.append(unique_constraints_sql())
    return "\n\n".join(p for p in parts if p)


async def ensure_schema(conn: asyncpg.Connection) -> None:
    # No bind arguments, so asyncpg runs this as one multi-statement script.
    await db.execute(conn, schema_sql())
    logger.info("Schema %s ensured (%d tables)", SCHEMA, len(TABLES))

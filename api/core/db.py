"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. The pool is created lazily on the first
connection attempt and closed on shutdown (see `api/main.py`).

Every request gets exactly one connection through `get_connection()`, and all
statements of that request run sequentially on it.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None
_pool_lock = asyncio.Lock()


class ConfigurationError(RuntimeError):
    pass


def _env(name: str) -> str:
    # Some secret stores keep the "=" of "KEY=value" in the value.
    return os.environ.get(name, "").strip().lstrip("=")


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def connect_kwargs() -> dict[str, Any]:
    """
    Connection coordinates from the environment.

    `DATABASE_URL` wins when set; otherwise the discrete POSTGRESQL_* variables
    are required.
    """
    url = _env("DATABASE_URL")
    if url:
        return {"dsn": _sanitize_database_url(url)}

    host = _env("POSTGRESQL_HOST")
    user = _env("POSTGRESQL_USER")
    password = _env("POSTGRESQL_PASSWORD")
    database = _env("POSTGRESQL_DBNAME")
    if not host or not user or not password or not database:
        raise ConfigurationError("External DB credentials not configured")

    return {
        "host": host,
        "port": _env_int("POSTGRESQL_PORT", 5432),
        "user": user,
        "password": password,
        "database": database,
        "ssl": False,
    }


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is not None:
        return _pool

    async with _pool_lock:
        if _pool is None:
            kwargs = connect_kwargs()
            logger.info(
                "Creating DB pool host=%s database=%s",
                kwargs.get("host", "<dsn>"),
                kwargs.get("database", "<dsn>"),
            )
            _pool = await asyncpg.create_pool(
                **kwargs,
                min_size=_env_int("DB_POOL_MIN_SIZE", 1),
                max_size=_env_int("DB_POOL_MAX_SIZE", 3),
                command_timeout=_env_int("DB_COMMAND_TIMEOUT_S", 30),
            )
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


async def get_connection() -> AsyncIterator[asyncpg.Connection]:
    """
    FastAPI dependency: one pooled connection for the lifetime of a request.
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(conn: asyncpg.Connection, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(conn: asyncpg.Connection, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await conn.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def execute(conn: asyncpg.Connection, sql: str, *args: Any) -> None:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
    """
    await conn.execute(sql, *args)

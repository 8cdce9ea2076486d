"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from auth import dependencies as auth_dependencies
from core import db
from main import app

SUBJECT_A = "11111111-1111-4111-8111-111111111111"
SUBJECT_B = "22222222-2222-4222-8222-222222222222"
ADMIN = "aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa"

TOKENS = {"token-a": SUBJECT_A, "token-b": SUBJECT_B, "token-admin": ADMIN}


class FakeConnection:
    """Records every statement and answers from scripted rows."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.roles: dict[str, str] = {}
        self.acquired = False
        self.released = False
        self.fail_with: Exception | None = None
        self._responses: list[tuple[str, list[dict[str, Any]]]] = []

    def respond(self, needle: str, rows: list[dict[str, Any]]) -> None:
        self._responses.append((needle, rows))

    @property
    def statements(self) -> list[str]:
        return [sql for sql, _ in self.calls if "user_roles" not in sql or "SELECT role" not in sql]

    def _take(self, sql: str, args: tuple[Any, ...]) -> list[dict[str, Any]]:
        self.calls.append((sql, args))
        if "SELECT role" in sql:
            role = self.roles.get(str(args[0]))
            return [{"role": role}] if role else []
        if self.fail_with is not None:
            raise self.fail_with
        for i, (needle, rows) in enumerate(self._responses):
            if needle in sql:
                del self._responses[i]
                return rows
        return []

    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        return self._take(sql, args)

    async def fetchrow(self, sql: str, *args: Any) -> dict[str, Any] | None:
        rows = self._take(sql, args)
        return rows[0] if rows else None

    async def execute(self, sql: str, *args: Any) -> str:
        self._take(sql, args)
        return "OK"


class FakeResolver:
    def __init__(self, tokens: dict[str, str]) -> None:
        self.tokens = tokens
        self.calls: list[str] = []

    async def resolve(self, access_token: str) -> str | None:
        self.calls.append(access_token)
        return self.tokens.get(access_token)


@pytest.fixture
def conn():
    return FakeConnection()


@pytest.fixture
def resolver():
    return FakeResolver(TOKENS)


@pytest.fixture
def client(conn, resolver):
    async def _connection():
        conn.acquired = True
        try:
            yield conn
        finally:
            conn.released = True

    app.dependency_overrides[db.get_connection] = _connection
    app.dependency_overrides[auth_dependencies.get_identity_resolver] = lambda: resolver
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def call(client):
    def _call(action: str, body: dict | None = None, token: str | None = "token-a"):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return client.post(f"/external-db?action={action}", json=body or {}, headers=headers)

    return _call

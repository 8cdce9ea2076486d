"""
Table descriptors for the `mentoring` schema.

Each allow-listed table declares its columns once. The descriptors drive:
- validation of every table/column name that reaches SQL text
- coercion of JSON values into the types asyncpg binds
- the DDL emitted by `setup` (see `gateway/ddl.py`)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

SCHEMA = "mentoring"
OWNER_COLUMN = "user_id"


class QueryValidationError(ValueError):
    pass


@dataclass(frozen=True)
class Column:
    type: str
    ddl: str


@dataclass(frozen=True)
class UniqueConstraint:
    name: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class TableSpec:
    name: str
    columns: dict[str, Column]
    unique_constraints: tuple[UniqueConstraint, ...] = field(default_factory=tuple)
    # Ordinary actions may read but never write these rows.
    admin_writes_only: bool = False

    @property
    def qualified_name(self) -> str:
        return f"{SCHEMA}.{self.name}"

    @property
    def has_owner(self) -> bool:
        return OWNER_COLUMN in self.columns

    def check_columns(self, names, *, what: str = "column") -> None:
        for name in names:
            if name not in self.columns:
                raise QueryValidationError(f"Unknown {what} for table {self.name}: {name}")

    def coerce(self, column: str, value: Any) -> Any:
        if value is None or not isinstance(value, str):
            return value
        col_type = self.columns[column].type
        try:
            if col_type == "uuid":
                return uuid.UUID(value)
            if col_type == "date":
                return date.fromisoformat(value)
            if col_type == "timestamptz":
                return datetime.fromisoformat(value)
        except ValueError as exc:
            raise QueryValidationError(f"Invalid {col_type} value for {self.name}.{column}: {value!r}") from exc
        return value


def _id() -> Column:
    return Column("uuid", "UUID PRIMARY KEY DEFAULT gen_random_uuid()")


def _owner(unique: bool = False) -> Column:
    return Column("uuid", "UUID NOT NULL UNIQUE" if unique else "UUID NOT NULL")


def _created_at() -> Column:
    return Column("timestamptz", "TIMESTAMPTZ NOT NULL DEFAULT now()")


def _text(ddl: str = "TEXT") -> Column:
    return Column("text", ddl)


def _int(ddl: str = "INTEGER") -> Column:
    return Column("integer", ddl)


def _text_array() -> Column:
    return Column("text[]", "TEXT[] DEFAULT '{}'")


_TABLES: tuple[TableSpec, ...] = (
    TableSpec(
        "goals",
        {
            "id": _id(),
            "user_id": _owner(),
            "title": _text("TEXT NOT NULL"),
            "amount": _text(),
            "has_amount": Column("boolean", "BOOLEAN NOT NULL DEFAULT false"),
            "progress": _int("INTEGER NOT NULL DEFAULT 0"),
            "created_at": _created_at(),
        },
    ),
    TableSpec(
        "sessions",
        {
            "id": _id(),
            "user_id": _owner(),
            "session_number": _int("INTEGER NOT NULL"),
            "session_date": _text("TEXT NOT NULL"),
            "session_time": _text("TEXT NOT NULL"),
            "summary": _text("TEXT NOT NULL DEFAULT ''"),
            "steps": _text_array(),
            "files": _text_array(),
            "gradient": _text("TEXT NOT NULL DEFAULT 'from-lime to-lime-dark'"),
            "created_at": _created_at(),
        },
    ),
    TableSpec(
        "protocols",
        {
            "id": _id(),
            "user_id": _owner(),
            "title": _text("TEXT NOT NULL"),
            "description": _text("TEXT NOT NULL DEFAULT ''"),
            "icon": _text("TEXT NOT NULL DEFAULT 'zap'"),
            "color": _text("TEXT NOT NULL DEFAULT 'amber'"),
            "file_name": _text("TEXT NOT NULL DEFAULT ''"),
            "file_url": _text(),
            "created_at": _created_at(),
        },
    ),
    TableSpec(
        "roadmaps",
        {
            "id": _id(),
            "user_id": _owner(),
            "title": _text("TEXT NOT NULL"),
            "description": _text("TEXT NOT NULL DEFAULT ''"),
            "status": _text("TEXT NOT NULL DEFAULT 'В работе'"),
            "file_url": _text(),
            "created_at": _created_at(),
        },
    ),
    TableSpec(
        "roadmap_steps",
        {
            "id": _id(),
            "roadmap_id": Column("uuid", f"UUID NOT NULL REFERENCES {SCHEMA}.roadmaps(id) ON DELETE CASCADE"),
            "text": _text("TEXT NOT NULL"),
            "done": Column("boolean", "BOOLEAN NOT NULL DEFAULT false"),
            "deadline": Column("date", "DATE"),
            "sort_order": _int("INTEGER NOT NULL DEFAULT 0"),
        },
    ),
    TableSpec(
        "volcanoes",
        {
            "id": _id(),
            "user_id": _owner(),
            "name": _text("TEXT NOT NULL"),
            "value": _int("INTEGER NOT NULL DEFAULT 0"),
            "comment": _text("TEXT NOT NULL DEFAULT ''"),
        },
        (UniqueConstraint("uq_volcanoes_user_name", ("user_id", "name")),),
    ),
    TableSpec(
        "progress_metrics",
        {
            "id": _id(),
            "user_id": _owner(),
            "metric_key": _text("TEXT NOT NULL"),
            "label": _text("TEXT NOT NULL"),
            "current_value": _int("INTEGER NOT NULL DEFAULT 0"),
            "previous_value": _int("INTEGER NOT NULL DEFAULT 0"),
        },
        (UniqueConstraint("uq_metrics_user_key", ("user_id", "metric_key")),),
    ),
    TableSpec(
        "route_info",
        {
            "id": _id(),
            "user_id": _owner(),
            "sessions_total": _int("INTEGER NOT NULL DEFAULT 8"),
            "sessions_done": _int("INTEGER NOT NULL DEFAULT 0"),
            "time_weeks": _int("INTEGER NOT NULL DEFAULT 12"),
            "resources": _text_array(),
        },
        (UniqueConstraint("uq_route_user", ("user_id",)),),
    ),
    TableSpec(
        "diary_entries",
        {
            "id": _id(),
            "user_id": _owner(),
            "entry_type": _text("TEXT NOT NULL DEFAULT 'daily'"),
            "entry_date": _text("TEXT NOT NULL"),
            "energy": _int(),
            "text": _text(),
            "intent": _text(),
            "achievements": _text(),
            "lessons": _text(),
            "next_step": _text(),
            "created_at": _created_at(),
        },
    ),
    TableSpec(
        "tracking_questions",
        {
            "id": _id(),
            "user_id": _owner(),
            "question_type": _text("TEXT NOT NULL DEFAULT 'daily'"),
            "question_text": _text("TEXT NOT NULL"),
            "field_type": _text("TEXT NOT NULL DEFAULT 'text'"),
            "sort_order": _int("INTEGER NOT NULL DEFAULT 0"),
        },
    ),
    TableSpec(
        "point_b_questions",
        {
            "id": _id(),
            "user_id": _owner(),
            "question_text": _text("TEXT NOT NULL"),
            "sort_order": _int("INTEGER NOT NULL DEFAULT 0"),
        },
    ),
    TableSpec(
        "point_b_answers",
        {
            "id": _id(),
            "user_id": _owner(),
            "question_id": Column("uuid", "UUID NOT NULL"),
            "answer_text": _text("TEXT NOT NULL DEFAULT ''"),
        },
        (UniqueConstraint("uq_pb_answers_user_q", ("user_id", "question_id")),),
    ),
    TableSpec(
        "point_b_results",
        {
            "id": _id(),
            "user_id": _owner(),
            "achieved": _text("TEXT NOT NULL DEFAULT ''"),
            "analysis": _text("TEXT NOT NULL DEFAULT ''"),
            "not_achieved": _text("TEXT NOT NULL DEFAULT ''"),
        },
    ),
    TableSpec(
        "profiles",
        {
            "id": _id(),
            "user_id": _owner(unique=True),
            "email": _text("TEXT NOT NULL DEFAULT ''"),
            "full_name": _text("TEXT NOT NULL DEFAULT ''"),
            "avatar_url": _text(),
            "is_blocked": Column("boolean", "BOOLEAN NOT NULL DEFAULT false"),
            "created_at": _created_at(),
            "updated_at": Column("timestamptz", "TIMESTAMPTZ NOT NULL DEFAULT now()"),
        },
    ),
    TableSpec(
        "user_roles",
        {
            "id": _id(),
            "user_id": _owner(unique=True),
            "role": _text("TEXT NOT NULL DEFAULT 'user'"),
        },
        admin_writes_only=True,
    ),
)

# Insertion order matters for DDL: roadmap_steps references roadmaps.
TABLES: dict[str, TableSpec] = {t.name: t for t in _TABLES}


def get_table(name: Any) -> TableSpec:
    if not isinstance(name, str) or name not in TABLES:
        raise QueryValidationError(f"Table not allowed: {name}")
    return TABLES[name]

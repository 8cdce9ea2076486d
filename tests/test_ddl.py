"""Tests for the schema bootstrap script."""

from gateway import ddl
from gateway.tables import TABLES


def test_every_allow_listed_table_is_created_idempotently():
    sql = ddl.schema_sql()
    assert sql.startswith("CREATE SCHEMA IF NOT EXISTS mentoring;")
    for name in TABLES:
        assert f"CREATE TABLE IF NOT EXISTS mentoring.{name} (" in sql
    assert "DROP" not in sql


def test_parent_table_is_created_before_its_children():
    sql = ddl.schema_sql()
    assert sql.index("mentoring.roadmaps (") < sql.index("mentoring.roadmap_steps (")


def test_unique_constraints_are_added_only_when_absent():
    sql = ddl.unique_constraints_sql()
    for name, columns in [
        ("uq_volcanoes_user_name", "(user_id, name)"),
        ("uq_metrics_user_key", "(user_id, metric_key)"),
        ("uq_route_user", "(user_id)"),
        ("uq_pb_answers_user_q", "(user_id, question_id)"),
    ]:
        assert f"WHERE conname = '{name}'" in sql
        assert f"ADD CONSTRAINT {name} UNIQUE {columns}" in sql
    assert sql.count("IF NOT EXISTS") == 4


def test_column_definitions_keep_defaults():
    sql = ddl.create_table_sql(TABLES["route_info"])
    assert "sessions_total INTEGER NOT NULL DEFAULT 8" in sql
    assert "resources TEXT[] DEFAULT '{}'" in sql
    assert "id UUID PRIMARY KEY DEFAULT gen_random_uuid()" in sql

"""Tests for attaching roadmap steps to roadmaps."""

import asyncio

from conftest import FakeConnection
from gateway import hydration

R1 = "44444444-4444-4444-8444-444444444444"
R2 = "55555555-5555-4555-8555-555555555555"


def test_children_are_grouped_and_sorted():
    parents = [{"id": R1}, {"id": R2}]
    children = [
        {"id": "a", "roadmap_id": R2, "sort_order": 1},
        {"id": "b", "roadmap_id": R1, "sort_order": 2},
        {"id": "c", "roadmap_id": R1, "sort_order": 0},
        {"id": "d", "roadmap_id": R1, "sort_order": 1},
    ]
    result = hydration.attach_children(hydration.ROADMAP_STEPS, parents, children)
    assert [s["id"] for s in result[0]["roadmap_steps"]] == ["c", "d", "b"]
    assert [s["id"] for s in result[1]["roadmap_steps"]] == ["a"]


def test_parent_without_children_gets_empty_list():
    result = hydration.attach_children(hydration.ROADMAP_STEPS, [{"id": R1, "title": "Plan"}], [])
    assert result == [{"id": R1, "title": "Plan", "roadmap_steps": []}]


def test_parents_are_not_mutated():
    parent = {"id": R1}
    hydration.attach_children(hydration.ROADMAP_STEPS, [parent], [])
    assert parent == {"id": R1}


def test_hydrate_issues_one_child_query():
    conn = FakeConnection()
    conn.respond("FROM mentoring.roadmap_steps", [{"id": "s", "roadmap_id": R2, "sort_order": 0}])

    result = asyncio.run(hydration.hydrate(conn, hydration.ROADMAP_STEPS, [{"id": R1}, {"id": R2}]))

    assert len(conn.calls) == 1
    assert result[0]["roadmap_steps"] == []
    assert result[1]["roadmap_steps"][0]["id"] == "s"


def test_hydrate_without_parents_skips_query():
    conn = FakeConnection()
    assert asyncio.run(hydration.hydrate(conn, hydration.ROADMAP_STEPS, [])) == []
    assert conn.calls == []

"""Tests for record projection."""

from atlas.listing.models import Page
from atlas.listing.presets import NESTED_TASK_FIELDS, get_schema
from atlas.listing.projector import project_fields, project_page, project_record


class TestProjectFields:
    """Tests for project_fields."""

    def test_keeps_requested_fields(self) -> None:
        record = {"id": "p1", "name": "Atlas", "secret": "x"}
        assert project_fields(record, ["id", "name"]) == {"id": "p1", "name": "Atlas"}

    def test_missing_fields_omitted(self) -> None:
        assert project_fields({"id": "p1"}, ["id", "description"]) == {"id": "p1"}

    def test_source_not_mutated(self) -> None:
        record = {"id": "p1", "name": "Atlas"}
        project_fields(record, ["id"])
        assert record == {"id": "p1", "name": "Atlas"}


class TestProjectRecord:
    """Nested collections always get their fixed projection."""

    def test_nested_tasks_reduced(self) -> None:
        record = {
            "id": "p1",
            "name": "Atlas",
            "tasks": [
                {
                    "id": "t1",
                    "title": "Docs",
                    "status": "todo",
                    "priority": "low",
                    "description": "long text",
                    "assignedTo": "dev_1",
                }
            ],
        }
        projected = project_record(record, ["id"], get_schema("project").nested)
        assert projected["id"] == "p1"
        assert "name" not in projected
        assert list(projected["tasks"][0]) == list(NESTED_TASK_FIELDS)

    def test_empty_nested_collection_kept(self) -> None:
        projected = project_record(
            {"id": "p1", "knowledge": []}, ["id"], get_schema("project").nested
        )
        assert projected["knowledge"] == []

    def test_absent_nested_collection_omitted(self) -> None:
        projected = project_record({"id": "p1"}, ["id"], get_schema("project").nested)
        assert "tasks" not in projected


class TestProjectPage:
    """Tests for project_page."""

    def test_total_carried(self) -> None:
        page = Page(items=[{"id": "a", "x": 1}, {"id": "b", "x": 2}], total=42)
        projected = project_page("task", page, ["id"])
        assert projected.kind == "task"
        assert projected.total == 42
        assert projected.items == [{"id": "a"}, {"id": "b"}]

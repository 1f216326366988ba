"""Tests for the listing service (end-to-end pipeline runs)."""

import asyncio
import json
import logging
from unittest.mock import AsyncMock

import pytest

from atlas.listing import service
from atlas.listing.errors import InternalError, NotFoundError
from atlas.listing.models import Page, QuerySpec
from atlas.listing.storage.memory import MemoryRecordStore


async def _seeded_store(store: MemoryRecordStore | None = None) -> MemoryRecordStore:
    store = store or MemoryRecordStore()
    await store.initialize()
    projects = [
        {"id": "p1", "name": "Atlas", "description": "Dashboard", "status": "active",
         "taskType": "generation", "updatedAt": "2026-03-03T00:00:00+00:00",
         "urls": [{"title": "Repo", "url": "https://example.com/atlas"}]},
        {"id": "p2", "name": "Beacon", "description": "Archive", "status": "archived",
         "taskType": "research", "updatedAt": "2026-03-02T00:00:00+00:00"},
        {"id": "p3", "name": "Compass", "description": "Planning", "status": "active",
         "taskType": "analysis", "updatedAt": "2026-03-01T00:00:00+00:00"},
    ]
    for project in projects:
        await store.save_project(project)
    for task in (
        {"id": "t1", "projectId": "p1", "title": "Presets", "status": "completed",
         "priority": "high", "description": "Field presets", "assignedTo": "dev_1"},
        {"id": "t2", "projectId": "p1", "title": "Renderer", "status": "in_progress",
         "priority": "low"},
        {"id": "t3", "projectId": "p1", "title": "Benchmarks", "status": "todo",
         "priority": "critical"},
        {"id": "t4", "projectId": "p2", "title": "Wrap up", "status": "completed",
         "priority": "medium"},
    ):
        await store.save_task(task)
    await store.save_knowledge(
        {"id": "k1", "projectId": "p1", "text": "Totals", "domain": "technical", "tags": ["a"]}
    )
    await store.save_knowledge(
        {"id": "k2", "projectId": "p2", "text": "Budgets", "domain": "research", "tags": []}
    )
    return store


class SlowStatsStore(MemoryRecordStore):
    """Stats for earlier projects complete last."""

    DELAYS = {"p1": 0.03, "p2": 0.0, "p3": 0.01}

    async def project_stats(self, project_id: str) -> dict:
        await asyncio.sleep(self.DELAYS.get(project_id, 0.0))
        return await super().project_stats(project_id)


class TestListProjects:
    """Tests for service.list_projects."""

    @pytest.mark.asyncio
    async def test_default_listing(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects({}, store=store)
        assert encoded.format == "structured"
        data = json.loads(encoded.body)
        assert [p["id"] for p in data["projects"]] == ["p1", "p2", "p3"]
        assert list(data["projects"][0]) == ["id", "name", "status", "taskType", "createdAt"]
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 3, "totalPages": 1}

    @pytest.mark.asyncio
    async def test_multi_value_status_is_ignored(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects({"status": "archived,active"}, store=store)
        assert encoded.pagination.total == 3

    @pytest.mark.asyncio
    async def test_single_status_filters(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects({"status": "archived"}, store=store)
        assert [p["id"] for p in encoded.data["projects"]] == ["p2"]

    @pytest.mark.asyncio
    async def test_invalid_explicit_field_dropped(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects({"fields": "id,bogusField"}, store=store)
        assert all(list(p) == ["id"] for p in encoded.data["projects"])

    @pytest.mark.asyncio
    async def test_no_matches_narrative(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects(
            {"search": "nothing-like-this", "format": "narrative"}, store=store
        )
        assert encoded.format == "narrative"
        assert encoded.pagination.total_pages == 0
        assert "No project entities matched the specified criteria" in encoded.body

    @pytest.mark.asyncio
    async def test_no_matches_structured_and_compact(self) -> None:
        store = await _seeded_store()
        raw = {"search": "nothing-like-this"}
        structured = await service.list_projects(raw, store=store)
        compact = await service.list_projects({**raw, "format": "compact"}, store=store)
        assert structured.data["projects"] == []
        assert structured.data["pagination"]["totalPages"] == 0
        assert compact.body.startswith("projects[0]:")
        assert "totalPages: 0" in compact.body

    @pytest.mark.asyncio
    async def test_pagination(self) -> None:
        store = await _seeded_store()
        first = await service.list_projects({"limit": "2"}, store=store)
        second = await service.list_projects({"limit": "2", "page": "2"}, store=store)
        assert len(first.data["projects"]) == 2
        assert [p["id"] for p in second.data["projects"]] == ["p3"]
        assert second.pagination.total_pages == 2

    @pytest.mark.asyncio
    async def test_malformed_params_degrade(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects(
            {"page": "abc", "limit": "-5", "sortBy": "bogus", "format": "xml"}, store=store
        )
        assert encoded.format == "structured"
        assert encoded.pagination.page == 1
        assert encoded.pagination.limit == 1

    @pytest.mark.asyncio
    async def test_stats_merged_in_order(self) -> None:
        store = await _seeded_store(SlowStatsStore())
        encoded = await service.list_projects({"includeStats": "true"}, store=store)
        totals = {p["id"]: p["stats"]["totalTasks"] for p in encoded.data["projects"]}
        assert [p["id"] for p in encoded.data["projects"]] == ["p1", "p2", "p3"]
        assert totals == {"p1": 3, "p2": 1, "p3": 0}

    @pytest.mark.asyncio
    async def test_include_tasks_uses_nested_projection(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects(
            {"includeTasks": "true", "verbosity": "minimal"}, store=store
        )
        atlas = encoded.data["projects"][0]
        assert atlas["id"] == "p1"
        assert len(atlas["tasks"]) == 3
        assert all(set(t) <= {"id", "title", "status", "priority"} for t in atlas["tasks"])
        assert encoded.data["projects"][2]["tasks"] == []

    @pytest.mark.asyncio
    async def test_compact_format(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects({"format": "compact"}, store=store)
        assert encoded.format == "compact"
        assert encoded.body.startswith("projects[3]{id,name,status,taskType,createdAt}:")

    @pytest.mark.asyncio
    async def test_default_format(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_projects({}, store=store, default_format="narrative")
        assert encoded.body.startswith("Project Portfolio")

    @pytest.mark.asyncio
    async def test_provider_failure_masked(self, caplog: pytest.LogCaptureFixture) -> None:
        store = await _seeded_store()
        store.list_projects = AsyncMock(side_effect=RuntimeError("db down: secret dsn"))
        with (
            caplog.at_level(logging.ERROR, logger="atlas.service"),
            pytest.raises(InternalError) as exc_info,
        ):
            await service.list_projects({"status": "active"}, store=store, request_id="r1")

        assert exc_info.value.message == "Failed to fetch projects"
        assert exc_info.value.status_code == 500
        assert "secret" not in str(exc_info.value)
        assert "list_projects failed" in caplog.text

    @pytest.mark.asyncio
    async def test_stats_failure_masked(self) -> None:
        store = await _seeded_store()
        store.project_stats = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(InternalError):
            await service.list_projects({"includeStats": "1"}, store=store)


class TestGetProject:
    """Tests for service.get_project."""

    @pytest.mark.asyncio
    async def test_defaults_to_full(self) -> None:
        store = await _seeded_store()
        encoded = await service.get_project("p1", {}, store=store)
        project = encoded.data["projects"][0]
        assert project["description"] == "Dashboard"
        assert project["urls"] == [{"title": "Repo", "url": "https://example.com/atlas"}]
        assert encoded.pagination.to_dict() == {
            "page": 1, "limit": 1, "total": 1, "totalPages": 1,
        }

    @pytest.mark.asyncio
    async def test_verbosity_applies_to_project(self) -> None:
        store = await _seeded_store()
        encoded = await service.get_project("p1", {"verbosity": "minimal"}, store=store)
        assert list(encoded.data["projects"][0]) == ["id", "name", "status", "taskType"]

    @pytest.mark.asyncio
    async def test_include_children(self) -> None:
        store = await _seeded_store()
        encoded = await service.get_project(
            "p1", {"includeTasks": "true", "includeKnowledge": "true"}, store=store
        )
        project = encoded.data["projects"][0]
        assert {t["id"] for t in project["tasks"]} == {"t1", "t2", "t3"}
        assert "description" not in project["tasks"][0]
        assert project["knowledge"] == [{"id": "k1", "domain": "technical", "tags": ["a"]}]

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        store = await _seeded_store()
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_project("nope", {}, store=store)
        assert exc_info.value.to_dict() == {
            "error": {
                "code": "NOT_FOUND",
                "message": "Project not found: nope",
                "details": {"projectId": "nope"},
            }
        }


class TestListTasks:
    """Tests for service.list_tasks."""

    @pytest.mark.asyncio
    async def test_priority_sort(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_tasks(
            "p1", {"sortBy": "priority", "sortDirection": "asc"}, store=store
        )
        assert [t["id"] for t in encoded.data["tasks"]] == ["t2", "t1", "t3"]

    @pytest.mark.asyncio
    async def test_status_filter(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_tasks("p1", {"status": "completed"}, store=store)
        assert [t["id"] for t in encoded.data["tasks"]] == ["t1"]

    @pytest.mark.asyncio
    async def test_unknown_project(self) -> None:
        store = await _seeded_store()
        with pytest.raises(NotFoundError) as exc_info:
            await service.list_tasks("nope", {}, store=store)
        assert exc_info.value.status_code == 404
        assert exc_info.value.details == {"projectId": "nope"}

    @pytest.mark.asyncio
    async def test_narrative_glyphs(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_tasks(
            "p1", {"format": "narrative", "status": "completed"}, store=store
        )
        assert "[C] [!!] Presets" in encoded.body


class TestListKnowledge:
    """Tests for service.list_knowledge."""

    @pytest.mark.asyncio
    async def test_all_projects(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_knowledge(None, {}, store=store)
        assert encoded.pagination.total == 2

    @pytest.mark.asyncio
    async def test_scoped(self) -> None:
        store = await _seeded_store()
        encoded = await service.list_knowledge("p1", {"verbosity": "full"}, store=store)
        items = encoded.data["knowledge"]
        assert [k["id"] for k in items] == ["k1"]
        assert items[0]["projectName"] == "Atlas"

    @pytest.mark.asyncio
    async def test_unknown_project(self) -> None:
        store = await _seeded_store()
        with pytest.raises(NotFoundError):
            await service.list_knowledge("nope", {}, store=store)


class TestMetrics:
    """Tests for project and dashboard metrics."""

    @pytest.mark.asyncio
    async def test_project_metrics(self) -> None:
        store = await _seeded_store()
        metrics = await service.get_project_metrics("p1", store=store)
        assert metrics["projectId"] == "p1"
        assert metrics["totalTasks"] == 3
        assert metrics["completionPercentage"] == 33
        assert metrics["totalKnowledge"] == 1
        assert metrics["project"]["name"] == "Atlas"

    @pytest.mark.asyncio
    async def test_project_metrics_not_found(self) -> None:
        store = await _seeded_store()
        with pytest.raises(NotFoundError):
            await service.get_project_metrics("nope", store=store)

    @pytest.mark.asyncio
    async def test_dashboard_metrics(self) -> None:
        store = await _seeded_store()
        metrics = await service.get_dashboard_metrics(store=store)
        assert metrics["overview"]["totalProjects"] == 3
        assert metrics["statusDistribution"] == {"active": 2, "archived": 1}
        recent = metrics["recentProjects"]
        assert [p["id"] for p in recent] == ["p1", "p2", "p3"]
        assert all(set(p) <= set(service.RECENT_PROJECT_FIELDS) for p in recent)


class TestRunPipeline:
    """The pure pipeline is deterministic."""

    def test_identical_inputs_identical_output(self) -> None:
        spec = QuerySpec(kind="task", verbosity="minimal", format="compact")
        page = Page(items=[{"id": "t1", "title": "A", "status": "todo", "priority": "low"}], total=1)
        first = service.run_pipeline(spec, page)
        second = service.run_pipeline(spec, page)
        assert first.body == second.body

    def test_stats_length_mismatch(self) -> None:
        spec = QuerySpec(kind="project")
        page = Page(items=[{"id": "p1"}], total=1)
        with pytest.raises(ValueError):
            service.run_pipeline(spec, page, stats=[])

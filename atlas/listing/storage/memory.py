"""In-memory storage backend.

Provides a fast, ephemeral store for testing and development.
All data is lost when the process exits.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from ..models import Page, QuerySpec, Record
from . import RecordStore

logger = logging.getLogger(__name__)

PRIORITY_RANK = {"low": 0, "medium": 1, "high": 2, "critical": 3}

PROJECT_SEARCH_FIELDS = ("name", "description")
KNOWLEDGE_SEARCH_FIELDS = ("text",)


class MemoryRecordStore(RecordStore):
    """In-memory record storage for testing and development.

    Stores records in plain dicts. Filtering, sorting, pagination and
    aggregation are done in memory.
    """

    def __init__(self) -> None:
        self._projects: dict[str, Record] = {}
        self._tasks: dict[str, Record] = {}
        self._knowledge: dict[str, Record] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Initialize the in-memory data structures."""
        self._projects.clear()
        self._tasks.clear()
        self._knowledge.clear()

    async def close(self) -> None:
        """No-op for in-memory storage."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_project(self, project: Record) -> None:
        self._projects[str(project["id"])] = _with_timestamps(project)

    async def save_task(self, task: Record) -> None:
        self._tasks[str(task["id"])] = _with_timestamps(task)

    async def save_knowledge(self, item: Record) -> None:
        self._knowledge[str(item["id"])] = _with_timestamps(item)

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def get_project(self, project_id: str) -> Record | None:
        """Retrieve a project from memory."""
        return self._projects.get(project_id)

    async def list_projects(self, query: QuerySpec) -> Page:
        records = _apply_filters(
            list(self._projects.values()), query.filters, PROJECT_SEARCH_FIELDS
        )
        return _paginate(records, query)

    async def list_tasks(self, project_id: str, query: QuerySpec) -> Page:
        scoped = [t for t in self._tasks.values() if t.get("projectId") == project_id]
        return _paginate(_apply_filters(scoped, query.filters, ()), query)

    async def list_knowledge(self, project_id: str | None, query: QuerySpec) -> Page:
        scoped = [
            self._with_project_name(k)
            for k in self._knowledge.values()
            if project_id is None or k.get("projectId") == project_id
        ]
        records = _apply_filters(scoped, query.filters, KNOWLEDGE_SEARCH_FIELDS)
        return _paginate(records, query)

    async def project_stats(self, project_id: str) -> dict[str, Any]:
        tasks = [t for t in self._tasks.values() if t.get("projectId") == project_id]
        knowledge = [k for k in self._knowledge.values() if k.get("projectId") == project_id]
        stats = _task_counts(tasks)
        stats["totalKnowledge"] = len(knowledge)
        return stats

    async def dashboard_metrics(self) -> dict[str, Any]:
        projects = list(self._projects.values())
        status_distribution: Counter[str] = Counter()
        type_distribution: Counter[str] = Counter()
        for p in projects:
            if p.get("status"):
                status_distribution[p["status"]] += 1
            if p.get("taskType"):
                type_distribution[p["taskType"]] += 1

        task_metrics = _task_counts(list(self._tasks.values()))
        completion = task_metrics.pop("completionPercentage")
        task_metrics["overallCompletionRate"] = completion

        recent = sorted(projects, key=lambda p: str(p.get("updatedAt") or ""), reverse=True)[:5]

        return {
            "overview": {
                "totalProjects": len(projects),
                "activeProjects": status_distribution.get("active", 0),
                "pendingProjects": status_distribution.get("pending", 0),
                "inProgressProjects": status_distribution.get("in-progress", 0),
                "completedProjects": status_distribution.get("completed", 0),
                "archivedProjects": status_distribution.get("archived", 0),
            },
            "taskMetrics": task_metrics,
            "knowledgeMetrics": {"totalKnowledge": len(self._knowledge)},
            "statusDistribution": dict(status_distribution),
            "typeDistribution": dict(type_distribution),
            "recentProjects": recent,
        }

    def _with_project_name(self, item: Record) -> Record:
        if item.get("projectName"):
            return item
        project = self._projects.get(str(item.get("projectId")))
        if project is None:
            return item
        return {**item, "projectName": project.get("name")}


# ======================================================================
# Module-level helpers (filtering, sorting, stats)
# ======================================================================


def _with_timestamps(record: Record) -> Record:
    now = datetime.now(UTC).isoformat()
    data = dict(record)
    data.setdefault("createdAt", now)
    data.setdefault("updatedAt", data["createdAt"])
    return data


def _apply_filters(
    records: list[Record],
    filters: dict[str, str | list[str]],
    search_fields: tuple[str, ...],
) -> list[Record]:
    """Apply QuerySpec filters to a list of records.

    Scalar filters are equality matches, ``tags`` requires every listed tag,
    and ``search`` is a case-insensitive substring match over
    ``search_fields``.
    """
    result: list[Record] = []

    for r in records:
        matched = True
        for name, value in filters.items():
            if name == "search":
                haystack = " ".join(str(r.get(f) or "") for f in search_fields).lower()
                matched = str(value).lower() in haystack
            elif isinstance(value, list):
                record_values = r.get(name) or []
                matched = all(v in record_values for v in value)
            else:
                matched = r.get(name) == value
            if not matched:
                break
        if matched:
            result.append(r)

    return result


def _sort_records(records: list[Record], sort_field: str, direction: str) -> list[Record]:
    """Sort records by the given field; priority sorts by rank."""
    reverse = direction == "desc"

    def sort_key(r: Record) -> tuple[Any, str]:
        value = r.get(sort_field)
        if sort_field == "priority":
            return (PRIORITY_RANK.get(str(value), -1), str(r.get("id", "")))
        return ("" if value is None else str(value), str(r.get("id", "")))

    return sorted(records, key=sort_key, reverse=reverse)


def _paginate(records: list[Record], query: QuerySpec) -> Page:
    ordered = _sort_records(records, query.sort_by, query.sort_direction)
    return Page(
        items=ordered[query.offset : query.offset + query.limit],
        total=len(ordered),
    )


def _task_counts(tasks: list[Record]) -> dict[str, Any]:
    by_status: Counter[str] = Counter(str(t.get("status") or "") for t in tasks)
    total = len(tasks)
    completed = by_status.get("completed", 0)
    return {
        "totalTasks": total,
        "completedTasks": completed,
        "inProgressTasks": by_status.get("in_progress", 0) + by_status.get("in-progress", 0),
        "todoTasks": by_status.get("todo", 0),
        "backlogTasks": by_status.get("backlog", 0),
        "completionPercentage": round(completed / total * 100) if total else 0,
    }

"""Record store abstraction layer.

Defines the RecordStore ABC that every storage backend implements. The
listing pipeline never talks to a store; the listing service fetches a page
through this interface and hands the result to the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..models import Page, QuerySpec, Record


class RecordStore(ABC):
    """Abstract storage for projects, tasks and knowledge items.

    Implementations apply the filters, sort and pagination described by a
    QuerySpec and return one page plus the total match count.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (connections, schema, fixtures).

        Called once at startup or on first use.
        """
        ...

    @abstractmethod
    async def get_project(self, project_id: str) -> Record | None:
        """Get a single project by ID.

        Returns:
            Project record, or None if not found.
        """
        ...

    @abstractmethod
    async def list_projects(self, query: QuerySpec) -> Page:
        """List projects matching the query filters."""
        ...

    @abstractmethod
    async def list_tasks(self, project_id: str, query: QuerySpec) -> Page:
        """List the tasks of one project."""
        ...

    @abstractmethod
    async def list_knowledge(self, project_id: str | None, query: QuerySpec) -> Page:
        """List knowledge items, optionally scoped to one project."""
        ...

    @abstractmethod
    async def project_stats(self, project_id: str) -> dict[str, Any]:
        """Compute task and knowledge counts for one project.

        Returns:
            Dict with totalTasks, completedTasks, inProgressTasks, todoTasks,
            backlogTasks, completionPercentage and totalKnowledge.
        """
        ...

    @abstractmethod
    async def dashboard_metrics(self) -> dict[str, Any]:
        """Compute store-wide counts and distributions."""
        ...

    @abstractmethod
    async def save_project(self, project: Record) -> None:
        """Insert or replace a project (keyed by ``id``)."""
        ...

    @abstractmethod
    async def save_task(self, task: Record) -> None:
        """Insert or replace a task (keyed by ``id``)."""
        ...

    @abstractmethod
    async def save_knowledge(self, item: Record) -> None:
        """Insert or replace a knowledge item (keyed by ``id``)."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Clean up connections. Override if the backend holds resources."""


__all__ = ["RecordStore"]

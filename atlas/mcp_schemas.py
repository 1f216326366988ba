"""Pydantic input schemas for MCP tool definitions.

These models define the JSON Schema that MCP clients see when discovering
tools. Numeric parameters carry no bounds: out-of-range values are clamped by
the listing pipeline exactly as HTTP query parameters are, so both front
doors accept the same inputs and produce the same projections.
"""

from typing import Literal

from pydantic import BaseModel, Field


class ListingOptionsInput(BaseModel):
    """Paging, projection and encoding options shared by every listing tool."""

    page: int | None = Field(
        default=None,
        description="Page number, starting at 1 (clamped to 1-1000, default 1)",
    )
    limit: int | None = Field(
        default=None,
        description="Results per page (clamped to 1-100, default 20)",
    )
    sort_direction: Literal["asc", "desc"] | None = Field(
        default=None,
        description="Sort direction (default desc)",
    )
    verbosity: Literal["minimal", "standard", "full"] | None = Field(
        default=None,
        description="Field preset: minimal (identity fields), standard, or full (every field)",
    )
    fields: list[str] | None = Field(
        default=None,
        description="Explicit field list; overrides verbosity. Unknown names are ignored",
    )
    format: Literal["structured", "compact", "narrative"] | None = Field(
        default=None,
        description=(
            "Output encoding: structured (JSON), compact (token-efficient text), "
            "or narrative (human-readable summary)"
        ),
    )


class ProjectListInput(ListingOptionsInput):
    """Input for the atlas_project_list tool."""

    sort_by: Literal["name", "status", "taskType", "createdAt", "updatedAt"] | None = Field(
        default=None,
        description="Sort field (default updatedAt)",
    )
    status: str | None = Field(
        default=None,
        description="Filter by status: active, pending, in-progress, completed, archived",
    )
    task_type: str | None = Field(
        default=None,
        description="Filter by project task type (e.g. research, generation, analysis)",
    )
    search: str | None = Field(
        default=None,
        description="Case-insensitive substring match over name and description",
    )
    include_stats: bool = Field(
        default=False,
        description="Attach task/knowledge statistics to each project",
    )
    include_tasks: bool = Field(
        default=False,
        description="Embed each project's tasks (id, title, status, priority)",
    )
    include_knowledge: bool = Field(
        default=False,
        description="Embed each project's knowledge items (id, domain, tags)",
    )


class ProjectGetInput(BaseModel):
    """Input for the atlas_project_get tool."""

    project_id: str = Field(
        ...,
        min_length=1,
        description="ID of the project to fetch",
    )
    verbosity: Literal["minimal", "standard", "full"] | None = Field(
        default=None,
        description="Field preset for the project (default full)",
    )
    fields: list[str] | None = Field(
        default=None,
        description="Explicit field list; overrides verbosity",
    )
    format: Literal["structured", "compact", "narrative"] | None = Field(
        default=None,
        description="Output encoding: structured, compact, or narrative",
    )
    include_stats: bool = Field(
        default=False,
        description="Attach task/knowledge statistics",
    )
    include_tasks: bool = Field(
        default=False,
        description="Embed the project's tasks",
    )
    include_knowledge: bool = Field(
        default=False,
        description="Embed the project's knowledge items",
    )


class TaskListInput(ListingOptionsInput):
    """Input for the atlas_task_list tool."""

    project_id: str = Field(
        ...,
        min_length=1,
        description="ID of the project whose tasks to list",
    )
    sort_by: Literal["title", "status", "priority", "createdAt", "updatedAt"] | None = Field(
        default=None,
        description="Sort field (default createdAt); priority sorts by rank",
    )
    status: str | None = Field(
        default=None,
        description="Filter by status: backlog, todo, in_progress, completed",
    )
    priority: str | None = Field(
        default=None,
        description="Filter by priority: low, medium, high, critical",
    )
    assigned_to: str | None = Field(
        default=None,
        description="Filter by assignee ID",
    )
    tags: list[str] | None = Field(
        default=None,
        description="Only tasks carrying every listed tag",
    )
    task_type: str | None = Field(
        default=None,
        description="Filter by task type",
    )


class KnowledgeListInput(ListingOptionsInput):
    """Input for the atlas_knowledge_list tool."""

    project_id: str | None = Field(
        default=None,
        description="Scope to one project; omit to list across all projects",
    )
    sort_by: Literal["domain", "createdAt", "updatedAt"] | None = Field(
        default=None,
        description="Sort field (default createdAt)",
    )
    domain: str | None = Field(
        default=None,
        description="Filter by knowledge domain",
    )
    tags: list[str] | None = Field(
        default=None,
        description="Only items carrying every listed tag",
    )
    search: str | None = Field(
        default=None,
        description="Case-insensitive substring match over the item text",
    )

"""Listing request/response models.

Per-request value objects passed between the pipeline stages. None of them
outlive a single request.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

Verbosity = Literal["minimal", "standard", "full"]
ResponseFormat = Literal["structured", "compact", "narrative"]
SortDirection = Literal["asc", "desc"]

VERBOSITY_LEVELS: tuple[str, ...] = ("minimal", "standard", "full")
RESPONSE_FORMATS: tuple[str, ...] = ("structured", "compact", "narrative")

Record = dict[str, Any]


@dataclass(frozen=True, slots=True)
class QuerySpec:
    """Validated listing query.

    Attributes:
        kind: Entity kind (project, task, knowledge).
        page: 1-based page number.
        limit: Page size.
        sort_by: Sortable field name for the kind.
        sort_direction: asc or desc.
        filters: Filter name to a single value or a list of values.
        verbosity: Field preset name.
        explicit_fields: Caller supplied field override, if any.
        format: Output encoding.
        include_stats: Attach per-record statistics (projects).
        include_tasks: Embed each project's tasks.
        include_knowledge: Embed each project's knowledge items.
    """

    kind: str
    page: int = 1
    limit: int = 20
    sort_by: str = "createdAt"
    sort_direction: SortDirection = "desc"
    filters: dict[str, str | list[str]] = field(default_factory=dict)
    verbosity: Verbosity = "standard"
    explicit_fields: tuple[str, ...] | None = None
    format: ResponseFormat = "structured"
    include_stats: bool = False
    include_tasks: bool = False
    include_knowledge: bool = False

    @property
    def offset(self) -> int:
        """Zero-based index of the first record on this page."""
        return (self.page - 1) * self.limit


@dataclass(slots=True)
class Page:
    """One page of records as returned by a record store."""

    items: list[Record]
    total: int


@dataclass(frozen=True, slots=True)
class PaginationInfo:
    """Pagination metadata attached to every encoded response."""

    page: int
    limit: int
    total: int
    total_pages: int

    def to_dict(self) -> dict[str, int]:
        """Convert to dict for JSON response."""
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


@dataclass(slots=True)
class ProjectedPage:
    """A page whose records have been reduced to the resolved field set."""

    kind: str
    items: list[Record]
    total: int


@dataclass(slots=True)
class EncodedResponse:
    """Final payload of a pipeline run.

    Attributes:
        format: Encoding actually produced (structured after a compact fallback).
        body: Serialized payload text.
        pagination: Pagination metadata for the page.
        data: Structured envelope, set only for the structured encoding.
    """

    format: ResponseFormat
    body: str
    pagination: PaginationInfo
    data: dict[str, Any] | None = None

    @property
    def media_type(self) -> str:
        """HTTP media type for the body."""
        if self.format == "structured":
            return "application/json"
        return "text/plain; charset=utf-8"

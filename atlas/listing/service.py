"""Listing service.

Runs one listing request end to end: normalize parameters, fetch a page from
the record store, optionally embed children and fan out statistics, then
hand the page to the pure projection/encoding pipeline.

Only ``NotFoundError`` and ``InternalError`` leave this module.
"""

import logging
import uuid
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from .encoder import encode
from .enrichment import fan_out, fan_out_stats, merge_by_index
from .errors import InternalError, ListingError, NotFoundError
from .models import EncodedResponse, Page, QuerySpec, Record
from .pagination import compute_pagination
from .params import normalize_params
from .presets import get_registry
from .projector import project_fields, project_page
from .storage import RecordStore
from .storage.factory import get_record_store

logger = logging.getLogger("atlas.service")

# Upper bound on children embedded per project
NESTED_CHILD_LIMIT = 100

RECENT_PROJECT_FIELDS = (
    "id",
    "name",
    "description",
    "status",
    "taskType",
    "createdAt",
    "updatedAt",
    "urls",
)


def new_request_id() -> str:
    """Generate a short request identifier for log correlation."""
    return uuid.uuid4().hex[:12]


def run_pipeline(
    query: QuerySpec,
    page: Page,
    stats: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> EncodedResponse:
    """Project and encode an already fetched page.

    Pure and synchronous: resolves fields, projects records (nested
    collections get their fixed projection), merges statistics by position,
    derives pagination and encodes.

    Args:
        query: Normalized query.
        page: Records and total count from the store.
        stats: Optional per-record statistics, aligned with ``page.items``.
        request_id: Request identifier for log correlation.

    Returns:
        Encoded response.
    """
    registry = get_registry(query.kind)
    fields = registry.resolve(query.verbosity, query.explicit_fields, request_id=request_id)
    projected = project_page(query.kind, page, fields, registry.schema.nested)
    if stats is not None:
        projected.items = merge_by_index(projected.items, stats)
    pagination = compute_pagination(query.page, query.limit, page.total)
    return encode(projected, pagination, query.format, request_id=request_id)


async def _embed_children(store: RecordStore, query: QuerySpec, page: Page) -> Page:
    """Attach each project's tasks and/or knowledge items, preserving order."""
    items = page.items
    if query.include_tasks:
        child_spec = QuerySpec(kind="task", limit=NESTED_CHILD_LIMIT, sort_by="createdAt")
        pages = await fan_out(
            items, lambda p: store.list_tasks(str(p.get("id")), child_spec)
        )
        items = merge_by_index(items, [child.items for child in pages], "tasks")
    if query.include_knowledge:
        child_spec = QuerySpec(kind="knowledge", limit=NESTED_CHILD_LIMIT, sort_by="createdAt")
        pages = await fan_out(
            items, lambda p: store.list_knowledge(str(p.get("id")), child_spec)
        )
        items = merge_by_index(items, [child.items for child in pages], "knowledge")
    return Page(items=items, total=page.total)


async def _require_project(store: RecordStore, project_id: str) -> Record:
    project = await store.get_project(project_id)
    if project is None:
        raise NotFoundError("project", project_id)
    return project


def _internal_error(
    operation: str,
    message: str,
    error: Exception,
    request_id: str,
    params: Mapping[str, Any] | None = None,
) -> InternalError:
    logger.error(
        "%s failed: %s",
        operation,
        error,
        exc_info=True,
        extra={
            "operation": operation,
            "request_id": request_id,
            "params": dict(params or {}),
        },
    )
    return InternalError(message)


async def list_projects(
    raw: Mapping[str, Any],
    store: RecordStore | None = None,
    request_id: str | None = None,
    default_format: str = "structured",
) -> EncodedResponse:
    """List projects.

    Args:
        raw: Raw query parameters.
        store: Record store (defaults to the configured singleton).
        request_id: Request identifier (generated if omitted).
        default_format: Encoding used when the request names none.

    Raises:
        InternalError: If fetching or encoding fails unexpectedly.
    """
    request_id = request_id or new_request_id()
    store = store or get_record_store()
    query = normalize_params("project", raw, default_format=default_format)
    logger.debug("List projects request", extra={"request_id": request_id})

    try:
        page = await store.list_projects(query)
        if query.include_tasks or query.include_knowledge:
            page = await _embed_children(store, query, page)
        stats = await fan_out_stats(page.items, store.project_stats) if query.include_stats else None
        response = run_pipeline(query, page, stats=stats, request_id=request_id)
    except ListingError:
        raise
    except Exception as e:
        raise _internal_error(
            "list_projects", "Failed to fetch projects", e, request_id, raw
        ) from e

    logger.debug(
        "List projects success: %d of %d",
        len(page.items),
        page.total,
        extra={"request_id": request_id},
    )
    return response


async def get_project(
    project_id: str,
    raw: Mapping[str, Any],
    store: RecordStore | None = None,
    request_id: str | None = None,
    default_format: str = "structured",
) -> EncodedResponse:
    """Get one project as a single-item page.

    Verbosity defaults to ``full``. ``includeTasks`` / ``includeKnowledge``
    embed children with their fixed minimal projection.

    Raises:
        NotFoundError: If the project does not exist.
        InternalError: On unexpected failure.
    """
    request_id = request_id or new_request_id()
    store = store or get_record_store()
    query = normalize_params(
        "project", raw, default_format=default_format, default_verbosity="full"
    )
    query = replace(query, page=1, limit=1, filters={})

    try:
        project = await _require_project(store, project_id)
        page = Page(items=[project], total=1)
        if query.include_tasks or query.include_knowledge:
            page = await _embed_children(store, query, page)
        stats = await fan_out_stats(page.items, store.project_stats) if query.include_stats else None
        return run_pipeline(query, page, stats=stats, request_id=request_id)
    except ListingError:
        raise
    except Exception as e:
        raise _internal_error(
            "get_project", "Failed to fetch project", e, request_id, raw
        ) from e


async def list_tasks(
    project_id: str,
    raw: Mapping[str, Any],
    store: RecordStore | None = None,
    request_id: str | None = None,
    default_format: str = "structured",
) -> EncodedResponse:
    """List the tasks of a project.

    Raises:
        NotFoundError: If the project does not exist.
        InternalError: On unexpected failure.
    """
    request_id = request_id or new_request_id()
    store = store or get_record_store()
    query = normalize_params("task", raw, default_format=default_format)

    try:
        await _require_project(store, project_id)
        page = await store.list_tasks(project_id, query)
        response = run_pipeline(query, page, request_id=request_id)
    except ListingError:
        raise
    except Exception as e:
        raise _internal_error(
            "list_tasks", "Failed to fetch tasks", e, request_id, {**raw, "projectId": project_id}
        ) from e

    logger.debug(
        "List tasks success: %d of %d",
        len(page.items),
        page.total,
        extra={"request_id": request_id, "project_id": project_id},
    )
    return response


async def list_knowledge(
    project_id: str | None,
    raw: Mapping[str, Any],
    store: RecordStore | None = None,
    request_id: str | None = None,
    default_format: str = "structured",
) -> EncodedResponse:
    """List knowledge items, optionally scoped to one project.

    Raises:
        NotFoundError: If ``project_id`` is given and does not exist.
        InternalError: On unexpected failure.
    """
    request_id = request_id or new_request_id()
    store = store or get_record_store()
    query = normalize_params("knowledge", raw, default_format=default_format)

    try:
        if project_id is not None:
            await _require_project(store, project_id)
        page = await store.list_knowledge(project_id, query)
        response = run_pipeline(query, page, request_id=request_id)
    except ListingError:
        raise
    except Exception as e:
        raise _internal_error(
            "list_knowledge",
            "Failed to fetch knowledge",
            e,
            request_id,
            {**raw, "projectId": project_id},
        ) from e

    logger.debug(
        "List knowledge success: %d of %d",
        len(page.items),
        page.total,
        extra={"request_id": request_id, "project_id": project_id},
    )
    return response


async def get_project_metrics(
    project_id: str,
    store: RecordStore | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Task and knowledge statistics for one project.

    Raises:
        NotFoundError: If the project does not exist.
        InternalError: On unexpected failure.
    """
    request_id = request_id or new_request_id()
    store = store or get_record_store()
    try:
        project = await _require_project(store, project_id)
        stats = await store.project_stats(project_id)
    except ListingError:
        raise
    except Exception as e:
        raise _internal_error(
            "get_project_metrics",
            "Failed to fetch project metrics",
            e,
            request_id,
            {"projectId": project_id},
        ) from e

    return {
        "projectId": project_id,
        **stats,
        "project": project_fields(project, ("name", "status", "createdAt", "updatedAt")),
    }


async def get_dashboard_metrics(
    store: RecordStore | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Store-wide metrics for the dashboard overview.

    Raises:
        InternalError: On unexpected failure.
    """
    request_id = request_id or new_request_id()
    store = store or get_record_store()
    try:
        metrics = await store.dashboard_metrics()
    except Exception as e:
        raise _internal_error(
            "get_dashboard_metrics", "Failed to fetch dashboard metrics", e, request_id
        ) from e

    metrics["recentProjects"] = [
        project_fields(p, RECENT_PROJECT_FIELDS) for p in metrics.get("recentProjects", [])
    ]
    return metrics

"""Listing pipeline.

Parameter normalization, field presets, projection, enrichment and
response encoding for project, task and knowledge listings.
"""

from .errors import InternalError, ListingError, NotFoundError
from .models import EncodedResponse, Page, PaginationInfo, ProjectedPage, QuerySpec
from .params import normalize_params
from .service import (
    get_dashboard_metrics,
    get_project,
    get_project_metrics,
    list_knowledge,
    list_projects,
    list_tasks,
    run_pipeline,
)

__all__ = [
    "EncodedResponse",
    "InternalError",
    "ListingError",
    "NotFoundError",
    "Page",
    "PaginationInfo",
    "ProjectedPage",
    "QuerySpec",
    "get_dashboard_metrics",
    "get_project",
    "get_project_metrics",
    "list_knowledge",
    "list_projects",
    "list_tasks",
    "normalize_params",
    "run_pipeline",
]

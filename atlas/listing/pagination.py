"""Pagination metadata derivation."""

import math

from .models import PaginationInfo


def compute_pagination(page: int, limit: int, total: int) -> PaginationInfo:
    """Derive pagination metadata for a page.

    ``page`` and ``limit`` are expected to be clamped already by the
    parameter normalizer; they are passed through unchanged.

    Args:
        page: Current 1-based page.
        limit: Page size (>= 1).
        total: Total number of matching records.

    Returns:
        PaginationInfo with ``total_pages = ceil(total / limit)``, or 0 when
        there are no records.
    """
    total_pages = math.ceil(total / limit) if total > 0 else 0
    return PaginationInfo(page=page, limit=limit, total=total, total_pages=total_pages)

"""Response encoding.

Renders a projected page plus its pagination metadata in one of three
encodings:

    structured  exact JSON envelope ``{<collection>: [...], pagination: {...}}``
    compact     the same envelope in TOON (token-oriented object notation)
    narrative   human-readable text from the per-kind renderers

The compact path never fails: any encoding error is logged and the
structured encoding of the same page is returned instead.
"""

import json
import logging
from typing import Any

from toon_format import encode as encode_toon

from .models import EncodedResponse, PaginationInfo, ProjectedPage
from .narrative import render_narrative
from .presets import get_schema

logger = logging.getLogger("atlas.encoder")


def build_envelope(page: ProjectedPage, pagination: PaginationInfo) -> dict[str, Any]:
    """Build the structured response envelope for a page."""
    return {
        get_schema(page.kind).collection_key: page.items,
        "pagination": pagination.to_dict(),
    }


def encode_structured(page: ProjectedPage, pagination: PaginationInfo) -> EncodedResponse:
    envelope = build_envelope(page, pagination)
    return EncodedResponse(
        format="structured",
        body=json.dumps(envelope, indent=2, default=str),
        pagination=pagination,
        data=envelope,
    )


def encode_compact_response(
    page: ProjectedPage,
    pagination: PaginationInfo,
    request_id: str | None = None,
) -> EncodedResponse:
    """Encode a page compactly, falling back to the structured encoding."""
    try:
        body = encode_toon(build_envelope(page, pagination))
    except Exception as e:
        # Callers never see a failure here
        logger.warning(
            "Compact encoding failed, falling back to structured: %s",
            e,
            extra={"kind": page.kind, "request_id": request_id, "reason": str(e)},
        )
        return encode_structured(page, pagination)
    return EncodedResponse(format="compact", body=body, pagination=pagination)


def encode_narrative(page: ProjectedPage, pagination: PaginationInfo) -> EncodedResponse:
    return EncodedResponse(
        format="narrative",
        body=render_narrative(page, pagination),
        pagination=pagination,
    )


def encode(
    page: ProjectedPage,
    pagination: PaginationInfo,
    fmt: str = "structured",
    request_id: str | None = None,
) -> EncodedResponse:
    """Encode a projected page.

    Args:
        page: Projected page.
        pagination: Pagination metadata for the page.
        fmt: structured, compact or narrative. Unknown values encode as
            structured.
        request_id: Request identifier for log correlation.

    Returns:
        EncodedResponse. ``format`` reports the encoding actually produced.
    """
    if fmt == "compact":
        return encode_compact_response(page, pagination, request_id=request_id)
    if fmt == "narrative":
        return encode_narrative(page, pagination)
    return encode_structured(page, pagination)

"""Query parameter normalization.

Turns untrusted, mostly string-typed query input (HTTP query strings or MCP
tool arguments) into a ``QuerySpec``. Malformed input never raises; every
value degrades to a safe default.
"""

import logging
import math
import re
from collections.abc import Mapping
from typing import Any

from .models import RESPONSE_FORMATS, VERBOSITY_LEVELS, QuerySpec
from .presets import EntitySchema, get_schema

logger = logging.getLogger("atlas.params")

MAX_PAGE = 1000
MAX_LIMIT = 100
DEFAULT_LIMIT = 20

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

FORMAT_ALIASES = {
    "json": "structured",
    "toon": "compact",
    "formatted": "narrative",
    "markdown": "narrative",
    "text": "narrative",
}


def parse_int(value: Any, default: int, minimum: int = 1, maximum: int = 100) -> int:
    """Parse an integer parameter and clamp it to ``[minimum, maximum]``.

    A leading integer prefix is accepted ("12abc" -> 12). Anything without
    one falls back to ``default``.
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return default
        parsed = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return default
        parsed = int(match.group(1))
    return min(max(parsed, minimum), maximum)


def parse_bool(value: Any) -> bool:
    """Parse a boolean flag; only ``"true"`` and ``"1"`` are truthy."""
    if isinstance(value, bool):
        return value
    return value in ("true", "1")


def parse_list(value: Any) -> list[str]:
    """Split a comma-separated parameter into trimmed, non-empty entries."""
    if not value:
        return []
    parts = value if isinstance(value, (list, tuple)) else [value]
    result: list[str] = []
    for part in parts:
        if part is None:
            continue
        result.extend(s.strip() for s in str(part).split(",") if s.strip())
    return result


def _param(raw: Mapping[str, Any], name: str) -> Any:
    """Read a parameter by camelCase name, falling back to snake_case."""
    if name in raw:
        return raw[name]
    snake = re.sub(r"(?<!^)([A-Z])", r"_\1", name).lower()
    return raw.get(snake)


def _parse_text(value: Any) -> str:
    """Return a trimmed free-text value; repeated values yield nothing."""
    if isinstance(value, (list, tuple)):
        entries = [str(v).strip() for v in value if v is not None and str(v).strip()]
        return entries[0] if len(entries) == 1 else ""
    return str(value).strip() if value is not None else ""


def _parse_filters(schema: EntitySchema, raw: Mapping[str, Any]) -> dict[str, str | list[str]]:
    filters: dict[str, str | list[str]] = {}
    for name, filter_kind in schema.filters.items():
        value = _param(raw, name)
        if filter_kind == "single":
            values = parse_list(value)
            if len(values) == 1:
                filters[name] = values[0]
            elif len(values) > 1:
                # Multi-value OR filtering is not supported
                logger.debug(
                    "Ignoring multi-value %s filter for %s: %s",
                    name,
                    schema.kind,
                    values,
                )
        elif filter_kind == "list":
            values = parse_list(value)
            if values:
                filters[name] = values
        else:
            text = _parse_text(value)
            if text:
                filters[name] = text
            elif isinstance(value, (list, tuple)) and len(value) > 1:
                logger.debug(
                    "Ignoring repeated %s filter for %s: %s",
                    name,
                    schema.kind,
                    value,
                )
    return filters


def _parse_sort_by(schema: EntitySchema, value: Any) -> str:
    if not value:
        return schema.default_sort
    if value not in schema.sortable_fields:
        logger.warning(
            "Unknown sort field %r for %s, using %s",
            value,
            schema.kind,
            schema.default_sort,
            extra={"kind": schema.kind, "sort_by": value},
        )
        return schema.default_sort
    return str(value)


def _parse_format(value: Any, default: str) -> str:
    if not value:
        return default
    fmt = str(value).strip().lower()
    fmt = FORMAT_ALIASES.get(fmt, fmt)
    return fmt if fmt in RESPONSE_FORMATS else default


def normalize_params(
    kind: str,
    raw: Mapping[str, Any],
    default_format: str = "structured",
    default_verbosity: str = "standard",
) -> QuerySpec:
    """Build a QuerySpec from raw listing parameters.

    Args:
        kind: Entity kind (project, task, knowledge).
        raw: Raw parameter mapping (query string or tool arguments).
        default_format: Encoding used when ``format`` is absent or unknown.
        default_verbosity: Preset used when ``verbosity`` is absent or unknown.

    Returns:
        Immutable QuerySpec.
    """
    schema = get_schema(kind)

    direction = str(_param(raw, "sortDirection") or "desc").lower()
    if direction not in ("asc", "desc"):
        direction = "desc"

    verbosity = str(_param(raw, "verbosity") or default_verbosity).lower()
    if verbosity not in VERBOSITY_LEVELS:
        verbosity = default_verbosity

    explicit_fields = parse_list(_param(raw, "fields"))

    return QuerySpec(
        kind=kind,
        page=parse_int(_param(raw, "page"), 1, 1, MAX_PAGE),
        limit=parse_int(_param(raw, "limit"), DEFAULT_LIMIT, 1, MAX_LIMIT),
        sort_by=_parse_sort_by(schema, _param(raw, "sortBy")),
        sort_direction=direction,  # type: ignore[arg-type]
        filters=_parse_filters(schema, raw),
        verbosity=verbosity,  # type: ignore[arg-type]
        explicit_fields=tuple(explicit_fields) if explicit_fields else None,
        format=_parse_format(_param(raw, "format"), default_format),  # type: ignore[arg-type]
        include_stats=parse_bool(_param(raw, "includeStats")),
        include_tasks=parse_bool(_param(raw, "includeTasks")),
        include_knowledge=parse_bool(_param(raw, "includeKnowledge")),
    )

"""Concurrent per-record enrichment.

Per-record lookups (project statistics, embedded children) run concurrently,
one task per record. Results are merged back by position, so the output
order always matches the page order regardless of completion order.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from .models import Record

T = TypeVar("T")

STATS_FIELD = "stats"


async def fan_out(
    records: Sequence[Record],
    fetch: Callable[[Record], Awaitable[T]],
) -> list[T]:
    """Run ``fetch`` for every record concurrently.

    The first failure cancels the remaining fetches and is re-raised as is.

    Returns:
        One result per record, at the record's index.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(fetch(record)) for record in records]
    except ExceptionGroup as eg:
        raise eg.exceptions[0]
    return [task.result() for task in tasks]


async def fan_out_stats(
    records: Sequence[Record],
    fetch_stats: Callable[[str], Awaitable[dict[str, Any]]],
) -> list[dict[str, Any]]:
    """Fetch statistics for every record by its ``id``."""

    async def _fetch(record: Record) -> dict[str, Any]:
        return await fetch_stats(str(record.get("id", "")))

    return await fan_out(records, _fetch)


def merge_by_index(
    projected: list[Record],
    values: Sequence[Any],
    field_name: str = STATS_FIELD,
) -> list[Record]:
    """Attach ``values[i]`` to ``projected[i]`` under ``field_name``.

    The field is additive and not subject to the kind's allowed-field list.

    Raises:
        ValueError: If the two sequences differ in length.
    """
    if len(projected) != len(values):
        raise ValueError(
            f"Cannot merge {len(values)} enrichment results into {len(projected)} records"
        )
    return [{**record, field_name: value} for record, value in zip(projected, values, strict=True)]

"""Record projection.

Reduces records to a resolved field set. Embedded child collections always
get their fixed minimal projection, whatever the parent's verbosity.
"""

from collections.abc import Iterable, Mapping

from .models import Page, ProjectedPage, Record


def project_fields(record: Mapping, fields: Iterable[str]) -> Record:
    """Copy only the requested fields that exist on the record.

    Values are shared with the source record, not copied.
    """
    return {name: record[name] for name in fields if name in record}


def project_record(
    record: Mapping,
    fields: Iterable[str],
    nested: Mapping[str, tuple[str, ...]] | None = None,
) -> Record:
    """Project a single record and its embedded collections.

    Args:
        record: Source record.
        fields: Resolved top-level field names.
        nested: Embedded collection name to its fixed field projection.

    Returns:
        New record dict.
    """
    projected = project_fields(record, fields)
    for collection, nested_fields in (nested or {}).items():
        children = record.get(collection)
        if isinstance(children, list):
            projected[collection] = [project_fields(child, nested_fields) for child in children]
    return projected


def project_page(
    kind: str,
    page: Page,
    fields: list[str],
    nested: Mapping[str, tuple[str, ...]] | None = None,
) -> ProjectedPage:
    """Project every record on a page. ``page.total`` is carried unchanged."""
    fields = list(fields)
    return ProjectedPage(
        kind=kind,
        items=[project_record(record, fields, nested) for record in page.items],
        total=page.total,
    )

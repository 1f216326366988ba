"""Tests for the compact (TOON) response encoding."""

import pytest
from toon_format import decode

from atlas.listing.encoder import build_envelope, encode
from atlas.listing.models import ProjectedPage
from atlas.listing.pagination import compute_pagination


def _compact(kind: str, items: list[dict], total: int | None = None) -> str:
    total = len(items) if total is None else total
    page = ProjectedPage(kind=kind, items=items, total=total)
    encoded = encode(page, compute_pagination(1, 20, total), "compact")
    assert encoded.format == "compact"
    return encoded.body


class TestCompactEncoding:
    """Shape of compact page bodies."""

    def test_uniform_records_are_tabular(self) -> None:
        body = _compact(
            "project",
            [
                {"id": "p1", "name": "Atlas", "status": "active"},
                {"id": "p2", "name": "Beacon", "status": "archived"},
            ],
        )
        assert body == (
            "projects[2]{id,name,status}:\n"
            "  p1,Atlas,active\n"
            "  p2,Beacon,archived\n"
            "pagination:\n"
            "  page: 1\n"
            "  limit: 20\n"
            "  total: 2\n"
            "  totalPages: 1"
        )

    def test_empty_page(self) -> None:
        body = _compact("task", [], total=0)
        assert body.startswith("tasks[0]:")
        assert "totalPages: 0" in body

    def test_primitive_array_inline(self) -> None:
        body = _compact("knowledge", [{"id": "k1", "tags": ["api", "ui"]}])
        assert "tags[2]: api,ui" in body

    @pytest.mark.parametrize("value", ["a,b", "true", "42", ""])
    def test_ambiguous_strings_quoted(self, value: str) -> None:
        body = _compact("project", [{"id": "p1", "name": value}])
        assert f'"{value}"' in body

    def test_body_decodes_to_structured_envelope(self) -> None:
        items = [
            {"id": "t1", "title": "Wire API", "status": "todo", "tags": ["api"]},
            {"id": "t2", "title": "Ship, then review", "status": "completed", "tags": []},
        ]
        page = ProjectedPage(kind="task", items=items, total=2)
        pagination = compute_pagination(1, 20, 2)
        body = encode(page, pagination, "compact").body
        assert decode(body) == build_envelope(page, pagination)

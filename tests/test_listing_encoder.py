"""Tests for response encoding and the compact fallback."""

import json
import logging
from unittest.mock import patch

import pytest

from atlas.listing.encoder import encode, encode_structured
from atlas.listing.models import ProjectedPage
from atlas.listing.pagination import compute_pagination


@pytest.fixture
def page() -> ProjectedPage:
    return ProjectedPage(
        kind="project",
        items=[
            {"id": "p1", "name": "Atlas", "status": "active"},
            {"id": "p2", "name": "Beacon", "status": "archived"},
        ],
        total=2,
    )


class TestEncode:
    """Tests for encode."""

    def test_structured(self, page: ProjectedPage) -> None:
        encoded = encode(page, compute_pagination(1, 20, 2), "structured")
        assert encoded.format == "structured"
        assert encoded.media_type == "application/json"
        assert json.loads(encoded.body) == encoded.data
        assert encoded.data == {
            "projects": page.items,
            "pagination": {"page": 1, "limit": 20, "total": 2, "totalPages": 1},
        }

    def test_compact(self, page: ProjectedPage) -> None:
        encoded = encode(page, compute_pagination(1, 20, 2), "compact")
        assert encoded.format == "compact"
        assert encoded.data is None
        assert encoded.body.startswith("projects[2]{id,name,status}:")
        assert encoded.media_type.startswith("text/plain")

    def test_narrative(self, page: ProjectedPage) -> None:
        encoded = encode(page, compute_pagination(1, 20, 2), "narrative")
        assert encoded.format == "narrative"
        assert encoded.body.startswith("Project Portfolio")

    def test_unknown_format_is_structured(self, page: ProjectedPage) -> None:
        encoded = encode(page, compute_pagination(1, 20, 2), "yaml")
        assert encoded.format == "structured"

    def test_collection_key_per_kind(self) -> None:
        knowledge = ProjectedPage(kind="knowledge", items=[], total=0)
        encoded = encode(knowledge, compute_pagination(1, 20, 0))
        assert encoded.data is not None
        assert "knowledge" in encoded.data


class TestCompactFallback:
    """The compact path never fails."""

    def test_fallback_matches_structured(
        self, page: ProjectedPage, caplog: pytest.LogCaptureFixture
    ) -> None:
        pagination = compute_pagination(1, 20, 2)
        with (
            patch(
                "atlas.listing.encoder.encode_toon",
                side_effect=ValueError("boom"),
            ),
            caplog.at_level(logging.WARNING, logger="atlas.encoder"),
        ):
            encoded = encode(page, pagination, "compact", request_id="req1")

        assert encoded.format == "structured"
        assert encoded.body == encode_structured(page, pagination).body
        assert "falling back to structured" in caplog.text

    def test_any_exception_falls_back(self, page: ProjectedPage) -> None:
        with patch("atlas.listing.encoder.encode_toon", side_effect=RuntimeError("x")):
            encoded = encode(page, compute_pagination(1, 20, 2), "compact")
        assert encoded.format == "structured"

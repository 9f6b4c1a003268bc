"""Tests for the Bookmark model and related value types."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from threadkeep.models.bookmark import (
    Bookmark,
    BookmarkStats,
    Media,
    MediaType,
    PaginatedResponse,
)


def _bookmark(**overrides) -> Bookmark:
    data = {
        "post_url": "https://x.com/rustlang/status/1",
        "content": "Rust 1.78 is out! #Rust #release thanks @ferris",
        "posted_at": datetime(2024, 5, 1, 14, 51, tzinfo=timezone.utc),
        "author_handle": "rustlang",
        "author_name": "Rust Language",
    }
    data.update(overrides)
    return Bookmark(**data)


class TestBookmarkModel:
    """Test Bookmark model validation."""

    def test_valid_bookmark_creation(self):
        """Test creating a valid bookmark."""
        bookmark = _bookmark()

        assert bookmark.post_url == "https://x.com/rustlang/status/1"
        assert bookmark.is_favorite is False
        assert bookmark.tags == []
        assert bookmark.media == []
        assert len(bookmark.id) == 36

    def test_ids_are_unique(self):
        """Test each bookmark gets its own id."""
        assert _bookmark().id != _bookmark().id

    def test_empty_post_url_rejected(self):
        """Test the natural key cannot be empty."""
        with pytest.raises(ValidationError):
            _bookmark(post_url="")

    def test_empty_author_handle_rejected(self):
        """Test author handle is required."""
        with pytest.raises(ValidationError):
            _bookmark(author_handle="")

    def test_naive_datetime_treated_as_utc(self):
        """Test naive timestamps are interpreted as UTC."""
        bookmark = _bookmark(posted_at=datetime(2024, 5, 1, 14, 51))
        assert bookmark.posted_at.tzinfo == timezone.utc
        assert bookmark.posted_at.hour == 14

    def test_sub_second_parts_dropped(self):
        """Test timestamps are kept in whole seconds, as the database stores them."""
        bookmark = _bookmark(
            posted_at=datetime(2025, 8, 25, 10, 52, 35, 123000, tzinfo=timezone.utc),
            imported_at=datetime(2025, 8, 25, 11, 0, 0, 999999, tzinfo=timezone.utc),
        )
        assert bookmark.posted_at == datetime(2025, 8, 25, 10, 52, 35, tzinfo=timezone.utc)
        assert bookmark.imported_at == datetime(2025, 8, 25, 11, 0, 0, tzinfo=timezone.utc)

    def test_offset_datetime_converted_to_utc(self):
        """Test aware timestamps are normalized to UTC."""
        plus_two = timezone(timedelta(hours=2))
        bookmark = _bookmark(posted_at=datetime(2024, 5, 1, 16, 51, tzinfo=plus_two))
        assert bookmark.posted_at == datetime(2024, 5, 1, 14, 51, tzinfo=timezone.utc)
        assert bookmark.posted_at.utcoffset() == timedelta(0)

    def test_search_text_not_serialized(self):
        """Test the derived search blob stays out of dumps."""
        bookmark = _bookmark()
        bookmark.compute_search_text()
        assert "search_text" not in bookmark.model_dump()


class TestSearchText:
    """Test search blob composition."""

    def test_includes_all_searchable_fields(self):
        """Test content, author, note, comment and tags are all present."""
        bookmark = _bookmark(
            note_text="longer note",
            comments="read later",
            tags=["programming", "langs"],
        )
        text = bookmark.compute_search_text()

        for expected in ("Rust 1.78", "rustlang", "Rust Language", "longer note",
                         "read later", "programming", "langs"):
            assert expected in text
        assert bookmark.search_text == text

    def test_optional_fields_skipped(self):
        """Test missing optional fields leave no placeholders."""
        bookmark = _bookmark(content="hello", author_name="Name")
        assert bookmark.compute_search_text() == "hello rustlang Name"


class TestMedia:
    """Test media value types."""

    def test_default_type_unknown(self):
        assert Media(url="https://example.com/a").media_type == MediaType.UNKNOWN

    def test_from_storage_known(self):
        assert MediaType.from_storage("gif") == MediaType.GIF

    def test_from_storage_unknown_tag(self):
        """Test unrecognized stored tags map to UNKNOWN instead of failing."""
        assert MediaType.from_storage("hologram") == MediaType.UNKNOWN
        assert MediaType.from_storage(None) == MediaType.UNKNOWN


class TestPaginatedResponse:
    """Test pagination metadata."""

    def test_has_more_when_items_remain(self):
        page = PaginatedResponse[int].build([1, 2], total=5, offset=0, limit=2)
        assert page.has_more is True
        assert page.total == 5

    def test_last_page(self):
        page = PaginatedResponse[int].build([5], total=5, offset=4, limit=2)
        assert page.has_more is False

    def test_empty(self):
        page = PaginatedResponse[int].build([], total=0, offset=0, limit=10)
        assert page.items == []
        assert page.has_more is False


class TestBookmarkStats:
    """Test stats defaults."""

    def test_empty_defaults(self):
        stats = BookmarkStats()
        assert stats.total_bookmarks == 0
        assert stats.earliest_date is None
        assert stats.top_tags == []

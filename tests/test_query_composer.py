"""Tests for filtered query composition."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from threadkeep.core.builder import BookmarkDraft
from threadkeep.core.query_composer import (
    MAX_TIMESTAMP,
    MIN_TIMESTAMP,
    SearchFilters,
    compose_count,
    compose_search,
    prepare_fts_query,
)
from threadkeep.core.storage_manager import BookmarkStore


def _bookmark(n: int, content: str, handle: str, tags=(), media=(), day: int = 1):
    draft = (
        BookmarkDraft()
        .set_post_url(f"https://x.com/{handle}/status/{n}")
        .set_content(content)
        .set_posted_at(datetime(2024, 3, day, tzinfo=timezone.utc))
        .set_author_handle(handle)
    )
    for tag in tags:
        draft.add_tag(tag)
    for url in media:
        draft.add_media(url)
    return draft.build()


@pytest.fixture
def store():
    """Store with a small mixed corpus."""
    with BookmarkStore.open_memory() as s:
        s.insert_bookmarks(
            [
                _bookmark(1, "learning rust ownership", "alice", tags=["rust"], day=1),
                _bookmark(2, "rust async runtimes", "bob", tags=["rust", "async"],
                          media=["https://a.com/1.png", "https://a.com/2.png"], day=5),
                _bookmark(3, "python typing tips", "alice", tags=["python"], day=10),
                _bookmark(4, "sourdough recipe", "carol", day=20),
            ]
        )
        yield s


def _run(store: BookmarkStore, **kwargs):
    composed = compose_search(SearchFilters(**kwargs))
    return [b.author_handle + ":" + b.content for b in store.fetch_bookmarks(composed.sql, composed.params)]


def _count(store: BookmarkStore, **kwargs) -> int:
    composed = compose_count(SearchFilters(**kwargs))
    return store.scalar(composed.sql, composed.params)


class TestPrepareFtsQuery:
    """Test free text to FTS5 query conversion."""

    def test_terms_become_prefixes(self):
        assert prepare_fts_query("rust lang") == '"rust"* "lang"*'

    def test_quotes_doubled(self):
        assert prepare_fts_query('say "hi"') == '"say"* """hi"""*'

    def test_operators_neutralized(self):
        """Test FTS syntax in user input is quoted as plain terms."""
        assert prepare_fts_query("a OR b NEAR(c)") == '"a"* "OR"* "b"* "NEAR(c)"*'

    def test_blank(self):
        assert prepare_fts_query("   ") == ""


class TestSearchFilters:
    """Test filter model validation."""

    def test_blank_strings_ignored(self):
        filters = SearchFilters(query="  ", tag="", author=" ")
        assert filters.query is None
        assert filters.tag is None
        assert filters.author is None
        assert filters.has_text_query is False

    def test_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            SearchFilters(limit=0)

    def test_offset_non_negative(self):
        with pytest.raises(ValidationError):
            SearchFilters(offset=-1)


class TestComposeSearch:
    """Test SQL composition."""

    def test_no_filters(self):
        composed = compose_search(SearchFilters())
        assert "WHERE" not in composed.sql
        assert "ORDER BY b.posted_at DESC" in composed.sql
        assert composed.params == [50, 0]

    def test_user_values_are_bound(self):
        """Test filter values only ever appear as parameters."""
        hostile = "x' OR '1'='1"
        composed = compose_search(
            SearchFilters(query=hostile, tag=hostile, author=hostile, limit=5, offset=10)
        )

        assert hostile not in composed.sql
        assert "'1'" not in composed.sql
        assert composed.sql.count("?") == len(composed.params)
        assert composed.params[1:] == [hostile, hostile, 5, 10]

    def test_text_query_orders_by_relevance(self):
        composed = compose_search(SearchFilters(query="rust"))
        assert "bookmarks_fts MATCH ?" in composed.sql
        assert "ORDER BY bm25(bookmarks_fts), b.posted_at DESC" in composed.sql

    def test_date_bounds_default(self):
        start = datetime(2024, 3, 1, tzinfo=timezone.utc)
        composed = compose_search(SearchFilters(from_date=start))
        assert composed.params[:2] == [int(start.timestamp()), MAX_TIMESTAMP]

        composed = compose_search(SearchFilters(to_date=start))
        assert composed.params[:2] == [MIN_TIMESTAMP, int(start.timestamp())]

    def test_count_has_no_pagination(self):
        composed = compose_count(SearchFilters(tag="rust", limit=5, offset=5))
        assert composed.sql.startswith("SELECT COUNT(*)")
        assert "LIMIT" not in composed.sql
        assert composed.params == ["rust"]


class TestFilteredExecution:
    """Test composed queries against a real store."""

    def test_newest_first(self, store):
        assert [r.split(":")[0] for r in _run(store)] == ["carol", "alice", "bob", "alice"]

    def test_text_prefix_match(self, store):
        assert sorted(_run(store, query="ru")) == [
            "alice:learning rust ownership",
            "bob:rust async runtimes",
        ]

    def test_text_and_author(self, store):
        assert _run(store, query="rust", author="alice") == ["alice:learning rust ownership"]

    def test_tag_case_insensitive(self, store):
        assert len(_run(store, tag="RUST")) == 2

    def test_favorites_and_tag(self, store):
        """Test favorites and tag filters combine with AND."""
        python = store.get_bookmark_by_url("https://x.com/alice/status/3")
        rust = store.get_bookmark_by_url("https://x.com/alice/status/1")
        store.set_favorite(python.id, True)
        store.set_favorite(rust.id, True)

        assert _run(store, favorites_only=True, tag="rust") == ["alice:learning rust ownership"]
        assert _count(store, favorites_only=True) == 2

    def test_has_media_no_duplicates(self, store):
        """Test a bookmark with several media rows appears once."""
        assert _run(store, has_media=True) == ["bob:rust async runtimes"]
        assert _count(store, has_media=True) == 1

    def test_without_media(self, store):
        assert _count(store, has_media=False) == 3

    def test_date_range_inclusive(self, store):
        results = _run(
            store,
            from_date=datetime(2024, 3, 5, tzinfo=timezone.utc),
            to_date=datetime(2024, 3, 10, tzinfo=timezone.utc),
        )
        assert [r.split(":")[0] for r in results] == ["alice", "bob"]

    def test_injection_matches_nothing(self, store):
        assert _run(store, tag="rust' OR '1'='1") == []
        assert _run(store, author="alice' --") == []
        assert _count(store) == 4

    def test_fts_syntax_in_query_is_literal(self, store):
        assert _run(store, query='rust" OR "python') == []

    def test_pagination(self, store):
        first = _run(store, limit=2)
        second = _run(store, limit=2, offset=2)
        assert len(first) == 2
        assert len(second) == 2
        assert not set(first) & set(second)

"""Bookmark manager: the operational surface over storage, search and ingestion."""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from ..models.bookmark import Bookmark, BookmarkStats, PaginatedResponse, TagCount
from .ingestion_service import IngestionService, IngestReport
from .query_composer import SearchFilters, compose_count, compose_search
from .statistics import StatisticsAggregator
from .storage_manager import BookmarkNotFoundError, BookmarkStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
DEFAULT_SEARCH_LIMIT = 20


class BookmarkManager:
    """Manages bookmark queries, curation and ingestion."""

    def __init__(
        self,
        store: BookmarkStore,
        ingestion_service: Optional[IngestionService] = None,
        default_limit: int = DEFAULT_PAGE_SIZE,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        """Initialize bookmark manager.

        Args:
            store: BookmarkStore instance
            ingestion_service: Ingestion pipeline (default: one over the same store)
            default_limit: Page size used when callers pass none
            search_limit: Result cap for plain text search
        """
        self.store = store
        self.ingestion = ingestion_service or IngestionService(store)
        self.default_limit = default_limit
        self.search_limit = search_limit
        self.stats = StatisticsAggregator(store)

    # Ingestion

    def ingest(self, path: Union[str, Path]) -> int:
        """Import an export file; returns the number of newly stored bookmarks."""
        return self.ingestion.ingest(path)

    def ingest_file(self, path: Union[str, Path]) -> IngestReport:
        return self.ingestion.ingest_file(path)

    # Queries

    def search(self, query: str, limit: Optional[int] = None) -> List[Bookmark]:
        """Full-text search ranked by relevance, then newest first.

        Args:
            query: Free text; each term is matched as a prefix
            limit: Maximum results (default: search_limit)

        Returns:
            Matching bookmarks; empty for a blank query
        """
        filters = SearchFilters(query=query, limit=limit or self.search_limit)
        if not filters.has_text_query:
            return []
        return self.find(filters)

    def search_with_filters(
        self,
        query: Optional[str] = None,
        tag: Optional[str] = None,
        author: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        favorites_only: bool = False,
        has_media: Optional[bool] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Bookmark]:
        """Search with any combination of filters (all must hold).

        Without a text query results are ordered newest first.
        """
        filters = SearchFilters(
            query=query,
            tag=tag,
            author=author,
            from_date=from_date,
            to_date=to_date,
            favorites_only=favorites_only,
            has_media=has_media,
            limit=limit or self.default_limit,
            offset=offset,
        )
        return self.find(filters)

    def find(self, filters: SearchFilters) -> List[Bookmark]:
        composed = compose_search(filters)
        results = self.store.fetch_bookmarks(composed.sql, composed.params)
        logger.debug(f"Query matched {len(results)} bookmarks")
        return results

    def count(self, filters: SearchFilters) -> int:
        composed = compose_count(filters)
        return self.store.scalar(composed.sql, composed.params) or 0

    def page(self, filters: SearchFilters) -> PaginatedResponse[Bookmark]:
        """One page of results plus the total matching count."""
        items = self.find(filters)
        total = self.count(filters)
        return PaginatedResponse[Bookmark].build(items, total, filters.offset, filters.limit)

    def get_bookmarks(
        self, offset: int = 0, limit: Optional[int] = None
    ) -> PaginatedResponse[Bookmark]:
        """All bookmarks, newest first."""
        return self.page(SearchFilters(offset=offset, limit=limit or self.default_limit))

    def get_favorites(
        self, offset: int = 0, limit: Optional[int] = None
    ) -> PaginatedResponse[Bookmark]:
        """Favorite bookmarks, newest first."""
        return self.page(
            SearchFilters(favorites_only=True, offset=offset, limit=limit or self.default_limit)
        )

    def get_bookmark(self, bookmark_id: str) -> Bookmark:
        """Get bookmark by ID.

        Raises:
            BookmarkNotFoundError: If bookmark doesn't exist
        """
        bookmark = self.store.get_bookmark(bookmark_id)
        if bookmark is None:
            raise BookmarkNotFoundError(f"Bookmark not found: {bookmark_id}")
        return bookmark

    def get_bookmarks_by_tag(self, tag: str, limit: Optional[int] = None) -> List[Bookmark]:
        return self.search_with_filters(tag=tag, limit=limit)

    def get_bookmarks_by_author(self, author: str, limit: Optional[int] = None) -> List[Bookmark]:
        return self.search_with_filters(author=author, limit=limit)

    def get_bookmarks_by_date_range(
        self, start: datetime, end: datetime, limit: Optional[int] = None
    ) -> List[Bookmark]:
        return self.search_with_filters(from_date=start, to_date=end, limit=limit)

    # Curation

    def toggle_favorite(self, bookmark_id: str) -> bool:
        """Flip the favorite flag; returns the new value.

        Raises:
            BookmarkNotFoundError: If bookmark doesn't exist
        """
        favorite = self.store.toggle_favorite(bookmark_id)
        logger.info(f"Bookmark {bookmark_id} favorite={favorite}")
        return favorite

    def set_favorite(self, bookmark_id: str, favorite: bool) -> None:
        """Set the favorite flag explicitly.

        Raises:
            BookmarkNotFoundError: If bookmark doesn't exist
        """
        if not self.store.set_favorite(bookmark_id, favorite):
            raise BookmarkNotFoundError(f"Bookmark not found: {bookmark_id}")

    def delete_bookmark(self, bookmark_id: str) -> bool:
        """Delete a bookmark. Returns False when the id is unknown."""
        return self.store.delete_bookmark(bookmark_id)

    # Aggregates

    def get_all_tags(self) -> List[TagCount]:
        return self.stats.tag_counts()

    def get_stats(self, top_n: Optional[int] = None) -> BookmarkStats:
        return self.stats.compute(top_n)

"""Corpus statistics.

Every call recomputes from the tables; nothing is cached. That is fine for a
single-user local archive but is the first thing to revisit if corpora grow
large.
"""

import logging
from typing import List, Optional

from ..models.bookmark import BookmarkStats, TagCount
from ..utils.date_utils import from_epoch
from .storage_manager import BookmarkStore

logger = logging.getLogger(__name__)


class StatisticsAggregator:
    """Read-only aggregate queries over a bookmark store."""

    def __init__(self, store: BookmarkStore):
        self.store = store

    def tag_counts(self, limit: Optional[int] = None) -> List[TagCount]:
        """Tags ranked by number of linked bookmarks (ties by name).

        Catalog tags no longer linked to any bookmark are included with 0.
        """
        sql = """
            SELECT t.name AS name, COUNT(bt.bookmark_id) AS count
            FROM tags t
            LEFT JOIN bookmark_tags bt ON bt.tag_id = t.id
            GROUP BY t.id
            ORDER BY count DESC, t.name COLLATE NOCASE ASC
        """
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)

        return [TagCount(name=row["name"], count=row["count"]) for row in self.store.query_all(sql, params)]

    def compute(self, top_n: Optional[int] = None) -> BookmarkStats:
        """Compute all corpus-level counts.

        Args:
            top_n: Keep only the N most used tags (None keeps all)
        """
        row = self.store.query_one(
            """
            SELECT COUNT(*) AS total,
                   COUNT(DISTINCT author_handle) AS authors,
                   COALESCE(SUM(is_favorite = 1), 0) AS favorites,
                   MIN(posted_at) AS earliest,
                   MAX(posted_at) AS latest
            FROM bookmarks
            """
        )
        unique_tags = self.store.scalar("SELECT COUNT(*) FROM tags")

        stats = BookmarkStats(
            total_bookmarks=row["total"],
            unique_authors=row["authors"],
            unique_tags=unique_tags or 0,
            favorite_bookmarks=row["favorites"],
            earliest_date=from_epoch(row["earliest"]) if row["earliest"] is not None else None,
            latest_date=from_epoch(row["latest"]) if row["latest"] is not None else None,
            top_tags=self.tag_counts(top_n),
        )

        logger.debug(
            f"Stats: {stats.total_bookmarks} bookmarks, {stats.unique_authors} authors, "
            f"{stats.unique_tags} tags"
        )
        return stats

"""Filtered search query construction.

Queries are assembled from fixed SQL fragments. Every user-supplied value
(search terms, tag names, author handles, dates, limits) travels as a bound
``?`` parameter and is never spliced into the SQL text.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.date_utils import to_epoch
from .storage_manager import BOOKMARK_COLUMNS

MIN_TIMESTAMP = 0
MAX_TIMESTAMP = 2**63 - 1


def prepare_fts_query(query: str) -> str:
    """Turn free text into an FTS5 prefix query.

    Each whitespace-separated term is quoted (embedded quotes doubled) and
    marked as a prefix match, e.g. ``rust lang`` -> ``"rust"* "lang"*``.
    """
    terms = []
    for term in query.split():
        escaped = term.replace('"', '""')
        terms.append(f'"{escaped}"*')
    return " ".join(terms)


class SearchFilters(BaseModel):
    """Filters combined with AND by the query composer."""

    query: Optional[str] = Field(None, description="Full-text search terms")
    tag: Optional[str] = Field(None, description="Exact tag name (case-insensitive)")
    author: Optional[str] = Field(None, description="Exact author handle")
    from_date: Optional[datetime] = Field(None, description="Inclusive lower bound on posted_at")
    to_date: Optional[datetime] = Field(None, description="Inclusive upper bound on posted_at")
    favorites_only: bool = Field(default=False)
    has_media: Optional[bool] = Field(None, description="True: with media, False: without")
    limit: int = Field(default=50, ge=1)
    offset: int = Field(default=0, ge=0)

    @field_validator("query", "tag", "author")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank strings as an absent filter."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def has_text_query(self) -> bool:
        return bool(self.query and prepare_fts_query(self.query))


@dataclass
class ComposedQuery:
    """SQL text with its positional parameters."""

    sql: str
    params: List[Any] = field(default_factory=list)


def _where_clause(filters: SearchFilters) -> ComposedQuery:
    """Build the FROM/JOIN/WHERE part shared by search and count queries."""
    joins: List[str] = []
    conditions: List[str] = []
    params: List[Any] = []

    if filters.has_text_query:
        joins.append("JOIN bookmarks_fts_content fc ON fc.bookmark_id = b.id")
        joins.append("JOIN bookmarks_fts ON bookmarks_fts.rowid = fc.rowid")
        conditions.append("bookmarks_fts MATCH ?")
        params.append(prepare_fts_query(filters.query))

    if filters.tag is not None:
        conditions.append(
            "EXISTS (SELECT 1 FROM bookmark_tags bt JOIN tags t ON t.id = bt.tag_id "
            "WHERE bt.bookmark_id = b.id AND t.name = ?)"
        )
        params.append(filters.tag)

    if filters.author is not None:
        conditions.append("b.author_handle = ?")
        params.append(filters.author)

    if filters.from_date is not None or filters.to_date is not None:
        conditions.append("b.posted_at BETWEEN ? AND ?")
        params.append(to_epoch(filters.from_date) if filters.from_date else MIN_TIMESTAMP)
        params.append(to_epoch(filters.to_date) if filters.to_date else MAX_TIMESTAMP)

    if filters.favorites_only:
        conditions.append("b.is_favorite = 1")

    if filters.has_media is True:
        conditions.append("EXISTS (SELECT 1 FROM media m WHERE m.bookmark_id = b.id)")
    elif filters.has_media is False:
        conditions.append("NOT EXISTS (SELECT 1 FROM media m WHERE m.bookmark_id = b.id)")

    sql = "FROM bookmarks b"
    if joins:
        sql += " " + " ".join(joins)
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)

    return ComposedQuery(sql=sql, params=params)


def compose_search(filters: SearchFilters) -> ComposedQuery:
    """Compose the paginated search query for a set of filters.

    Full-text searches sort by bm25 relevance first, then newest first;
    all other queries sort newest first.
    """
    base = _where_clause(filters)

    if filters.has_text_query:
        order = "ORDER BY bm25(bookmarks_fts), b.posted_at DESC"
    else:
        order = "ORDER BY b.posted_at DESC"

    sql = f"SELECT {BOOKMARK_COLUMNS} {base.sql} {order} LIMIT ? OFFSET ?"
    return ComposedQuery(sql=sql, params=[*base.params, filters.limit, filters.offset])


def compose_count(filters: SearchFilters) -> ComposedQuery:
    """Compose a COUNT(*) query over the same filters (pagination ignored)."""
    base = _where_clause(filters)
    return ComposedQuery(sql=f"SELECT COUNT(*) {base.sql}", params=base.params)

"""Canonical bookmark construction.

Parsers fill a ``BookmarkDraft`` field by field and call ``build()`` once.
``build()`` is the only place a ``Bookmark`` is created from parsed input.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from ..models.bookmark import Bookmark, Media
from ..utils.url_utils import classify_media_url

REQUIRED_FIELDS = ("post_url", "posted_at", "author_handle")


class BookmarkValidationError(ValueError):
    """Draft could not be turned into a bookmark."""

    pass


class MissingFieldError(BookmarkValidationError):
    """One or more required fields were absent."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required field(s): {', '.join(self.missing)}")


@dataclass
class BookmarkDraft:
    """Mutable bookmark fields collected before validation.

    Optional string setters treat "" as not provided. Tags are de-duplicated
    by exact (case-sensitive) match; media types are classified on insertion.
    """

    post_url: Optional[str] = None
    content: Optional[str] = None
    note_text: Optional[str] = None
    posted_at: Optional[datetime] = None
    author_handle: Optional[str] = None
    author_name: Optional[str] = None
    author_profile_url: Optional[str] = None
    author_profile_image: Optional[str] = None
    comments: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    media: List[Media] = field(default_factory=list)

    def set_post_url(self, url: Optional[str]) -> "BookmarkDraft":
        if url:
            self.post_url = url
        return self

    def set_content(self, content: Optional[str]) -> "BookmarkDraft":
        if content:
            self.content = content
        return self

    def set_note_text(self, note: Optional[str]) -> "BookmarkDraft":
        if note:
            self.note_text = note
        return self

    def set_posted_at(self, posted_at: Optional[datetime]) -> "BookmarkDraft":
        if posted_at is not None:
            self.posted_at = posted_at
        return self

    def set_author_handle(self, handle: Optional[str]) -> "BookmarkDraft":
        if handle:
            self.author_handle = handle
        return self

    def set_author_name(self, name: Optional[str]) -> "BookmarkDraft":
        if name:
            self.author_name = name
        return self

    def set_author_profile_url(self, url: Optional[str]) -> "BookmarkDraft":
        if url:
            self.author_profile_url = url
        return self

    def set_author_profile_image(self, url: Optional[str]) -> "BookmarkDraft":
        if url:
            self.author_profile_image = url
        return self

    def set_comments(self, comments: Optional[str]) -> "BookmarkDraft":
        if comments:
            self.comments = comments
        return self

    def add_tag(self, tag: Optional[str]) -> "BookmarkDraft":
        if tag and tag not in self.tags:
            self.tags.append(tag)
        return self

    def add_media(self, url: Optional[str]) -> "BookmarkDraft":
        if url:
            self.media.append(Media(url=url, media_type=classify_media_url(url)))
        return self

    def missing_fields(self) -> List[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def build(self) -> Bookmark:
        """Validate required fields and produce the canonical bookmark.

        Raises:
            MissingFieldError: If post_url, posted_at or author_handle is absent
        """
        missing = self.missing_fields()
        if missing:
            raise MissingFieldError(missing)

        bookmark = Bookmark(
            id=str(uuid4()),
            post_url=self.post_url,
            content=self.content or "",
            note_text=self.note_text,
            posted_at=self.posted_at,
            imported_at=datetime.now(timezone.utc),
            author_handle=self.author_handle,
            author_name=self.author_name or self.author_handle,
            author_profile_url=self.author_profile_url,
            author_profile_image=self.author_profile_image,
            tags=list(self.tags),
            comments=self.comments,
            media=list(self.media),
            is_favorite=False,
        )
        bookmark.compute_search_text()
        return bookmark

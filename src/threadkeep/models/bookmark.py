"""Bookmark data model."""

from datetime import datetime, timezone
from enum import Enum
from typing import Generic, List, Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class MediaType(str, Enum):
    """Media attachment kind, inferred once from the URL."""

    IMAGE = "image"
    VIDEO = "video"
    GIF = "gif"
    UNKNOWN = "unknown"

    @classmethod
    def from_storage(cls, value: Optional[str]) -> "MediaType":
        """Map a stored type tag back to an enum member (unknown tags fall through)."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class Media(BaseModel):
    """Media attachment (image, video, animated image)."""

    url: str = Field(..., min_length=1, description="Media URL")
    media_type: MediaType = Field(default=MediaType.UNKNOWN, description="Classified type")


class Bookmark(BaseModel):
    """Canonical bookmark record shared by all export dialects."""

    # Identity
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique identifier (UUID)",
    )
    post_url: str = Field(..., min_length=1, description="Post URL (natural key)")

    # Text
    content: str = Field(default="", description="Post text")
    note_text: Optional[str] = Field(None, description="Extended note text")

    # Timestamps
    posted_at: datetime = Field(..., description="When the original post was made")
    imported_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When this bookmark was ingested",
    )

    # Author
    author_handle: str = Field(..., min_length=1, description="Author handle")
    author_name: str = Field(..., description="Author display name")
    author_profile_url: Optional[str] = Field(None, description="Author profile URL")
    author_profile_image: Optional[str] = Field(None, description="Author avatar URL")

    # Categorization
    tags: List[str] = Field(default_factory=list, description="Tags in display order")
    comments: Optional[str] = Field(None, description="User comment")
    media: List[Media] = Field(default_factory=list, description="Ordered media attachments")
    is_favorite: bool = Field(default=False, description="Favorite flag")

    # Derived, feeds the search index only
    search_text: str = Field(default="", exclude=True, repr=False)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "post_url": "https://x.com/rustlang/status/1785000000000000000",
                "content": "Rust 1.78 is out! #rust",
                "posted_at": "2024-05-01T14:51:00Z",
                "author_handle": "rustlang",
                "author_name": "Rust Language",
                "tags": ["programming"],
                "media": [
                    {"url": "https://pbs.twimg.com/media/abc.jpg", "media_type": "image"}
                ],
                "is_favorite": False,
            }
        }
    )

    @field_validator("posted_at", "imported_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Store every timestamp as an aware UTC datetime in whole seconds.

        The database keeps epoch seconds, so sub-second parts are dropped
        here to make a fetched record equal to the one that was built.
        """
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc).replace(microsecond=0)

    def compute_search_text(self) -> str:
        """Rebuild the search blob from the current field values."""
        parts = [self.content, self.author_handle, self.author_name]
        if self.note_text:
            parts.append(self.note_text)
        if self.comments:
            parts.append(self.comments)
        parts.extend(self.tags)

        self.search_text = " ".join(parts)
        return self.search_text


class TagCount(BaseModel):
    """Tag name with the number of bookmarks linked to it."""

    name: str
    count: int = Field(..., ge=0)


class BookmarkStats(BaseModel):
    """Corpus-level aggregate counts."""

    total_bookmarks: int = 0
    unique_authors: int = 0
    unique_tags: int = 0
    favorite_bookmarks: int = 0
    earliest_date: Optional[datetime] = None
    latest_date: Optional[datetime] = None
    top_tags: List[TagCount] = Field(default_factory=list)


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of results plus the total matching count."""

    items: List[T] = Field(default_factory=list)
    total: int = 0
    offset: int = 0
    limit: int = 0
    has_more: bool = False

    @classmethod
    def build(cls, items: List[T], total: int, offset: int, limit: int) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            offset=offset,
            limit=limit,
            has_more=(offset + len(items)) < total,
        )

"""SQLite storage for bookmarks with an FTS5 search index.

One ``BookmarkStore`` owns one connection. It does no locking of its own:
callers that share a store across threads must serialize access to it.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from ..models.bookmark import Bookmark, Media, MediaType
from ..utils.date_utils import from_epoch, to_epoch
from .schema import CONNECTION_PRAGMAS, FILE_PRAGMAS, SCHEMA_SQL

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

BOOKMARK_COLUMNS = (
    "b.id, b.post_url, b.content, b.note_text, b.posted_at, b.imported_at, "
    "b.author_handle, b.author_name, b.author_profile_url, b.author_profile_image, "
    "b.comments, b.is_favorite"
)

_NATURAL_KEY_VIOLATION = "bookmarks.post_url"


class StorageError(Exception):
    """Storage-related error."""

    pass


class BookmarkNotFoundError(Exception):
    """Bookmark not found error."""

    pass


class RecordOutcome(str, Enum):
    """What happened to one record in a batch insert."""

    INSERTED = "inserted"
    SKIPPED_DUPLICATE = "skipped_duplicate"


@dataclass
class BatchReport:
    """Per-record outcomes of one insert transaction, in input order."""

    outcomes: List[Tuple[str, RecordOutcome]] = field(default_factory=list)

    def _count(self, outcome: RecordOutcome) -> int:
        return sum(1 for _, o in self.outcomes if o is outcome)

    @property
    def inserted(self) -> int:
        return self._count(RecordOutcome.INSERTED)

    @property
    def skipped_duplicates(self) -> int:
        return self._count(RecordOutcome.SKIPPED_DUPLICATE)

    @property
    def total(self) -> int:
        return len(self.outcomes)


def is_natural_key_violation(error: sqlite3.IntegrityError) -> bool:
    """True when the error is the post URL uniqueness constraint."""
    message = str(error)
    return "UNIQUE" in message and _NATURAL_KEY_VIOLATION in message


class BookmarkStore:
    """Owns the SQLite connection, schema and all bookmark reads and writes."""

    def __init__(self, db_path: Union[str, Path] = MEMORY_PATH):
        """Open (creating if needed) the database and apply the schema.

        Args:
            db_path: Database file path, or ":memory:" for a private in-memory store

        Raises:
            StorageError: If the database cannot be opened or initialized
        """
        self.db_path = str(db_path)
        self.is_memory = self.db_path == MEMORY_PATH

        try:
            if not self.is_memory:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            logger.info(f"Opening database at: {self.db_path}")
            # Autocommit mode; transactions are issued explicitly.
            self.conn = sqlite3.connect(self.db_path, isolation_level=None)
            self.conn.row_factory = sqlite3.Row
            self._initialize()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Failed to open database {self.db_path}: {e}") from e

    @classmethod
    def open(cls, path: Union[str, Path]) -> "BookmarkStore":
        return cls(path)

    @classmethod
    def open_memory(cls) -> "BookmarkStore":
        return cls(MEMORY_PATH)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "BookmarkStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _initialize(self) -> None:
        """Apply pragmas, create the schema and migrate older databases."""
        if not self.is_memory:
            for pragma in FILE_PRAGMAS:
                self.conn.execute(pragma)
        for pragma in CONNECTION_PRAGMAS:
            self.conn.execute(pragma)

        # Older databases need the column before the schema script indexes it.
        self._ensure_is_favorite_column()
        self.conn.executescript(SCHEMA_SQL)
        logger.debug("Database initialized")

    def _ensure_is_favorite_column(self) -> None:
        columns = {row["name"].lower() for row in self.conn.execute("PRAGMA table_info(bookmarks)")}
        if columns and "is_favorite" not in columns:
            logger.info("Adding is_favorite column to bookmarks table")
            self.conn.execute("ALTER TABLE bookmarks ADD COLUMN is_favorite INTEGER NOT NULL DEFAULT 0")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_batch(self, bookmarks: Sequence[Bookmark]) -> BatchReport:
        """Insert bookmarks in one transaction.

        Each record is written under its own savepoint. A natural-key
        collision rolls back only that record and is reported as
        SKIPPED_DUPLICATE. Any other failure rolls back the whole batch.

        Args:
            bookmarks: Canonical bookmarks to persist

        Returns:
            BatchReport with one (id, outcome) pair per input record

        Raises:
            StorageError: If a non-duplicate error occurs (batch rolled back)
        """
        report = BatchReport()
        if not bookmarks:
            return report

        try:
            self.conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise StorageError(f"Could not start transaction: {e}") from e

        try:
            for bookmark in bookmarks:
                self.conn.execute("SAVEPOINT bookmark_insert")
                try:
                    self._insert_one(bookmark)
                except sqlite3.IntegrityError as e:
                    self.conn.execute("ROLLBACK TO bookmark_insert")
                    self.conn.execute("RELEASE bookmark_insert")
                    if not is_natural_key_violation(e):
                        raise
                    logger.debug(f"Skipping duplicate bookmark: {bookmark.post_url}")
                    report.outcomes.append((bookmark.id, RecordOutcome.SKIPPED_DUPLICATE))
                    continue

                self.conn.execute("RELEASE bookmark_insert")
                report.outcomes.append((bookmark.id, RecordOutcome.INSERTED))

            self.conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback()
            logger.error(f"Batch insert failed, rolled back {len(bookmarks)} records: {e}")
            raise StorageError(f"Failed to insert bookmarks: {e}") from e
        except Exception:
            self._rollback()
            logger.error(f"Batch insert aborted, rolled back {len(bookmarks)} records")
            raise

        return report

    def insert_bookmarks(self, bookmarks: Sequence[Bookmark]) -> int:
        """Insert bookmarks in one transaction and return how many were new."""
        return self.insert_batch(bookmarks).inserted

    def _rollback(self) -> None:
        if self.conn.in_transaction:
            try:
                self.conn.execute("ROLLBACK")
            except sqlite3.Error as e:
                logger.error(f"Rollback failed: {e}")

    def _insert_one(self, bookmark: Bookmark) -> None:
        """Write base row, tag links, media and search-shadow row."""
        self.conn.execute(
            """
            INSERT INTO bookmarks
                (id, post_url, content, note_text, posted_at, imported_at,
                 author_handle, author_name, author_profile_url, author_profile_image,
                 comments, is_favorite)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                bookmark.id,
                bookmark.post_url,
                bookmark.content,
                bookmark.note_text,
                to_epoch(bookmark.posted_at),
                to_epoch(bookmark.imported_at),
                bookmark.author_handle,
                bookmark.author_name,
                bookmark.author_profile_url,
                bookmark.author_profile_image,
                bookmark.comments,
                int(bookmark.is_favorite),
            ),
        )

        for tag in bookmark.tags:
            self.conn.execute("INSERT OR IGNORE INTO tags (name) VALUES (?)", (tag,))
            self.conn.execute(
                """
                INSERT OR IGNORE INTO bookmark_tags (bookmark_id, tag_id)
                SELECT ?, id FROM tags WHERE name = ?
                """,
                (bookmark.id, tag),
            )

        self.conn.executemany(
            "INSERT INTO media (bookmark_id, url, media_type) VALUES (?, ?, ?)",
            [(bookmark.id, m.url, m.media_type.value) for m in bookmark.media],
        )

        self.conn.execute(
            """
            INSERT INTO bookmarks_fts_content
                (bookmark_id, content, note_text, author_handle, author_name, comments, tags_text)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                bookmark.id,
                bookmark.content,
                bookmark.note_text,
                bookmark.author_handle,
                bookmark.author_name,
                bookmark.comments,
                " ".join(bookmark.tags),
            ),
        )

    def delete_bookmark(self, bookmark_id: str) -> bool:
        """Delete a bookmark; tag links, media and its index entry cascade.

        Returns:
            True if a row was removed
        """
        try:
            cursor = self.conn.execute("DELETE FROM bookmarks WHERE id = ?", (bookmark_id,))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete bookmark {bookmark_id}: {e}") from e

        deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted bookmark {bookmark_id}")
        return deleted

    def toggle_favorite(self, bookmark_id: str) -> bool:
        """Flip the favorite flag and return the new value.

        Raises:
            BookmarkNotFoundError: If no bookmark has this id
        """
        try:
            cursor = self.conn.execute(
                "UPDATE bookmarks SET is_favorite = NOT is_favorite WHERE id = ?",
                (bookmark_id,),
            )
            if cursor.rowcount == 0:
                raise BookmarkNotFoundError(f"Bookmark not found: {bookmark_id}")

            row = self.conn.execute(
                "SELECT is_favorite FROM bookmarks WHERE id = ?", (bookmark_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to toggle favorite for {bookmark_id}: {e}") from e

        return bool(row["is_favorite"])

    def set_favorite(self, bookmark_id: str, favorite: bool) -> bool:
        """Set the favorite flag.

        Returns:
            True if a bookmark with this id exists
        """
        try:
            cursor = self.conn.execute(
                "UPDATE bookmarks SET is_favorite = ? WHERE id = ?",
                (int(favorite), bookmark_id),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to set favorite for {bookmark_id}: {e}") from e
        return cursor.rowcount > 0

    def rebuild_search_index(self) -> int:
        """Recompute every search-shadow row from current values and rebuild FTS.

        Returns:
            Number of shadow rows rewritten
        """
        try:
            self.conn.execute("BEGIN IMMEDIATE")
            rows = self.conn.execute(
                """
                SELECT id, content, note_text, author_handle, author_name, comments
                FROM bookmarks
                """
            ).fetchall()
            rewritten = 0
            for row in rows:
                tags_text = " ".join(self.load_bookmark_tags(row["id"]))
                cursor = self.conn.execute(
                    """
                    UPDATE bookmarks_fts_content
                    SET content = ?, note_text = ?, author_handle = ?,
                        author_name = ?, comments = ?, tags_text = ?
                    WHERE bookmark_id = ?
                    """,
                    (
                        row["content"],
                        row["note_text"],
                        row["author_handle"],
                        row["author_name"],
                        row["comments"],
                        tags_text,
                        row["id"],
                    ),
                )
                rewritten += cursor.rowcount
            self.conn.execute("INSERT INTO bookmarks_fts(bookmarks_fts) VALUES ('rebuild')")
            self.conn.execute("COMMIT")
        except (sqlite3.Error, StorageError) as e:
            self._rollback()
            raise StorageError(f"Failed to rebuild search index: {e}") from e

        logger.info(f"Rebuilt search index ({rewritten} rows)")
        return rewritten

    def integrity_check(self) -> bool:
        """Run the FTS5 integrity check against the shadow table."""
        try:
            self.conn.execute("INSERT INTO bookmarks_fts(bookmarks_fts) VALUES ('integrity-check')")
        except sqlite3.DatabaseError as e:
            logger.warning(f"Search index integrity check failed: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query_all(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Query failed: {e}") from e

    def query_one(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        try:
            return self.conn.execute(sql, tuple(params)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Query failed: {e}") from e

    def scalar(self, sql: str, params: Iterable[Any] = ()) -> Any:
        row = self.query_one(sql, params)
        return None if row is None else row[0]

    def fetch_bookmarks(self, sql: str, params: Iterable[Any] = ()) -> List[Bookmark]:
        """Run a query selecting BOOKMARK_COLUMNS and hydrate tags and media."""
        bookmarks = [self._row_to_bookmark(row) for row in self.query_all(sql, params)]
        self._hydrate(bookmarks)
        return bookmarks

    def get_bookmark(self, bookmark_id: str) -> Optional[Bookmark]:
        bookmarks = self.fetch_bookmarks(
            f"SELECT {BOOKMARK_COLUMNS} FROM bookmarks b WHERE b.id = ?",
            (bookmark_id,),
        )
        return bookmarks[0] if bookmarks else None

    def get_bookmark_by_url(self, post_url: str) -> Optional[Bookmark]:
        bookmarks = self.fetch_bookmarks(
            f"SELECT {BOOKMARK_COLUMNS} FROM bookmarks b WHERE b.post_url = ?",
            (post_url,),
        )
        return bookmarks[0] if bookmarks else None

    def load_bookmark_tags(self, bookmark_id: str) -> List[str]:
        rows = self.query_all(
            """
            SELECT t.name FROM bookmark_tags bt
            JOIN tags t ON t.id = bt.tag_id
            WHERE bt.bookmark_id = ?
            ORDER BY bt.rowid
            """,
            (bookmark_id,),
        )
        return [row["name"] for row in rows]

    def load_bookmark_media(self, bookmark_id: str) -> List[Media]:
        rows = self.query_all(
            "SELECT url, media_type FROM media WHERE bookmark_id = ? ORDER BY id",
            (bookmark_id,),
        )
        return [
            Media(url=row["url"], media_type=MediaType.from_storage(row["media_type"]))
            for row in rows
        ]

    def _hydrate(self, bookmarks: List[Bookmark]) -> None:
        """Second fetch phase: attach tags and media to each base row."""
        for bookmark in bookmarks:
            bookmark.tags = self.load_bookmark_tags(bookmark.id)
            bookmark.media = self.load_bookmark_media(bookmark.id)
            bookmark.compute_search_text()

    @staticmethod
    def _row_to_bookmark(row: sqlite3.Row) -> Bookmark:
        return Bookmark(
            id=row["id"],
            post_url=row["post_url"],
            content=row["content"],
            note_text=row["note_text"],
            posted_at=from_epoch(row["posted_at"]),
            imported_at=from_epoch(row["imported_at"]),
            author_handle=row["author_handle"],
            author_name=row["author_name"],
            author_profile_url=row["author_profile_url"],
            author_profile_image=row["author_profile_image"],
            comments=row["comments"],
            is_favorite=bool(row["is_favorite"]),
        )

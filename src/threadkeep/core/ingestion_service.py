"""File ingestion: detect, parse, normalize, then persist in batches."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..models.bookmark import Bookmark
from .detector import FileDialect, detect_file_type
from .exceptions import FormatUndetectedError, IngestionError, UnsupportedFileTypeError
from .parsers import RowFailure, get_parser
from .storage_manager import BookmarkStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "FormatUndetectedError",
    "IngestReport",
    "IngestionError",
    "IngestionService",
    "UnsupportedFileTypeError",
]


@dataclass
class IngestReport:
    """Result of ingesting one file."""

    path: str
    dialect: Optional[FileDialect] = None
    parsed: int = 0
    inserted: int = 0
    skipped_duplicates: int = 0
    batches: int = 0
    failed_rows: List[RowFailure] = field(default_factory=list)


class IngestionService:
    """Drives detection, parsing and batched persistence for export files."""

    def __init__(self, store: BookmarkStore, batch_size: int = DEFAULT_BATCH_SIZE):
        """Initialize ingestion service.

        Args:
            store: Storage handle the bookmarks are written to
            batch_size: Bookmarks per insert transaction

        Raises:
            ValueError: If batch_size is less than 1
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.store = store
        self.batch_size = batch_size

    def ingest(self, path: Union[str, Path]) -> int:
        """Ingest a file and return the number of newly stored bookmarks."""
        return self.ingest_file(path).inserted

    def ingest_file(self, path: Union[str, Path]) -> IngestReport:
        """Ingest one export file.

        Args:
            path: Path to a .csv or .json export

        Returns:
            IngestReport with parse and insert counts

        Raises:
            IngestionError: If the file is missing or unreadable
            UnsupportedFileTypeError: If the extension is not supported
            FormatUndetectedError: If CSV headers match no dialect
            StorageError: If a batch fails for a reason other than a duplicate
        """
        path = Path(path)
        report = IngestReport(path=str(path))

        if not path.is_file():
            # Extension check still comes first so unsupported files fail the same way.
            if path.suffix.lstrip(".").lower() not in ("csv", "json"):
                raise UnsupportedFileTypeError(path.suffix.lstrip(".").lower())
            raise IngestionError(f"File not found: {path}")

        report.dialect = detect_file_type(path)

        result = get_parser(report.dialect).parse(path)
        report.parsed = len(result.bookmarks)
        report.failed_rows = result.skipped

        if result.skipped:
            logger.warning(f"Skipped {len(result.skipped)} unparseable rows in {path.name}")

        self._insert(result.bookmarks, report)

        logger.info(
            f"Ingested {path.name}: {report.inserted} new, "
            f"{report.skipped_duplicates} duplicates, {len(report.failed_rows)} rows skipped"
        )
        return report

    def ingest_bookmarks(self, bookmarks: Sequence[Bookmark]) -> IngestReport:
        """Persist already-built bookmarks using the same batching."""
        report = IngestReport(path="<memory>", parsed=len(bookmarks))
        self._insert(bookmarks, report)
        return report

    def _insert(self, bookmarks: Sequence[Bookmark], report: IngestReport) -> None:
        """Insert in fixed-size batches; a StorageError stops the remaining batches."""
        total = len(bookmarks)
        logger.info(f"Inserting {total} bookmarks in batches of {self.batch_size}")

        for start in range(0, total, self.batch_size):
            chunk = bookmarks[start:start + self.batch_size]
            batch = self.store.insert_batch(chunk)

            report.batches += 1
            report.inserted += batch.inserted
            report.skipped_duplicates += batch.skipped_duplicates
            logger.debug(
                f"Batch {report.batches}: {batch.inserted} inserted, "
                f"{batch.skipped_duplicates} duplicates"
            )

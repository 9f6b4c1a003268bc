"""Export dialect detection."""

import csv
import logging
from enum import Enum
from pathlib import Path

from .exceptions import FormatUndetectedError, IngestionError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

LEGACY_MARKERS = ("tweet date", "posted by")
NEW_MARKERS = ("screen_name", "tweeted_at")


class FileDialect(str, Enum):
    """Supported export dialects."""

    LEGACY_CSV = "legacy_csv"
    NEW_CSV = "new_csv"
    JSON = "json"


def classify_header(header: list[str]) -> FileDialect:
    """Classify a CSV header row.

    Raises:
        FormatUndetectedError: If neither marker set matches
    """
    joined = ",".join(header).lower()

    if any(marker in joined for marker in LEGACY_MARKERS):
        return FileDialect.LEGACY_CSV
    if any(marker in joined for marker in NEW_MARKERS):
        return FileDialect.NEW_CSV
    raise FormatUndetectedError(joined)


def detect_csv_dialect(path: Path) -> FileDialect:
    """Read the header row of a CSV file and classify it.

    Raises:
        IngestionError: If the file cannot be read
        FormatUndetectedError: If the header matches no dialect
    """
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            header = next(csv.reader(f), [])
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise IngestionError(f"Could not read {path}: {e}") from e

    return classify_header(header)


def detect_file_type(path: Path) -> FileDialect:
    """Detect the export dialect of a file from its extension and header.

    Args:
        path: Export file path

    Returns:
        FileDialect for the file

    Raises:
        UnsupportedFileTypeError: If the extension is not csv or json
        FormatUndetectedError: If a CSV header matches no dialect
        IngestionError: If the file cannot be read
    """
    path = Path(path)
    extension = path.suffix.lstrip(".").lower()

    if extension == "json":
        dialect = FileDialect.JSON
    elif extension == "csv":
        dialect = detect_csv_dialect(path)
    else:
        raise UnsupportedFileTypeError(extension)

    logger.info(f"Detected {dialect.value} format for {path.name}")
    return dialect

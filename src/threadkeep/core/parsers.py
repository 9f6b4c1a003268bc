"""Dialect parsers for bookmark exports.

Each parser turns one export file into canonical bookmarks. A row that fails
field extraction, date parsing or validation is logged with its row number
and skipped; the rest of the file is still returned.

Legacy CSV columns (positional):
    0 Tweet Date, 1 Posted By, 2 Profile Pic, 3 Profile URL, 4 Twitter Handle,
    5 Tweet URL, 6 Content, 7 Tags (comma-separated), 8 Comments,
    9 Media (semicolon-separated)

New CSV columns (positional):
    0 profile_image_url_https, 1 screen_name, 2 name, 3 full_text,
    4 note_tweet_text, 5 tweeted_at, 6 tweet_url
"""

import csv
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..models.bookmark import Bookmark
from ..utils.date_utils import parse_json_date, parse_legacy_date, parse_new_date
from ..utils.url_utils import split_delimited
from .builder import BookmarkDraft
from .detector import FileDialect
from .exceptions import IngestionError

logger = logging.getLogger(__name__)

LEGACY_COLUMNS = 10
NEW_COLUMNS = 7

# First present alias wins; most format-specific names come first.
JSON_ALIASES: Dict[str, Tuple[str, ...]] = {
    "post_url": ("tweet_url", "url"),
    "content": ("full_text", "text", "content"),
    "note_text": ("note_tweet_text",),
    "posted_at": ("tweeted_at", "created_at"),
    "author_handle": ("screen_name", "author_handle", "username"),
    "author_name": ("name", "author_name", "display_name"),
    "author_profile_image": ("profile_image_url_https", "profile_image"),
}
JSON_MEDIA_URL_ALIASES = ("url", "media_url")


class RowParseError(ValueError):
    """A single row or entry could not be converted."""

    pass


@dataclass
class RowFailure:
    """A skipped row and why it was skipped."""

    row: int
    reason: str


@dataclass
class ParseResult:
    """Bookmarks parsed from one file plus the rows that were skipped."""

    bookmarks: List[Bookmark] = field(default_factory=list)
    skipped: List[RowFailure] = field(default_factory=list)

    def record_failure(self, row: int, error: Exception) -> None:
        logger.warning(f"Skipping row {row}: {error}")
        self.skipped.append(RowFailure(row=row, reason=str(error)))


def _pad(record: Sequence[str], width: int) -> List[str]:
    values = list(record[:width])
    values.extend([""] * (width - len(values)))
    return values


class CsvParser:
    """Shared CSV reading; subclasses map one positional record to a draft."""

    dialect: FileDialect
    columns: int

    def parse(self, path: Path) -> ParseResult:
        """Parse a CSV export.

        Args:
            path: CSV file path

        Returns:
            ParseResult with parsed bookmarks and skipped rows

        Raises:
            IngestionError: If the file cannot be opened or decoded
        """
        result = ParseResult()

        try:
            with open(path, "r", encoding="utf-8-sig", newline="") as f:
                reader = csv.reader(f)
                next(reader, None)

                # Row numbers count the header line, matching a spreadsheet view.
                for row_number, record in enumerate(self._records(reader), start=2):
                    if isinstance(record, csv.Error):
                        result.record_failure(row_number, record)
                        continue
                    if not any(cell.strip() for cell in record):
                        continue
                    try:
                        draft = self.to_draft(_pad(record, self.columns))
                        result.bookmarks.append(draft.build())
                    except ValueError as e:
                        result.record_failure(row_number, e)
        except (OSError, UnicodeDecodeError) as e:
            raise IngestionError(f"Could not read {path}: {e}") from e

        logger.debug(f"Parsed {len(result.bookmarks)} bookmarks from {self.dialect.value}")
        return result

    @staticmethod
    def _records(reader: Iterator[List[str]]) -> Iterator[Any]:
        """Yield records, turning malformed lines into csv.Error values."""
        while True:
            try:
                yield next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                yield e

    def to_draft(self, record: List[str]) -> BookmarkDraft:
        raise NotImplementedError


class LegacyCsvParser(CsvParser):
    """Parser for the older date/poster-centric CSV export."""

    dialect = FileDialect.LEGACY_CSV
    columns = LEGACY_COLUMNS

    def to_draft(self, record: List[str]) -> BookmarkDraft:
        (
            tweet_date,
            posted_by,
            profile_pic,
            profile_url,
            handle,
            tweet_url,
            content,
            tags,
            comments,
            media,
        ) = record

        draft = (
            BookmarkDraft()
            .set_post_url(tweet_url)
            .set_content(content)
            .set_posted_at(parse_legacy_date(tweet_date))
            .set_author_handle(handle)
            .set_author_name(posted_by)
            .set_author_profile_url(profile_url)
            .set_author_profile_image(profile_pic)
            .set_comments(comments)
        )

        for tag in split_delimited(tags, ","):
            draft.add_tag(tag)
        for url in split_delimited(media, ";"):
            draft.add_media(url)

        return draft


class NewCsvParser(CsvParser):
    """Parser for the handle/timestamp-centric CSV export."""

    dialect = FileDialect.NEW_CSV
    columns = NEW_COLUMNS

    def to_draft(self, record: List[str]) -> BookmarkDraft:
        (
            profile_image,
            screen_name,
            name,
            full_text,
            note_text,
            tweeted_at,
            tweet_url,
        ) = record

        return (
            BookmarkDraft()
            .set_post_url(tweet_url)
            .set_content(full_text)
            .set_note_text(note_text)
            .set_posted_at(parse_new_date(tweeted_at))
            .set_author_handle(screen_name)
            .set_author_name(name)
            .set_author_profile_image(profile_image)
        )


def _first_alias(entry: Dict[str, Any], aliases: Sequence[str]) -> Optional[str]:
    for alias in aliases:
        value = entry.get(alias)
        if value is not None:
            return str(value)
    return None


class JsonParser:
    """Parser for JSON exports: an array of objects with aliased field names."""

    dialect = FileDialect.JSON

    def parse(self, path: Path) -> ParseResult:
        """Parse a JSON export.

        Raises:
            IngestionError: If the file cannot be read or is not a JSON array
        """
        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise IngestionError(f"Invalid JSON in {path}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise IngestionError(f"Could not read {path}: {e}") from e

        if not isinstance(data, list):
            raise IngestionError(f"Expected a JSON array of bookmarks in {path}")

        result = ParseResult()
        for entry_number, entry in enumerate(data, start=1):
            try:
                result.bookmarks.append(self.to_draft(entry).build())
            except ValueError as e:
                result.record_failure(entry_number, e)

        logger.debug(f"Parsed {len(result.bookmarks)} bookmarks from json")
        return result

    def to_draft(self, entry: Any) -> BookmarkDraft:
        if not isinstance(entry, dict):
            raise RowParseError(f"Expected an object, got {type(entry).__name__}")

        post_url = _first_alias(entry, JSON_ALIASES["post_url"])
        if not post_url:
            raise RowParseError("Missing tweet URL")

        posted_at = parse_json_date(_first_alias(entry, JSON_ALIASES["posted_at"]))

        draft = (
            BookmarkDraft()
            .set_post_url(post_url)
            .set_content(_first_alias(entry, JSON_ALIASES["content"]))
            .set_note_text(_first_alias(entry, JSON_ALIASES["note_text"]))
            .set_posted_at(posted_at)
            .set_author_handle(_first_alias(entry, JSON_ALIASES["author_handle"]))
            .set_author_name(_first_alias(entry, JSON_ALIASES["author_name"]))
            .set_author_profile_image(_first_alias(entry, JSON_ALIASES["author_profile_image"]))
        )

        tags = entry.get("tags") or []
        if not isinstance(tags, list):
            raise RowParseError("tags must be an array of strings")
        for tag in tags:
            if isinstance(tag, str):
                draft.add_tag(tag)

        media = entry.get("media") or []
        if not isinstance(media, list):
            raise RowParseError("media must be an array of objects")
        for item in media:
            if isinstance(item, dict):
                draft.add_media(_first_alias(item, JSON_MEDIA_URL_ALIASES))

        return draft


_PARSERS = {
    FileDialect.LEGACY_CSV: LegacyCsvParser,
    FileDialect.NEW_CSV: NewCsvParser,
    FileDialect.JSON: JsonParser,
}


def get_parser(dialect: FileDialect):
    """Return a parser instance for a detected dialect."""
    return _PARSERS[dialect]()

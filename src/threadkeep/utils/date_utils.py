"""Timestamp parsing for the supported export dialects.

Each dialect tries a short ordered list of patterns and fails only when none
match. All results are timezone-aware UTC datetimes.
"""

from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

# "02:51 PM, May 01, 2024" then "May 01, 2024 02:51 PM"
LEGACY_PATTERNS = ("%I:%M %p, %b %d, %Y", "%b %d, %Y %I:%M %p")

# "2025-08-25T10:52:35.000Z" then "2025-08-25T10:52:35"
NEW_PATTERNS = ("%Y-%m-%dT%H:%M:%S.%fZ", "%Y-%m-%dT%H:%M:%S")

# "Wed Oct 10 20:19:24 +0000 2018"
SOCIAL_PATTERN = "%a %b %d %H:%M:%S %z %Y"


class DateParseError(ValueError):
    """Timestamp did not match any known pattern."""

    pass


def _clean(value: Optional[str]) -> str:
    return (value or "").strip().strip('"').strip()


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso8601(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 / ISO-8601 timestamp, or return None."""
    text = value
    # fromisoformat only accepts a trailing "Z" from Python 3.11 on.
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return _to_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def _try_patterns(value: str, patterns: Sequence[str]) -> Optional[datetime]:
    for pattern in patterns:
        try:
            return _to_utc(datetime.strptime(value, pattern))
        except ValueError:
            continue
    return None


def _parse_with(value: Optional[str], steps: Sequence[Callable[[str], Optional[datetime]]]) -> datetime:
    text = _clean(value)
    if not text:
        raise DateParseError("Missing date")

    for step in steps:
        parsed = step(text)
        if parsed is not None:
            return parsed

    raise DateParseError(f"Could not parse date: {text}")


def parse_legacy_date(value: Optional[str]) -> datetime:
    """Parse a legacy CSV timestamp such as "02:51 PM, May 01, 2024"."""
    return _parse_with(
        value,
        [lambda s: _try_patterns(s, LEGACY_PATTERNS), parse_iso8601],
    )


def parse_new_date(value: Optional[str]) -> datetime:
    """Parse a new-style CSV timestamp such as "2025-08-25T10:52:35.000Z"."""
    return _parse_with(
        value,
        [
            parse_iso8601,
            lambda s: _try_patterns(s, NEW_PATTERNS),
            lambda s: _try_patterns(s, (SOCIAL_PATTERN,)),
        ],
    )


def parse_json_date(value: Optional[str]) -> datetime:
    """Parse a JSON export timestamp (ISO-8601 or the social-media form)."""
    return _parse_with(
        value,
        [parse_iso8601, lambda s: _try_patterns(s, (SOCIAL_PATTERN,))],
    )


def to_epoch(dt: datetime) -> int:
    """Whole epoch seconds for storage."""
    return int(_to_utc(dt).timestamp())


def from_epoch(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)

"""Search result presentation helpers."""

import re


def highlight_matches(text: str, query: str, start: str = "<mark>", end: str = "</mark>") -> str:
    """Wrap case-insensitive occurrences of each query term.

    Args:
        text: Text to highlight
        query: Whitespace-separated search terms
        start: Marker inserted before a match
        end: Marker inserted after a match

    Returns:
        Text with matches wrapped, or the original text for an empty query

    Example:
        highlight_matches("Rust is great", "rust") -> "<mark>Rust</mark> is great"
    """
    terms = [t for t in query.split() if t]
    if not terms:
        return text

    # Longest first so overlapping terms prefer the longer match.
    terms.sort(key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(t) for t in terms), re.IGNORECASE)
    return pattern.sub(lambda m: f"{start}{m.group(0)}{end}", text)


def extract_snippet(text: str, query: str, context_chars: int = 60) -> str:
    """Return a window of text around the first match of query.

    Args:
        text: Full text
        query: Phrase to locate (case-insensitive)
        context_chars: Characters kept on each side of the match

    Returns:
        Snippet with "..." marking truncated ends. Without a match, the head
        of the text is returned instead.
    """
    pos = text.lower().find(query.lower()) if query else -1

    if pos < 0:
        if len(text) > context_chars * 2:
            return f"{text[:context_chars * 2]}..."
        return text

    begin = max(0, pos - context_chars)
    finish = min(len(text), pos + len(query) + context_chars)

    snippet = text[begin:finish]
    if begin > 0:
        snippet = "..." + snippet
    if finish < len(text):
        snippet = snippet + "..."
    return snippet

"""Exact-match quote search over raw document text.

Matching is literal (the search term is escaped, never interpreted as a
pattern) and case-insensitive by default. Offsets always refer to the original
content: case-insensitive matching runs a regex over the content itself rather
than over a lowercased copy, whose length can differ for some scripts.
"""
from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class QuoteResult:
    """First occurrence of a term; every field but ``found`` is None on a miss."""

    found: bool
    quote: str | None = None          # matched substring, original casing
    line_number: int | None = None    # 1-based
    char_position: int | None = None  # 0-based
    context: str | None = None


@dataclass(frozen=True, slots=True)
class QuoteMatch:
    char_position: int
    line_number: int
    quote: str
    context: str


@dataclass(frozen=True, slots=True)
class QuoteMatches:
    matches: tuple[QuoteMatch, ...]
    total_count: int


# ---------------------------------------------------------------------------
# Line tables
# ---------------------------------------------------------------------------


def compute_line_starts(text: str) -> list[int]:
    """Char offsets of every line start; position 0 is always one."""
    starts = [0]
    for i, ch in enumerate(text):
        if ch == "\n":
            starts.append(i + 1)
    return starts


def line_number_at(line_starts: list[int], position: int) -> int:
    """1-based line containing ``position``, by binary search."""
    return bisect_right(line_starts, position)


def get_line(content: str, line_number: int) -> str | None:
    """Text of the 1-based line ``line_number``, or None when out of range."""
    lines = content.split("\n")
    if line_number < 1 or line_number > len(lines):
        return None
    return lines[line_number - 1]


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def _pattern(search_text: str, case_sensitive: bool) -> re.Pattern[str]:
    return re.compile(re.escape(search_text), 0 if case_sensitive else re.IGNORECASE)


def _context(content: str, start: int, end: int, context_chars: int) -> str:
    return content[max(0, start - context_chars):min(len(content), end + context_chars)]


def get_exact_quote(
    content: str,
    search_text: str,
    *,
    context_chars: int = 100,
    case_sensitive: bool = False,
) -> QuoteResult:
    """Find the first occurrence of ``search_text`` in ``content``.

    Line numbering counts newlines in the prefix, which is fine for a single
    lookup; use ``get_exact_quote_all`` for repeated lookups.
    """
    if not search_text.strip():
        return QuoteResult(found=False)
    m = _pattern(search_text, case_sensitive).search(content)
    if m is None:
        return QuoteResult(found=False)
    pos = m.start()
    return QuoteResult(
        found=True,
        quote=m.group(0),
        line_number=content.count("\n", 0, pos) + 1,
        char_position=pos,
        context=_context(content, pos, m.end(), context_chars),
    )


def get_exact_quote_all(
    content: str,
    search_text: str,
    *,
    context_chars: int = 50,
    case_sensitive: bool = False,
) -> QuoteMatches:
    """Find every non-overlapping occurrence of ``search_text``.

    Line starts are computed once; each match is then placed by binary search,
    so a common term with thousands of hits stays O(n + m log L).
    """
    if not search_text.strip():
        return QuoteMatches(matches=(), total_count=0)
    line_starts = compute_line_starts(content)
    matches = tuple(
        QuoteMatch(
            char_position=m.start(),
            line_number=line_number_at(line_starts, m.start()),
            quote=m.group(0),
            context=_context(content, m.start(), m.end(), context_chars),
        )
        for m in _pattern(search_text, case_sensitive).finditer(content)
    )
    return QuoteMatches(matches=matches, total_count=len(matches))

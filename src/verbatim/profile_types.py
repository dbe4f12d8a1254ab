"""Document profile types: flat boundary tables with character offsets.

A profile is computed once per document (``profiler.analyze_document``) and
treated as immutable afterwards. Boundaries are stored as tuples indexed by
position: O(1) access by index, and offset lookups by binary search over the
start offsets.

Offset conventions:
    - All offsets are 0-based, ``end`` exclusive.
    - Lines exclude their terminating ``\\n``; consecutive lines are separated
      by exactly one newline character.
    - Sentences and paragraphs partition ``[0, char_count)``: whitespace
      between two units belongs to the earlier one, leading whitespace to the
      first one.
"""
from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any


class InvalidProfileError(RuntimeError):
    """Raised when a profile's boundary tables violate their invariants.

    This is a contract violation by whoever produced the profile; the engine
    never repairs boundaries itself.
    """


# ---------------------------------------------------------------------------
# Boundary types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LineBoundary:
    """A line of the document (without its newline)."""

    index: int      # 0-based
    start: int
    end: int        # exclusive, before the newline


@dataclass(frozen=True, slots=True)
class SentenceBoundary:
    """A sentence: span covers trailing whitespace, ``text`` is trimmed."""

    index: int
    start: int
    end: int
    line_number: int    # 1-based line of the first non-whitespace char
    word_count: int
    text: str


@dataclass(frozen=True, slots=True)
class ParagraphBoundary:
    """A paragraph: a run of non-blank lines plus the blank lines after it."""

    index: int
    start: int
    end: int
    line_start: int       # 1-based first non-blank line
    line_end: int         # 1-based last non-blank line
    sentence_start: int   # inclusive index into profile.sentences
    sentence_end: int     # inclusive
    word_count: int


@dataclass(frozen=True, slots=True)
class DocumentProfile:
    """Structural index of one document."""

    char_count: int
    word_count: int
    line_count: int
    non_blank_line_count: int
    sentence_count: int
    paragraph_count: int
    sentences: tuple[SentenceBoundary, ...]
    paragraphs: tuple[ParagraphBoundary, ...]
    lines: tuple[LineBoundary, ...]
    first_sentence: str
    last_sentence: str
    avg_words_per_sentence: float
    avg_sentences_per_paragraph: float
    analyzed_at: str
    analyzer_version: str


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def profile_to_dict(profile: DocumentProfile) -> dict[str, Any]:
    """Serialize a profile into a JSON-ready dict."""
    return {
        "char_count": profile.char_count,
        "word_count": profile.word_count,
        "line_count": profile.line_count,
        "non_blank_line_count": profile.non_blank_line_count,
        "sentence_count": profile.sentence_count,
        "paragraph_count": profile.paragraph_count,
        "sentences": [
            {
                "index": s.index,
                "start": s.start,
                "end": s.end,
                "line_number": s.line_number,
                "word_count": s.word_count,
                "text": s.text,
            }
            for s in profile.sentences
        ],
        "paragraphs": [
            {
                "index": p.index,
                "start": p.start,
                "end": p.end,
                "line_start": p.line_start,
                "line_end": p.line_end,
                "sentence_start": p.sentence_start,
                "sentence_end": p.sentence_end,
                "word_count": p.word_count,
            }
            for p in profile.paragraphs
        ],
        "lines": [
            {"index": ln.index, "start": ln.start, "end": ln.end}
            for ln in profile.lines
        ],
        "first_sentence": profile.first_sentence,
        "last_sentence": profile.last_sentence,
        "avg_words_per_sentence": profile.avg_words_per_sentence,
        "avg_sentences_per_paragraph": profile.avg_sentences_per_paragraph,
        "analyzed_at": profile.analyzed_at,
        "analyzer_version": profile.analyzer_version,
    }


def profile_from_dict(payload: dict[str, Any]) -> DocumentProfile:
    """Rebuild a profile from ``profile_to_dict`` output.

    Raises InvalidProfileError when required keys are missing or malformed.
    """
    try:
        return DocumentProfile(
            char_count=int(payload["char_count"]),
            word_count=int(payload["word_count"]),
            line_count=int(payload["line_count"]),
            non_blank_line_count=int(payload["non_blank_line_count"]),
            sentence_count=int(payload["sentence_count"]),
            paragraph_count=int(payload["paragraph_count"]),
            sentences=tuple(
                SentenceBoundary(
                    index=int(s["index"]),
                    start=int(s["start"]),
                    end=int(s["end"]),
                    line_number=int(s["line_number"]),
                    word_count=int(s["word_count"]),
                    text=str(s["text"]),
                )
                for s in payload["sentences"]
            ),
            paragraphs=tuple(
                ParagraphBoundary(
                    index=int(p["index"]),
                    start=int(p["start"]),
                    end=int(p["end"]),
                    line_start=int(p["line_start"]),
                    line_end=int(p["line_end"]),
                    sentence_start=int(p["sentence_start"]),
                    sentence_end=int(p["sentence_end"]),
                    word_count=int(p["word_count"]),
                )
                for p in payload["paragraphs"]
            ),
            lines=tuple(
                LineBoundary(index=int(ln["index"]), start=int(ln["start"]), end=int(ln["end"]))
                for ln in payload["lines"]
            ),
            first_sentence=str(payload["first_sentence"]),
            last_sentence=str(payload["last_sentence"]),
            avg_words_per_sentence=float(payload["avg_words_per_sentence"]),
            avg_sentences_per_paragraph=float(payload["avg_sentences_per_paragraph"]),
            analyzed_at=str(payload["analyzed_at"]),
            analyzer_version=str(payload["analyzer_version"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidProfileError(f"Malformed profile payload: {exc!r}") from exc


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _check_partition(
    kind: str,
    spans: tuple[SentenceBoundary, ...] | tuple[ParagraphBoundary, ...],
    char_count: int,
) -> None:
    if not spans:
        return
    if spans[0].start != 0:
        raise InvalidProfileError(f"first {kind} starts at {spans[0].start}, expected 0")
    for pos, span in enumerate(spans):
        if span.index != pos:
            raise InvalidProfileError(f"{kind} at position {pos} has index {span.index}")
        if span.end <= span.start:
            raise InvalidProfileError(
                f"{kind} {pos} is empty or inverted: [{span.start}, {span.end})",
            )
        if pos > 0 and span.start != spans[pos - 1].end:
            raise InvalidProfileError(
                f"{kind} {pos} starts at {span.start}, previous ends at {spans[pos - 1].end}",
            )
    if spans[-1].end != char_count:
        raise InvalidProfileError(
            f"last {kind} ends at {spans[-1].end}, expected char_count {char_count}",
        )


def validate_profile(profile: DocumentProfile, text: str | None = None) -> None:
    """Check every boundary invariant; raise InvalidProfileError on the first violation.

    When ``text`` is given the profile must also describe exactly that text.
    """
    if text is not None and len(text) != profile.char_count:
        raise InvalidProfileError(
            f"profile char_count {profile.char_count} != text length {len(text)}",
        )
    if profile.sentence_count != len(profile.sentences):
        raise InvalidProfileError(
            f"sentence_count {profile.sentence_count} != {len(profile.sentences)} boundaries",
        )
    if profile.paragraph_count != len(profile.paragraphs):
        raise InvalidProfileError(
            f"paragraph_count {profile.paragraph_count} != {len(profile.paragraphs)} boundaries",
        )
    if profile.line_count != len(profile.lines):
        raise InvalidProfileError(
            f"line_count {profile.line_count} != {len(profile.lines)} boundaries",
        )

    # Lines: consecutive, separated by exactly one newline, covering the text.
    if profile.lines:
        if profile.lines[0].start != 0:
            raise InvalidProfileError("first line does not start at 0")
        for pos, line in enumerate(profile.lines):
            if line.index != pos or line.end < line.start:
                raise InvalidProfileError(f"line {pos} is malformed: {line}")
            if pos > 0 and line.start != profile.lines[pos - 1].end + 1:
                raise InvalidProfileError(f"line {pos} is not preceded by a single newline")
            if text is not None and line.end < len(text) and text[line.end] != "\n":
                raise InvalidProfileError(f"line {pos} does not end at a newline")
        if profile.lines[-1].end != profile.char_count:
            raise InvalidProfileError("last line does not end at char_count")
    elif profile.char_count:
        raise InvalidProfileError("non-empty text has no lines")

    _check_partition("sentence", profile.sentences, profile.char_count)
    _check_partition("paragraph", profile.paragraphs, profile.char_count)
    if bool(profile.sentences) != bool(profile.paragraphs):
        raise InvalidProfileError("sentences and paragraphs must both be present or both absent")

    expected_next = 0
    for para in profile.paragraphs:
        if para.sentence_start != expected_next or para.sentence_end < para.sentence_start:
            raise InvalidProfileError(
                f"paragraph {para.index} sentence range "
                f"[{para.sentence_start}, {para.sentence_end}] is not contiguous",
            )
        if para.sentence_end >= len(profile.sentences):
            raise InvalidProfileError(
                f"paragraph {para.index} references sentence {para.sentence_end} "
                f"of {len(profile.sentences)}",
            )
        first = profile.sentences[para.sentence_start]
        last = profile.sentences[para.sentence_end]
        if first.start != para.start or last.end != para.end:
            raise InvalidProfileError(
                f"paragraph {para.index} span does not match its sentences",
            )
        expected_next = para.sentence_end + 1
    if profile.paragraphs and expected_next != len(profile.sentences):
        raise InvalidProfileError("sentences after the last paragraph are unowned")


# ---------------------------------------------------------------------------
# Offset lookups
# ---------------------------------------------------------------------------


def _index_at(starts: list[int], offset: int, char_count: int) -> int | None:
    if offset < 0 or offset >= char_count or not starts:
        return None
    return bisect_right(starts, offset) - 1


def sentence_index_at(profile: DocumentProfile, offset: int) -> int | None:
    """Return the index of the sentence containing ``offset``, or None."""
    return _index_at([s.start for s in profile.sentences], offset, profile.char_count)


def paragraph_index_at(profile: DocumentProfile, offset: int) -> int | None:
    """Return the index of the paragraph containing ``offset``, or None."""
    return _index_at([p.start for p in profile.paragraphs], offset, profile.char_count)


def line_index_at(profile: DocumentProfile, offset: int) -> int | None:
    """Return the 0-based line containing ``offset`` (a newline maps to its line)."""
    if offset < 0 or offset > profile.char_count or not profile.lines:
        return None
    return bisect_right([ln.start for ln in profile.lines], offset) - 1

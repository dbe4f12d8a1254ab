"""Phrase and clause detection within a single sentence.

Computed on demand from ``DocumentProfile.sentences``; nothing here is stored.
Offsets are relative to the sentence text and delimit the trimmed unit, so
``sentence_text[b.start:b.end] == b.text`` for every boundary ``b``.
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal, TypeAlias

from verbatim.profile_types import DocumentProfile, SentenceBoundary

ClauseType: TypeAlias = Literal["independent", "dependent"]


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PhraseBoundary:
    index: int              # position within the sentence
    sentence_index: int
    start: int
    end: int
    text: str
    word_count: int


@dataclass(frozen=True, slots=True)
class ClauseBoundary:
    index: int
    sentence_index: int
    start: int
    end: int
    text: str
    word_count: int
    clause_type: ClauseType


# ---------------------------------------------------------------------------
# Conjunction tables
# ---------------------------------------------------------------------------

SUBORDINATING_CONJUNCTIONS: tuple[str, ...] = (
    "although", "because", "while", "when", "if", "since", "unless",
    "after", "before", "until", "whereas", "wherever", "whenever",
    "whether", "though", "even if", "even though", "so that",
    "in order that", "provided that", "as long as", "as soon as",
)

COORDINATING_CONJUNCTIONS: tuple[str, ...] = ("and", "but", "or", "nor", "yet", "so", "for")

# Longest alternatives first so "even though" wins over "though".
_SUB_ALTERNATION = "|".join(
    r"\s+".join(re.escape(w) for w in conj.split())
    for conj in sorted(SUBORDINATING_CONJUNCTIONS, key=len, reverse=True)
)
_STARTS_SUBORDINATE_RE = re.compile(rf"(?:{_SUB_ALTERNATION})\b", re.IGNORECASE)
_SUBORDINATE_RE = re.compile(rf"\b(?:{_SUB_ALTERNATION})\b", re.IGNORECASE)

_PHRASE_SPLITTERS = frozenset(",;:—")
_QUOTE_CHARS = frozenset("\"“”")


def _count_words(text: str) -> int:
    return len(text.split())


def _trim_span(text: str, start: int, end: int) -> tuple[int, int]:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def _is_digit_comma(text: str, pos: int) -> bool:
    return (
        0 < pos < len(text) - 1
        and text[pos - 1].isdigit()
        and text[pos + 1].isdigit()
    )


def _unprotected_positions(text: str) -> list[int]:
    """Offsets of phrase splitter characters outside quotes and brackets."""
    out: list[int] = []
    depth = 0
    in_quote = False
    for i, ch in enumerate(text):
        if ch in _QUOTE_CHARS:
            in_quote = not in_quote
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            if depth > 0:
                depth -= 1
        elif depth == 0 and not in_quote and ch in _PHRASE_SPLITTERS:
            if ch == "," and _is_digit_comma(text, i):
                continue
            out.append(i)
    return out


def _starts_subordinate(text: str) -> bool:
    return _STARTS_SUBORDINATE_RE.match(text.lstrip()) is not None


# ---------------------------------------------------------------------------
# Phrases
# ---------------------------------------------------------------------------


def detect_phrases(sentence_text: str, sentence_index: int) -> tuple[PhraseBoundary, ...]:
    """Split a sentence on ``,`` ``;`` ``:`` and em-dash.

    Commas between digits ("1,000") and splitters inside quoted or bracketed
    spans do not split. Blank input yields an empty tuple; otherwise at least
    one phrase is returned.
    """
    if not sentence_text.strip():
        return ()

    spans: list[tuple[int, int]] = []
    seg_start = 0
    for pos in _unprotected_positions(sentence_text):
        spans.append(_trim_span(sentence_text, seg_start, pos))
        seg_start = pos + 1
    spans.append(_trim_span(sentence_text, seg_start, len(sentence_text)))
    spans = [(a, b) for a, b in spans if b > a]
    if not spans:
        # Only splitter characters: the sentence itself is the phrase.
        spans = [_trim_span(sentence_text, 0, len(sentence_text))]

    return tuple(
        PhraseBoundary(
            index=i,
            sentence_index=sentence_index,
            start=a,
            end=b,
            text=sentence_text[a:b],
            word_count=_count_words(sentence_text[a:b]),
        )
        for i, (a, b) in enumerate(spans)
    )


# ---------------------------------------------------------------------------
# Clauses
# ---------------------------------------------------------------------------


def detect_clauses(sentence_text: str, sentence_index: int) -> tuple[ClauseBoundary, ...]:
    """Split a sentence into independent and dependent clauses.

    Split points are unprotected commas (consumed with the spaces after them)
    and the start of any mid-sentence subordinating conjunction (kept as the
    first word of the next clause). Segments with fewer than 2 words are
    dropped.
    """
    if not sentence_text.strip():
        return ()

    # split offset -> True when the split consumes a comma
    splits: dict[int, bool] = {
        pos: True for pos in _unprotected_positions(sentence_text)
        if sentence_text[pos] == ","
    }
    for m in _SUBORDINATE_RE.finditer(sentence_text):
        if m.start() > 0:
            splits.setdefault(m.start(), False)

    spans: list[tuple[int, int]] = []
    seg_start = 0
    for pos in sorted(splits):
        if pos > seg_start:
            spans.append(_trim_span(sentence_text, seg_start, pos))
        if splits[pos]:
            seg_start = pos + 1
            while seg_start < len(sentence_text) and sentence_text[seg_start] == " ":
                seg_start += 1
        else:
            seg_start = max(seg_start, pos)
    if seg_start < len(sentence_text):
        spans.append(_trim_span(sentence_text, seg_start, len(sentence_text)))

    kept = [(a, b) for a, b in spans if _count_words(sentence_text[a:b]) >= 2]
    if not kept:
        kept = [_trim_span(sentence_text, 0, len(sentence_text))]

    return tuple(
        ClauseBoundary(
            index=i,
            sentence_index=sentence_index,
            start=a,
            end=b,
            text=sentence_text[a:b],
            word_count=_count_words(sentence_text[a:b]),
            clause_type="dependent" if _starts_subordinate(sentence_text[a:b]) else "independent",
        )
        for i, (a, b) in enumerate(kept)
    )


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def count_phrases(sentences: Iterable[SentenceBoundary]) -> int:
    return sum(len(detect_phrases(s.text, s.index)) for s in sentences)


def count_clauses(sentences: Iterable[SentenceBoundary]) -> int:
    return sum(len(detect_clauses(s.text, s.index)) for s in sentences)


def document_phrases(profile: DocumentProfile) -> tuple[PhraseBoundary, ...]:
    """All phrases of the document, sentence by sentence."""
    return tuple(p for s in profile.sentences for p in detect_phrases(s.text, s.index))


def document_clauses(profile: DocumentProfile) -> tuple[ClauseBoundary, ...]:
    """All clauses of the document, sentence by sentence."""
    return tuple(c for s in profile.sentences for c in detect_clauses(s.text, s.index))

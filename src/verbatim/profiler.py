"""Document profiler: raw text -> sentence/paragraph/line boundary tables.

Pure, total function. No database, no I/O, no error conditions: any string
(including the empty string) yields a valid profile.

3-phase approach:
    1. Split lines on ``\\n`` (boundary end excludes the newline).
    2. Group runs of non-blank lines into paragraphs; blank lines after a
       paragraph belong to its span.
    3. Scan each paragraph's content for sentence terminators, so sentences
       never cross a paragraph break and every paragraph owns a contiguous,
       non-empty sentence slice.
"""
from __future__ import annotations

import re
from bisect import bisect_right
from datetime import UTC, datetime
from typing import Any

from verbatim.config import DEFAULT_CONFIG, EngineConfig
from verbatim.profile_types import (
    DocumentProfile,
    LineBoundary,
    ParagraphBoundary,
    SentenceBoundary,
)

_TERMINATORS = frozenset(".!?")
# Closing punctuation that may trail a terminator: `He said "Stop." Then ...`
_CLOSERS = frozenset(")]\"'”’")
# Opening punctuation that may precede the first letter of a new sentence.
_OPENERS = frozenset("([\"'“‘")

_DOTTED_ACRONYM_RE = re.compile(r"(?:[A-Za-z]\.)+[A-Za-z]")


def _count_words(text: str) -> int:
    return len(text.split())


def _detect_lines(text: str) -> list[LineBoundary]:
    if not text:
        return []
    lines: list[LineBoundary] = []
    pos = 0
    while True:
        nl = text.find("\n", pos)
        end = len(text) if nl == -1 else nl
        lines.append(LineBoundary(index=len(lines), start=pos, end=end))
        if nl == -1:
            return lines
        pos = nl + 1


def _paragraph_blocks(text: str, lines: list[LineBoundary]) -> list[tuple[int, int]]:
    """Return (first_line, last_line) 0-based index pairs of non-blank runs."""
    blocks: list[tuple[int, int]] = []
    run_start: int | None = None
    for line in lines:
        blank = not text[line.start:line.end].strip()
        if not blank and run_start is None:
            run_start = line.index
        elif blank and run_start is not None:
            blocks.append((run_start, line.index - 1))
            run_start = None
    if run_start is not None:
        blocks.append((run_start, len(lines) - 1))
    return blocks


def _is_abbreviation(text: str, period_pos: int, abbreviations: frozenset[str]) -> bool:
    """Check whether the word ending at ``period_pos`` is an abbreviation."""
    ws = period_pos - 1
    while ws >= 0 and (text[ws].isalpha() or text[ws] == "."):
        ws -= 1
    word = text[ws + 1:period_pos]
    if not word:
        return False
    lowered = word.lower()
    if lowered in abbreviations or lowered.replace(".", "") in abbreviations:
        return True
    # Single capital initial: "J. K. Rowling"
    if len(word) == 1 and word.isupper():
        return True
    # Dotted acronym: "U.S.A."
    return _DOTTED_ACRONYM_RE.fullmatch(word) is not None


def _opens_sentence(text: str, pos: int, limit: int) -> bool:
    while pos < limit and text[pos] in _OPENERS:
        pos += 1
    return pos < limit and text[pos].isupper()


def _sentence_starts(
    text: str, start: int, end: int, abbreviations: frozenset[str],
) -> list[int]:
    """Find sentence start offsets inside one paragraph's content ``[start, end)``.

    The first start is always ``start``. A new sentence starts at the first
    non-whitespace character after a qualifying terminator.
    """
    starts = [start]
    i = start
    while i < end:
        if text[i] not in _TERMINATORS:
            i += 1
            continue
        j = i
        while j < end and text[j] in _TERMINATORS:
            j += 1
        if j - i == 1 and text[i] == ".":
            if i > start and text[i - 1].isdigit() and j < end and text[j].isdigit():
                i = j
                continue
            if _is_abbreviation(text, i, abbreviations):
                i = j
                continue
        k = j
        while k < end and text[k] in _CLOSERS:
            k += 1
        if k < end and text[k].isspace():
            m = k
            while m < end and text[m].isspace():
                m += 1
            if m < end and _opens_sentence(text, m, end):
                starts.append(m)
                i = m
                continue
        i = max(k, j)
    return starts


def analyze_document(
    text: str,
    config: EngineConfig = DEFAULT_CONFIG,
    *,
    analyzed_at: str | None = None,
) -> DocumentProfile:
    """Analyze a document and produce its structural profile.

    Args:
        text: Raw document text.
        config: Engine configuration (abbreviation list, analyzer version).
        analyzed_at: Override for the analysis timestamp (ISO-8601). Defaults
            to the current UTC time; boundaries never depend on it.

    Returns:
        DocumentProfile whose sentence and paragraph spans partition the text.
    """
    char_count = len(text)
    lines = _detect_lines(text)
    line_starts = [ln.start for ln in lines]
    blocks = _paragraph_blocks(text, lines)

    sentences: list[SentenceBoundary] = []
    paragraphs: list[ParagraphBoundary] = []

    for b_idx, (first_line, last_line) in enumerate(blocks):
        content_start = lines[first_line].start
        content_end = lines[last_line].end
        span_start = 0 if b_idx == 0 else content_start
        span_end = (
            lines[blocks[b_idx + 1][0]].start if b_idx + 1 < len(blocks) else char_count
        )

        starts = _sentence_starts(text, content_start, content_end, config.abbreviations)
        sentence_first = len(sentences)
        for s_pos, s_start in enumerate(starts):
            s_span_start = span_start if s_pos == 0 else s_start
            s_span_end = starts[s_pos + 1] if s_pos + 1 < len(starts) else span_end
            s_text = text[s_span_start:s_span_end].strip()
            lead = s_start
            while text[lead].isspace():
                lead += 1
            sentences.append(
                SentenceBoundary(
                    index=len(sentences),
                    start=s_span_start,
                    end=s_span_end,
                    line_number=bisect_right(line_starts, lead),
                    word_count=_count_words(s_text),
                    text=s_text,
                )
            )

        paragraphs.append(
            ParagraphBoundary(
                index=b_idx,
                start=span_start,
                end=span_end,
                line_start=first_line + 1,
                line_end=last_line + 1,
                sentence_start=sentence_first,
                sentence_end=len(sentences) - 1,
                word_count=_count_words(text[content_start:content_end]),
            )
        )

    word_count = _count_words(text)
    sentence_count = len(sentences)
    paragraph_count = len(paragraphs)

    return DocumentProfile(
        char_count=char_count,
        word_count=word_count,
        line_count=len(lines),
        non_blank_line_count=sum(1 for ln in lines if text[ln.start:ln.end].strip()),
        sentence_count=sentence_count,
        paragraph_count=paragraph_count,
        sentences=tuple(sentences),
        paragraphs=tuple(paragraphs),
        lines=tuple(lines),
        first_sentence=sentences[0].text if sentences else "",
        last_sentence=sentences[-1].text if sentences else "",
        avg_words_per_sentence=(
            round(word_count / sentence_count, 2) if sentence_count else 0.0
        ),
        avg_sentences_per_paragraph=(
            round(sentence_count / paragraph_count, 2) if paragraph_count else 0.0
        ),
        analyzed_at=analyzed_at or datetime.now(UTC).isoformat(),
        analyzer_version=config.analyzer_version,
    )


def profile_summary(profile: DocumentProfile) -> dict[str, Any]:
    """Document statistics block (counts and averages) for display."""
    return {
        "words": profile.word_count,
        "sentences": profile.sentence_count,
        "paragraphs": profile.paragraph_count,
        "lines": profile.line_count,
        "non_blank_lines": profile.non_blank_line_count,
        "characters": profile.char_count,
        "avg_words_per_sentence": profile.avg_words_per_sentence,
        "avg_sentences_per_paragraph": profile.avg_sentences_per_paragraph,
        "analyzer_version": profile.analyzer_version,
    }

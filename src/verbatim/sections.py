"""Section detector for scientific-paper style documents.

Finds headings (Abstract, Introduction, Methods, ...) line by line and maps
each onto a closed canonical vocabulary.

Heading families, tried in order on each stripped non-blank line:
    1. Markdown: ``#`` to ``###`` followed by the title.
    2. Numbered: ``2. Methods``, ``2 Methods``, ``2.1 Results``, ``IV. Discussion``.
    3. ALL-CAPS short line: ``REFERENCES``.
    4. Bare short line that itself normalizes to a section name: ``Abstract``,
       or a title-case line led by one: ``Results Overview``.

Once a references heading is seen, detection stops: reference entries often
look like headings ("Introduction to Statistical Learning").
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType

from verbatim.config import DEFAULT_CONFIG, EngineConfig

SECTION_VOCABULARY_VERSION = "1.0"

SECTION_NAMES: frozenset[str] = frozenset({
    "abstract", "introduction", "background", "literature", "methods",
    "results", "discussion", "conclusion", "acknowledgments", "references",
    "appendix", "supplementary", "keywords",
})

SECTION_ALIASES: MappingProxyType[str, str] = MappingProxyType({
    "method": "methods",
    "methodology": "methods",
    "methodologies": "methods",
    "materials and methods": "methods",
    "experimental setup": "methods",
    "result": "results",
    "findings": "results",
    "results and discussion": "results",
    "conclusions": "conclusion",
    "concluding remarks": "conclusion",
    "acknowledgement": "acknowledgments",
    "acknowledgements": "acknowledgments",
    "acknowledgment": "acknowledgments",
    "bibliography": "references",
    "works cited": "references",
    "literature cited": "references",
    "related work": "literature",
    "related works": "literature",
    "literature review": "literature",
    "summary": "abstract",
    "overview": "abstract",
    "executive summary": "abstract",
    "supplementary material": "supplementary",
    "supplementary materials": "supplementary",
    "supplemental material": "supplementary",
    "supplemental materials": "supplementary",
    "appendices": "appendix",
    "key words": "keywords",
    "index terms": "keywords",
})

INFERRED_ABSTRACT_LABEL = "(Inferred Abstract)"


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DocumentSection:
    """A detected section: heading line through the line before the next heading."""

    name: str           # canonical: "methods"
    display_name: str   # as found: "2. Materials and Methods"
    start_line: int     # 1-based heading line
    end_line: int       # 1-based, inclusive
    text: str           # trimmed body, heading excluded
    word_count: int


@dataclass(frozen=True, slots=True)
class SectionProfile:
    sections: tuple[DocumentSection, ...]
    is_scientific_format: bool
    section_names: tuple[str, ...]

    def get(self, name: str) -> DocumentSection | None:
        """First section with canonical ``name``, or None."""
        for section in self.sections:
            if section.name == name:
                return section
        return None


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_MARKDOWN_HEADING_RE = re.compile(r"^(#{1,3})\s+(.+)$")
# "2. Methods", "2 Methods", "2.1 Results", "IV. Discussion"
_NUMBERED_HEADING_RE = re.compile(r"^(\d{1,2}(?:\.\d{1,2})*|[IVXLC]{1,6})\.?\s+([A-Z].*)$")
_CAPS_HEADING_RE = re.compile(r"^[A-Z][A-Z\s&]+$")

_LEADING_HASHES_RE = re.compile(r"^#+\s*")
_LEADING_ORDINAL_RE = re.compile(r"^(?:\d{1,2}(?:\.\d{1,2})*\.?|[IVXLC]{1,6}\.)\s*")
_TRAILING_PUNCT_RE = re.compile(r"[\s.:;,\-–—]+$")
_SENTENCE_END_RE = re.compile(r"[.!?]$")
_TITLE_CONNECTORS = frozenset({"and", "of", "the", "for", "in", "on", "to", "a", "an", "&"})


def _clean_heading(heading: str) -> str:
    cleaned = _LEADING_HASHES_RE.sub("", heading.strip())
    cleaned = _LEADING_ORDINAL_RE.sub("", cleaned)
    cleaned = _TRAILING_PUNCT_RE.sub("", cleaned)
    return " ".join(cleaned.split()).lower()


def _is_title_word(word: str) -> bool:
    return word[0].isupper() or word[0].isdigit() or word.lower() in _TITLE_CONNECTORS


def _lookup(cleaned: str) -> str | None:
    if cleaned in SECTION_NAMES:
        return cleaned
    return SECTION_ALIASES.get(cleaned)


def _lookup_first_word(cleaned: str) -> str | None:
    words = cleaned.split(" ", 1)
    first = words[0]
    if not first.isalpha():
        return None
    return _lookup(first)


def normalize_section_name(heading: str) -> str | None:
    """Map a heading onto a canonical section name, or None if not recognised.

    Strips markdown hashes, leading ordinals (``1.``, ``2.1``, ``IV.``) and
    trailing punctuation, then checks the closed set, the alias table and
    finally the first word.
    """
    cleaned = _clean_heading(heading)
    if not cleaned:
        return None
    return _lookup(cleaned) or _lookup_first_word(cleaned)


def _heading_canonical(line: str, config: EngineConfig) -> str | None:
    """Canonical name if ``line`` (already stripped) is a section heading."""
    m = _MARKDOWN_HEADING_RE.match(line)
    if m:
        canonical = normalize_section_name(m.group(2))
        if canonical:
            return canonical
    m = _NUMBERED_HEADING_RE.match(line)
    if m:
        canonical = normalize_section_name(m.group(2))
        if canonical:
            return canonical
    if (
        len(line) <= config.caps_heading_max_chars
        and len(line) >= 3
        and _CAPS_HEADING_RE.match(line)
    ):
        canonical = normalize_section_name(line)
        if canonical:
            return canonical

    if len(line) > config.bare_heading_max_chars:
        return None
    if len(line.split()) > config.bare_heading_max_words:
        return None
    cleaned = _clean_heading(line)
    exact = _lookup(cleaned)
    if exact:
        return exact
    # "Results were mixed." is prose, not a heading.
    if _SENTENCE_END_RE.search(line):
        return None
    # Without a heading marker the rest of the line must read as a title
    # ("Results Overview"), not a sentence ("Results were mixed").
    if not all(_is_title_word(w) for w in line.split()[1:]):
        return None
    return _lookup_first_word(cleaned)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_sections(text: str, config: EngineConfig = DEFAULT_CONFIG) -> SectionProfile:
    """Detect the section structure of a document.

    A leading block before the first heading becomes an inferred abstract when
    its trimmed length lies strictly between the configured bounds and the
    document has no explicit abstract.
    """
    lines = text.split("\n")
    headings: list[tuple[int, str, str]] = []   # (line index, display, canonical)

    for i, raw in enumerate(lines):
        line = raw.strip()
        if not line:
            continue
        canonical = _heading_canonical(line, config)
        if canonical is None:
            continue
        headings.append((i, line, canonical))
        if canonical == "references":
            break

    sections: list[DocumentSection] = []
    for h, (line_idx, display, canonical) in enumerate(headings):
        end_idx = headings[h + 1][0] - 1 if h + 1 < len(headings) else len(lines) - 1
        body = "\n".join(lines[line_idx + 1:end_idx + 1]).strip()
        sections.append(
            DocumentSection(
                name=canonical,
                display_name=display,
                start_line=line_idx + 1,
                end_line=end_idx + 1,
                text=body,
                word_count=len(body.split()),
            )
        )

    if headings and headings[0][0] > 0 and not any(s.name == "abstract" for s in sections):
        leading = "\n".join(lines[:headings[0][0]]).strip()
        if config.inferred_abstract_min_chars < len(leading) < config.inferred_abstract_max_chars:
            sections.insert(
                0,
                DocumentSection(
                    name="abstract",
                    display_name=INFERRED_ABSTRACT_LABEL,
                    start_line=1,
                    end_line=headings[0][0],
                    text=leading,
                    word_count=len(leading.split()),
                ),
            )

    return SectionProfile(
        sections=tuple(sections),
        is_scientific_format=len(sections) >= config.min_scientific_sections,
        section_names=tuple(s.name for s in sections),
    )

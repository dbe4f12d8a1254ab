"""Free-form retrieval instruction -> RetrievalRequest.

Classification runs on a copy of the instruction whose quoted spans are masked
by placeholders, so a quoted term never triggers section, unit or connector
detection. The instruction is split on connectors ("and", ",", "&", "plus",
"as well as"); when every segment classifies on its own the result is a
compound of the distinct segment requests. When a segment does not classify,
the instruction is unclear unless it reads as one unquoted search term that
spans the connector.

Per segment, first match wins:
    1. Quoted term                       -> SearchRequest
    2. Range phrasing                    -> RangeRequest
    3. Ordinal or numbered unit          -> NthRequest
    4. Unquoted search phrasing          -> SearchRequest
    5. Exactly one section name          -> SectionRequest

Anything else is not confidently classifiable and yields None.
"""
from __future__ import annotations

import re

from verbatim.ordinals import CARDINAL_PATTERN, NUMBER_PATTERN, ORDINAL_PATTERN, parse_number
from verbatim.retrieval_types import (
    SENTENCE_SCOPED_UNITS,
    CompoundRequest,
    NthRequest,
    RangeRequest,
    RetrievalRequest,
    SearchRequest,
    SectionRequest,
    SimpleRequest,
    Unit,
)
from verbatim.sections import SECTION_ALIASES, SECTION_NAMES, normalize_section_name

# ---------------------------------------------------------------------------
# Quote masking
# ---------------------------------------------------------------------------

# Straight double, curly double, and single quotes that open/close at a word
# boundary (so "don't" is not a quote).
_QUOTED_RE = re.compile(r"\"([^\"]+)\"|“([^”]+)”|‘([^’]+)’|(?<!\w)'([^']+)'(?!\w)")
_PLACEHOLDER_RE = re.compile(r"⟦(\d+)⟧")


def _mask_quotes(text: str) -> tuple[str, tuple[str, ...]]:
    quotes: list[str] = []

    def _sub(m: re.Match[str]) -> str:
        quotes.append(next(g for g in m.groups() if g is not None))
        return f"⟦{len(quotes) - 1}⟧"

    return _QUOTED_RE.sub(_sub, text), tuple(quotes)


def _unmask(text: str, quotes: tuple[str, ...]) -> str:
    return _PLACEHOLDER_RE.sub(lambda m: quotes[int(m.group(1))], text)


# ---------------------------------------------------------------------------
# Vocabulary fragments
# ---------------------------------------------------------------------------

_UNIT = r"(?:sentence|paragraph|para|line|word|phrase|clause)s?"
_NUM = rf"(?:{NUMBER_PATTERN})"
_ORD = rf"(?:{ORDINAL_PATTERN})"
_CARD = rf"(?:{CARDINAL_PATTERN})"
_RANGE_CONNECTOR = r"(?:\s*(?:to|through|thru|until|till)\s+|\s*[-–—]\s*)"
_FROM_END_WORD = r"(?:last|final|ending|closing)"

_SECTION_TERMS = sorted(set(SECTION_NAMES) | set(SECTION_ALIASES), key=len, reverse=True)
_SECTION_ALT = "|".join(r"\s+".join(re.escape(w) for w in term.split()) for term in _SECTION_TERMS)
_SECTION_MENTION_RE = re.compile(rf"\b(?:{_SECTION_ALT})\b", re.IGNORECASE)
_SECTION_TARGET_RE = re.compile(
    rf"^(?:the\s+)?((?:{_SECTION_ALT}))(?:\s+section)?$", re.IGNORECASE,
)


def _unit_name(token: str) -> Unit:
    name = token.lower().removesuffix("s")
    if name == "para":
        return "paragraph"
    return name  # type: ignore[return-value]


def _section_mentions(text: str) -> list[str]:
    """Canonical section names mentioned in ``text``, in order, deduplicated."""
    found: list[str] = []
    for m in _SECTION_MENTION_RE.finditer(text):
        canonical = normalize_section_name(m.group(0))
        if canonical and canonical not in found:
            found.append(canonical)
    return found


# ---------------------------------------------------------------------------
# Compound splitting
# ---------------------------------------------------------------------------

# Multi-word aliases containing "and" stay whole unless both halves are
# sections themselves ("results and discussion" is two targets,
# "materials and methods" is one).
_PROTECTED_AND_TERMS: tuple[str, ...] = tuple(
    term for term in _SECTION_TERMS
    if " and " in term
    and not all(normalize_section_name(half) for half in term.split(" and "))
)
_PROTECTED_AND_RE = (
    re.compile(
        r"\b(?:" + "|".join(
            r"\s+".join(re.escape(w) for w in t.split()) for t in _PROTECTED_AND_TERMS
        ) + r")\b",
        re.IGNORECASE,
    )
    if _PROTECTED_AND_TERMS else None
)
_AND_SENTINEL = "∧"
_SPLIT_RE = re.compile(
    r"\s*(?:(?<!\d),|,(?!\d))\s*(?:(?:and|plus)\s+)?"
    r"|\s+(?:and|plus|as\s+well\s+as)\s+"
    r"|\s*&\s*",
    re.IGNORECASE,
)


def _split_segments(masked: str) -> list[str]:
    protected = masked
    if _PROTECTED_AND_RE is not None:
        protected = _PROTECTED_AND_RE.sub(
            lambda m: re.sub(r"\band\b", _AND_SENTINEL, m.group(0), flags=re.IGNORECASE),
            masked,
        )
    parts = [p.strip() for p in _SPLIT_RE.split(protected)]
    return [p.replace(_AND_SENTINEL, "and") for p in parts if p]


_LEAD_IN_RE = re.compile(
    r"^(?:please\s+)?(?:"
    r"(?:can|could|would)\s+you\s+(?:please\s+)?(?:show|give|get|read|quote)(?:\s+(?:me|us))?"
    r"|(?:show|give|get|read|quote|tell)\s+(?:me|us)"
    r"|(?:show|read|quote|display|print|fetch)"
    r"|what\s+(?:are|is|were|was)"
    r"|i\s+(?:want|need|would\s+like)(?:\s+to\s+(?:see|read))?"
    r")\s+",
    re.IGNORECASE,
)
# "the fourth one" borrows its unit like "the fourth".
_BARE_NUMBER_RE = re.compile(
    rf"^(?:the\s+)?({_NUM}|{_FROM_END_WORD}|penultimate)(?:\s+one)?$", re.IGNORECASE,
)
_ORDINAL_TOKEN_RE = re.compile(rf"^(?:{_ORD}|{_FROM_END_WORD}|penultimate)$", re.IGNORECASE)
_UNIT_WITH_SCOPE_RE = re.compile(rf"\b({_UNIT})\b(\s+(?:of|in|within|from)\b.*)?", re.IGNORECASE)


def _borrow_unit(segments: list[str], i: int) -> str | None:
    """Rewrite a bare ordinal/number segment using a neighbour's unit.

    Ordinals look ahead first ("first" in "first, second and third
    sentences"), plain numbers look back first ("5" in "sentences 2 and 5").
    """
    m = _BARE_NUMBER_RE.match(_LEAD_IN_RE.sub("", segments[i], count=1))
    if m is None:
        return None
    token = m.group(1)
    ordinal_form = _ORDINAL_TOKEN_RE.match(token) is not None

    following = [_UNIT_WITH_SCOPE_RE.search(s) for s in segments[i + 1:]]
    preceding = [_UNIT_WITH_SCOPE_RE.search(s) for s in reversed(segments[:i])]
    order = following + preceding if ordinal_form else preceding + following
    source = next((u for u in order if u is not None), None)
    if source is None:
        return None
    unit = _unit_name(source.group(1))
    scope = source.group(2) or ""
    if ordinal_form:
        return f"{token} {unit}{scope}"
    return f"{unit} {token}{scope}"


# ---------------------------------------------------------------------------
# Scope: "of sentence 4", "of the third sentence", "in the methods"
# ---------------------------------------------------------------------------

_SENTENCE_SCOPE_RE = re.compile(
    rf"^\s*(?:of|in|within|from)\s+(?:the\s+)?"
    rf"(?:sentence\s+(?:number\s+)?({_NUM})|({_ORD})\s+sentence)\b",
    re.IGNORECASE,
)
_SECTION_SCOPE_RE = re.compile(r"^\s*(?:of|in|within|from)\s+(.+)$", re.IGNORECASE)


def _parse_scope(
    segment: str, match_start: int, match_end: int, unit: Unit,
) -> tuple[str | None, int | None] | None:
    """Scope (section, sentence) for a unit construct, or None when unclear."""
    if _section_mentions(segment[:match_start]):
        return None
    rest = segment[match_end:]
    m = _SENTENCE_SCOPE_RE.match(rest)
    if m:
        if unit not in SENTENCE_SCOPED_UNITS:
            return None
        sentence = parse_number(m.group(1) or m.group(2))
        if sentence is None:
            return None
        return None, sentence
    sections = _section_mentions(rest)
    if not sections:
        return None, None
    if len(sections) > 1 or not _SECTION_SCOPE_RE.match(rest):
        return None
    return sections[0], None


# ---------------------------------------------------------------------------
# Range phrasings
# ---------------------------------------------------------------------------

_SPAN_RANGE_RE = re.compile(
    rf"\b(?:from\s+)?({_UNIT})\s+(?:number\s+)?({_NUM}){_RANGE_CONNECTOR}"
    rf"(?:(?:the\s+)?(end)|({_NUM}))\b",
    re.IGNORECASE,
)
_ORD_RANGE_RE = re.compile(
    rf"\b({_ORD})\s+(?:to|through|thru|until|till|-)\s+(?:the\s+)?({_ORD})\s+({_UNIT})\b",
    re.IGNORECASE,
)
_AFTER_RANGE_RE = re.compile(
    rf"\beverything\s+(?:after|following)\s+(?:the\s+)?"
    rf"(?:({_UNIT})\s+(?:number\s+)?({_NUM})|({_ORD})\s+({_UNIT}))\b",
    re.IGNORECASE,
)
_ONWARD_RANGE_RE = re.compile(
    rf"\b(?:from\s+)?({_UNIT})\s+(?:from\s+)?(?:number\s+)?({_NUM})\s+(?:and\s+)?onwards?\b",
    re.IGNORECASE,
)
_FIRST_N_RE = re.compile(rf"\b(?:first|opening|initial)\s+({_CARD})\s+({_UNIT})\b", re.IGNORECASE)
_LAST_N_RE = re.compile(rf"\b{_FROM_END_WORD}\s+({_CARD})\s+({_UNIT})\b", re.IGNORECASE)
_HOW_START_RE = re.compile(
    r"\bhow\s+does\s+(?:it|the\s+\w+)\s+(?:start|begin)\b"
    r"|\bwhat(?:'s|’s|\s+is)\s+the\s+(?:opening|beginning)\b",
    re.IGNORECASE,
)
_HOW_END_RE = re.compile(
    r"\bhow\s+does\s+(?:it|the\s+\w+)\s+end\b|\bwhat(?:'s|’s|\s+is)\s+the\s+ending\b",
    re.IGNORECASE,
)

# "how does it start/end" covers this many sentences.
IMPLICIT_SPAN_SENTENCES = 3


def _range(
    segment: str, m: re.Match[str], unit: Unit, start: int | None, end: int | None,
    *, from_end: bool = False, open_ended: bool = False,
) -> RangeRequest | None:
    if start is None:
        return None
    if not open_ended and end is None:
        return None
    scope = _parse_scope(segment, m.start(), m.end(), unit)
    if scope is None:
        return None
    section, sentence = scope
    return RangeRequest(
        unit=unit, start=start, end=None if open_ended else end,
        from_end=from_end, section=section, sentence=sentence,
    )


def _classify_range(segment: str) -> RangeRequest | None:
    m = _SPAN_RANGE_RE.search(segment)
    if m:
        unit = _unit_name(m.group(1))
        if m.group(3):
            return _range(segment, m, unit, parse_number(m.group(2)), None, open_ended=True)
        return _range(segment, m, unit, parse_number(m.group(2)), parse_number(m.group(4)))
    m = _ORD_RANGE_RE.search(segment)
    if m:
        return _range(
            segment, m, _unit_name(m.group(3)),
            parse_number(m.group(1)), parse_number(m.group(2)),
        )
    m = _AFTER_RANGE_RE.search(segment)
    if m:
        if m.group(1):
            unit, after = _unit_name(m.group(1)), parse_number(m.group(2))
        else:
            unit, after = _unit_name(m.group(4)), parse_number(m.group(3))
        if after is None:
            return None
        return _range(segment, m, unit, after + 1, None, open_ended=True)
    m = _ONWARD_RANGE_RE.search(segment)
    if m:
        return _range(
            segment, m, _unit_name(m.group(1)), parse_number(m.group(2)), None, open_ended=True,
        )
    m = _FIRST_N_RE.search(segment)
    if m:
        return _range(segment, m, _unit_name(m.group(2)), 1, parse_number(m.group(1)))
    m = _LAST_N_RE.search(segment)
    if m:
        return _range(
            segment, m, _unit_name(m.group(2)), parse_number(m.group(1)), 1, from_end=True,
        )
    if _HOW_START_RE.search(segment):
        return RangeRequest(unit="sentence", start=1, end=IMPLICIT_SPAN_SENTENCES)
    if _HOW_END_RE.search(segment):
        return RangeRequest(unit="sentence", start=IMPLICIT_SPAN_SENTENCES, end=1, from_end=True)
    return None


# ---------------------------------------------------------------------------
# Nth phrasings
# ---------------------------------------------------------------------------

_FROM_END_NTH_RE = re.compile(
    rf"\b(?:(penultimate)|(next|{_ORD})\s+to\s+(?:the\s+)?last)\s+({_UNIT})\b",
    re.IGNORECASE,
)
_LAST_NTH_RE = re.compile(rf"\b{_FROM_END_WORD}\s+({_UNIT})\b", re.IGNORECASE)
_ORD_NTH_RE = re.compile(rf"\b({_ORD})\s+({_UNIT})\b", re.IGNORECASE)
_UNIT_NTH_RE = re.compile(
    rf"\b({_UNIT})\s+(?:number\s+|no\.\s*|#\s*)?({_NUM})\b"
    r"(?!\s*(?:(?:to|through|thru|until|till)\b|[-–—]))",
    re.IGNORECASE,
)


def _nth(
    segment: str, m: re.Match[str], unit: Unit, position: int | None, *, from_end: bool = False,
) -> NthRequest | None:
    if position is None:
        return None
    scope = _parse_scope(segment, m.start(), m.end(), unit)
    if scope is None:
        return None
    section, sentence = scope
    return NthRequest(
        unit=unit, position=position, from_end=from_end, section=section, sentence=sentence,
    )


def _classify_nth(segment: str) -> NthRequest | None:
    m = _FROM_END_NTH_RE.search(segment)
    if m:
        if m.group(1) or m.group(2).lower() == "next":
            position: int | None = 2
        else:
            position = parse_number(m.group(2))
        return _nth(segment, m, _unit_name(m.group(3)), position, from_end=True)
    m = _LAST_NTH_RE.search(segment)
    if m:
        return _nth(segment, m, _unit_name(m.group(1)), 1, from_end=True)
    m = _ORD_NTH_RE.search(segment)
    if m:
        return _nth(segment, m, _unit_name(m.group(2)), parse_number(m.group(1)))
    m = _UNIT_NTH_RE.search(segment)
    if m:
        return _nth(segment, m, _unit_name(m.group(1)), parse_number(m.group(2)))
    return None


# ---------------------------------------------------------------------------
# Search phrasings
# ---------------------------------------------------------------------------

_COUNT_WORDS_RE = re.compile(r"\b(?:how\s+many|how\s+often|count|number\s+of)\b", re.IGNORECASE)

_COUNT_SEARCH_RES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE) for p in (
        r"\bhow\s+many\s+times\s+(?:does|do|did|is|are|was|were)\s+(.+?)\s+"
        r"(?:appear|occur|show\s+up|come\s+up|get\s+mentioned|mentioned|used|repeated)\b",
        r"\bhow\s+often\s+(?:does|do|did|is|are)\s+(.+?)\s+"
        r"(?:appear|occur|show\s+up|come\s+up|get\s+mentioned|mentioned|used)\b",
        r"\bhow\s+many\s+(?:occurrences|mentions|instances)\s+of\s+(.+?)(?:\s+(?:are|is)\s+there)?$",
        r"\bcount\s+(?:the\s+|all\s+(?:the\s+)?)?(?:occurrences|mentions|instances|uses)\s+of\s+(.+)$",
        r"\b(?:number|count)\s+of\s+(?:occurrences|mentions|instances|times)\s+of\s+(.+)$",
    )
)
_LIST_SEARCH_RES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE) for p in (
        r"\b(?:every|all(?:\s+the)?)\s+(?:mentions?|occurrences?|instances?|uses)\s+of\s+(.+)$",
        r"\bwhere\s+(?:does\s+(?:it|the\s+\w+)|is\s+it)\s+(?:mention|say|use)\s+(.+)$",
        r"\b(?:does|do)\s+(?:it|they|the\s+\w+)\s+(?:ever\s+)?mentions?\s+(.+)$",
        r"\bis\s+(.+?)\s+(?:ever\s+)?mentioned\b",
    )
)
_FIND_SEARCH_RE = re.compile(r"\b(?:find|locate|search\s+for|look\s+for|search)\s+(.+)$", re.IGNORECASE)

_TERM_TAIL_RE = re.compile(
    r"\s+(?:(?:in|within|throughout)\s+(?:the\s+|this\s+)?"
    r"(?:document|doc|text|file|paper|article)|in\s+it)\s*$",
    re.IGNORECASE,
)
_TERM_HEAD_RE = re.compile(r"^the\s+(?:words?|terms?|phrases?|strings?)\s+", re.IGNORECASE)


def _clean_term(raw: str, quotes: tuple[str, ...]) -> str:
    term = raw.strip().rstrip("?.!").strip()
    term = _TERM_TAIL_RE.sub("", term)
    term = _TERM_HEAD_RE.sub("", term)
    term = _unmask(term, quotes)
    return term.strip().strip("\"'“”‘’").strip()


def _classify_search(segment: str, quotes: tuple[str, ...]) -> SimpleRequest | None:
    placeholder = _PLACEHOLDER_RE.search(segment)
    if placeholder:
        term = quotes[int(placeholder.group(1))]
        if not term.strip():
            return None
        return SearchRequest(term=term, count_only=_COUNT_WORDS_RE.search(segment) is not None)

    for pattern in _COUNT_SEARCH_RES:
        m = pattern.search(segment)
        if m:
            term = _clean_term(m.group(1), quotes)
            return SearchRequest(term=term, count_only=True) if term else None
    for pattern in _LIST_SEARCH_RES:
        m = pattern.search(segment)
        if m:
            term = _clean_term(m.group(1), quotes)
            return SearchRequest(term=term) if term else None
    m = _FIND_SEARCH_RE.search(segment)
    if m:
        term = _clean_term(m.group(1), quotes)
        if not term:
            return None
        target = _SECTION_TARGET_RE.match(term)
        if target:
            # "find the methods section" names a section, not a phrase.
            canonical = normalize_section_name(target.group(1))
            if canonical:
                return SectionRequest(section=canonical)
        return SearchRequest(term=term)
    return None


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _classify_segment(segment: str, quotes: tuple[str, ...]) -> SimpleRequest | None:
    """Classify one masked segment; None when no rule matches confidently."""
    segment = segment.strip()
    if not segment:
        return None
    if _PLACEHOLDER_RE.search(segment):
        return _classify_search(segment, quotes)
    request: SimpleRequest | None = _classify_range(segment)
    if request is not None:
        return request
    request = _classify_nth(segment)
    if request is not None:
        return request
    request = _classify_search(segment, quotes)
    if request is not None:
        return request
    # A unit that did not parse ("the introduction's third sentence") must not
    # widen into the whole section.
    if _UNIT_WITH_SCOPE_RE.search(segment):
        return None
    sections = _section_mentions(segment)
    if len(sections) == 1:
        return SectionRequest(section=sections[0])
    return None


def _classify_unsplit(masked: str, quotes: tuple[str, ...]) -> SearchRequest | None:
    """Whole-instruction reading when some segment did not classify.

    Only an unquoted search term may absorb a connector ("find salt and
    pepper"); any other single reading would drop a requested target.
    """
    if _PLACEHOLDER_RE.search(masked):
        return None
    request = _classify_segment(masked, quotes)
    if isinstance(request, SearchRequest) and _SPLIT_RE.search(request.term):
        return request
    return None


def classify_request(request_text: str) -> RetrievalRequest | None:
    """Classify a free-form instruction, or return None when it is unclear.

    Deterministic: the same text always yields the same request.
    """
    if not request_text.strip():
        return None
    masked, quotes = _mask_quotes(request_text.strip())

    segments = _split_segments(masked)
    if len(segments) > 1:
        parts: list[SimpleRequest] = []
        for i, segment in enumerate(segments):
            request = _classify_segment(segment, quotes)
            if request is None:
                borrowed = _borrow_unit(segments, i)
                if borrowed is not None:
                    request = _classify_segment(borrowed, quotes)
            if request is None:
                return _classify_unsplit(masked, quotes)
            parts.append(request)
        distinct = tuple(dict.fromkeys(parts))
        if len(distinct) == 1:
            return distinct[0]
        return CompoundRequest(parts=distinct)

    return _classify_segment(masked, quotes)

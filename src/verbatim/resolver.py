"""Request mode resolver: classify an instruction, dispatch, compose one answer.

Every request variant maps to exactly one handler and every handler returns a
RetrievalResult. There is no whole-document fallback: an instruction that
cannot be classified yields an ``unclassified``/``ambiguous`` result asking
for clarification.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, assert_never

from verbatim.config import DEFAULT_CONFIG, EngineConfig
from verbatim.grammar import (
    detect_clauses,
    detect_phrases,
    document_clauses,
    document_phrases,
)
from verbatim.profile_types import (
    DocumentProfile,
    paragraph_index_at,
    sentence_index_at,
    validate_profile,
)
from verbatim.profiler import analyze_document
from verbatim.quotes import get_exact_quote_all
from verbatim.request_parser import classify_request
from verbatim.retrieval_types import (
    CompoundRequest,
    Mode,
    NthRequest,
    RangeRequest,
    RetrievalRequest,
    RetrievalResult,
    SearchRequest,
    SectionRequest,
    Unit,
    request_to_dict,
)
from verbatim.sections import INFERRED_ABSTRACT_LABEL, detect_sections

log = logging.getLogger("verbatim.resolver")

_UNIT_PLURALS: dict[str, str] = {
    "sentence": "sentences",
    "paragraph": "paragraphs",
    "line": "lines",
    "word": "words",
    "phrase": "phrases",
    "clause": "clauses",
}


def _plural(unit: str, n: int) -> str:
    return unit if n == 1 else _UNIT_PLURALS[unit]


def _section_label(name: str) -> str:
    return f"the {name} section"


# ---------------------------------------------------------------------------
# Unit sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Item:
    """One addressable unit, ready to render."""

    number: int             # 1-based position within its source
    text: str
    line: int               # 1-based document line where the unit starts
    detail: str = ""        # parenthesised qualifier, e.g. "lines 3-5, 40 words"


@dataclass(frozen=True, slots=True)
class _Source:
    """Text and profile the units are taken from (whole document or a section)."""

    profile: DocumentProfile
    text: str
    line_offset: int        # added to source-relative line numbers
    label: str              # "the document", "the methods section"


def _document_source(profile: DocumentProfile, full_text: str) -> _Source:
    return _Source(profile=profile, text=full_text, line_offset=0, label="the document")


def _section_source(
    name: str, profile: DocumentProfile, full_text: str, config: EngineConfig, mode: Mode,
) -> _Source | RetrievalResult:
    """Re-profile one section's body so units can be addressed inside it."""
    section_profile = detect_sections(full_text, config)
    if not section_profile.is_scientific_format:
        return _no_structure(name, mode)
    section = section_profile.get(name)
    if section is None:
        return _section_missing(name, section_profile.section_names, mode)

    # 1-based number of the first body line; inferred sections have no heading.
    body_first = (
        section.start_line if section.display_name == INFERRED_ABSTRACT_LABEL
        else section.start_line + 1
    )
    raw_body = "\n".join(full_text.split("\n")[body_first - 1:section.end_line])
    leading_newlines = raw_body[:len(raw_body) - len(raw_body.lstrip())].count("\n")

    return _Source(
        profile=analyze_document(section.text, config, analyzed_at=profile.analyzed_at),
        text=section.text,
        line_offset=body_first - 1 + leading_newlines,
        label=_section_label(name),
    )


def _collect(unit: Unit, source: _Source, sentence: int | None) -> list[_Item]:
    """All units of one kind in ``source`` (or in one of its sentences)."""
    profile, text, off = source.profile, source.text, source.line_offset
    if unit == "sentence":
        return [_Item(s.index + 1, s.text, s.line_number + off) for s in profile.sentences]
    if unit == "paragraph":
        return [
            _Item(
                p.index + 1,
                text[p.start:p.end].strip(),
                p.line_start + off,
                f"lines {p.line_start + off}-{p.line_end + off}, {p.word_count} words",
            )
            for p in profile.paragraphs
        ]
    if unit == "line":
        return [
            _Item(ln.index + 1, text[ln.start:ln.end], ln.index + 1 + off)
            for ln in profile.lines
        ]
    if unit == "word":
        items: list[_Item] = []
        for ln in profile.lines:
            for word in text[ln.start:ln.end].split():
                items.append(_Item(len(items) + 1, word, ln.index + 1 + off))
        return items

    detect = detect_phrases if unit == "phrase" else detect_clauses
    if sentence is not None:
        s = profile.sentences[sentence - 1]
        units = detect(s.text, s.index)
    elif unit == "phrase":
        units = document_phrases(profile)
    else:
        units = document_clauses(profile)
    out: list[_Item] = []
    for pos, u in enumerate(units):
        detail = f"sentence {u.sentence_index + 1}"
        clause_type = getattr(u, "clause_type", None)
        if clause_type:
            detail += f", {clause_type}"
        out.append(
            _Item(
                u.index + 1 if sentence is not None else pos + 1,
                u.text,
                profile.sentences[u.sentence_index].line_number + off,
                detail,
            )
        )
    return out


def _resolve_source(
    request: NthRequest | RangeRequest,
    profile: DocumentProfile,
    full_text: str,
    config: EngineConfig,
    mode: Mode,
) -> tuple[_Source, str] | RetrievalResult:
    """Pick the unit source and a label for where units are counted."""
    if request.section is not None:
        source = _section_source(request.section, profile, full_text, config, mode)
        if isinstance(source, RetrievalResult):
            source.metadata["unit"] = request.unit
            return source
        return source, source.label
    source = _document_source(profile, full_text)
    if request.sentence is not None:
        count = profile.sentence_count
        if not 1 <= request.sentence <= count:
            return RetrievalResult(
                mode=mode,
                status="not_found",
                text=(
                    f"Sentence {request.sentence} not found. "
                    f"The document has {count} {_plural('sentence', count)}."
                ),
                metadata={
                    "unit": request.unit,
                    "sentence": request.sentence,
                    "sentence_count": count,
                },
            )
        return source, f"sentence {request.sentence}"
    return source, source.label


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render_nth(unit: Unit, item: _Item, where: str | None) -> str:
    label = unit.capitalize() + f" {item.number}"
    if where:
        label += f" of {where}"
    if unit == "paragraph":
        return f'{label} ({item.detail}):\n"{item.text}"'
    if unit == "sentence":
        return f'{label} (line {item.line}): "{item.text}"'
    if unit in ("phrase", "clause"):
        return f'{label} ({item.detail}, line {item.line}): "{item.text}"'
    if where:
        return f'{label} (line {item.line}): "{item.text}"'
    return f'{label}: "{item.text}"'


def _render_range(unit: Unit, items: list[_Item], where: str | None) -> str:
    first, last = items[0].number, items[-1].number
    header = (
        f"{unit.capitalize()} {first}" if first == last
        else f"{_UNIT_PLURALS[unit].capitalize()} {first}-{last}"
    )
    if where:
        header += f" of {where}"
    if unit == "word":
        return f"{header}: " + " ".join(i.text for i in items)
    if unit == "paragraph":
        body = "\n\n".join(
            f'Paragraph {i.number} ({i.detail}):\n"{i.text}"' for i in items
        )
        return f"{header}:\n\n{body}"
    if unit == "line":
        return f"{header}:\n" + "\n".join(f'{i.line}: "{i.text}"' for i in items)
    if unit == "sentence":
        return f"{header}:\n" + "\n".join(f'{i.number}. "{i.text}" (line {i.line})' for i in items)
    return f"{header}:\n" + "\n".join(f'{i.number}. "{i.text}" ({i.detail})' for i in items)


def _where(label: str) -> str | None:
    return None if label == "the document" else label


def _count_statement(label: str, count: int, unit: Unit) -> str:
    subject = label[0].upper() + label[1:]
    return f"{subject} has {count} {_plural(unit, count)}."


def _number_at(
    lookup: Callable[[DocumentProfile, int], int | None], profile: DocumentProfile, offset: int,
) -> int | None:
    index = lookup(profile, offset)
    return None if index is None else index + 1


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _no_structure(name: str, mode: Mode) -> RetrievalResult:
    return RetrievalResult(
        mode=mode,
        status="not_found",
        text=(
            f"No recognizable section structure was found in this document, "
            f"so {_section_label(name)} cannot be located."
        ),
        metadata={"section": name, "is_scientific_format": False},
    )


def _section_missing(name: str, present: tuple[str, ...], mode: Mode) -> RetrievalResult:
    listed = ", ".join(dict.fromkeys(present))
    return RetrievalResult(
        mode=mode,
        status="not_found",
        text=f"No {name} section found. Sections present: {listed}.",
        metadata={"section": name, "sections_present": list(dict.fromkeys(present))},
    )


def _resolve_section(
    request: SectionRequest, full_text: str, config: EngineConfig,
) -> RetrievalResult:
    section_profile = detect_sections(full_text, config)
    if not section_profile.is_scientific_format:
        return _no_structure(request.section, "section")
    section = section_profile.get(request.section)
    if section is None:
        return _section_missing(request.section, section_profile.section_names, "section")
    return RetrievalResult(
        mode="section",
        status="found",
        text=(
            f"{section.display_name} (lines {section.start_line}-{section.end_line}, "
            f'{section.word_count} words):\n"{section.text}"'
        ),
        metadata={
            "section": section.name,
            "display_name": section.display_name,
            "start_line": section.start_line,
            "end_line": section.end_line,
            "word_count": section.word_count,
        },
    )


def _resolve_nth(
    request: NthRequest, profile: DocumentProfile, full_text: str, config: EngineConfig,
) -> RetrievalResult:
    resolved = _resolve_source(request, profile, full_text, config, "nth")
    if isinstance(resolved, RetrievalResult):
        return resolved
    source, label = resolved
    items = _collect(request.unit, source, request.sentence)
    count = len(items)
    index = count - request.position if request.from_end else request.position - 1
    metadata: dict[str, Any] = {
        "unit": request.unit,
        "position": request.position,
        "from_end": request.from_end,
        "section": request.section,
        "sentence": request.sentence,
        "count": count,
    }
    if not 0 <= index < count:
        which = (
            f"{request.unit.capitalize()} {request.position} from the end"
            if request.from_end
            else f"{request.unit.capitalize()} {request.position}"
        )
        return RetrievalResult(
            mode="nth",
            status="not_found",
            text=f"{which} not found. {_count_statement(label, count, request.unit)}",
            metadata=metadata,
        )
    item = items[index]
    metadata.update(index=index, number=item.number, line_number=item.line)
    return RetrievalResult(
        mode="nth",
        status="found",
        text=_render_nth(request.unit, item, _where(label)),
        metadata=metadata,
    )


def _resolve_range(
    request: RangeRequest, profile: DocumentProfile, full_text: str, config: EngineConfig,
) -> RetrievalResult:
    resolved = _resolve_source(request, profile, full_text, config, "range")
    if isinstance(resolved, RetrievalResult):
        return resolved
    source, label = resolved
    items = _collect(request.unit, source, request.sentence)
    count = len(items)
    unit = request.unit
    metadata: dict[str, Any] = {
        "unit": unit,
        "requested_start": request.start,
        "requested_end": request.end,
        "from_end": request.from_end,
        "section": request.section,
        "sentence": request.sentence,
        "count": count,
        "clamped": False,
    }
    plural = _UNIT_PLURALS[unit]
    if request.from_end:
        end_from_end = request.end if request.end is not None else 1
        requested = (
            f"the last {request.start} {_plural(unit, request.start)}" if end_from_end == 1
            else f"{plural} {request.start}-{end_from_end} from the end"
        )
    elif request.end is None:
        requested = f"{plural} {request.start} onward"
    else:
        requested = f"{plural} {request.start}-{request.end}"

    if request.from_end:
        if 1 <= request.start < end_from_end:
            return RetrievalResult(
                mode="range", status="not_found",
                text=f"Invalid range: {requested} runs backwards.", metadata=metadata,
            )
        lo, hi = count - request.start, count - end_from_end
        if count == 0 or hi < 0 or min(request.start, end_from_end) < 1:
            return RetrievalResult(
                mode="range", status="not_found",
                text=(
                    f"{requested[0].upper()}{requested[1:]} not found. "
                    f"{_count_statement(label, count, unit)}"
                ),
                metadata=metadata,
            )
        clamped = lo < 0
        lo = max(lo, 0)
    else:
        if request.end is not None and request.start > request.end:
            return RetrievalResult(
                mode="range", status="not_found",
                text=(
                    f"Invalid range: {unit} {request.start} comes after "
                    f"{unit} {request.end}."
                ),
                metadata=metadata,
            )
        lo = request.start - 1
        if not 0 <= lo < count:
            return RetrievalResult(
                mode="range", status="not_found",
                text=(
                    f"{requested[0].upper()}{requested[1:]} not found. "
                    f"{_count_statement(label, count, unit)}"
                ),
                metadata=metadata,
            )
        hi = count - 1 if request.end is None else request.end - 1
        clamped = hi > count - 1
        hi = min(hi, count - 1)

    selected = items[lo:hi + 1]
    metadata.update(
        start=lo + 1,
        end=hi + 1,
        clamped=clamped,
        numbers=[i.number for i in selected],
    )
    text = _render_range(unit, selected, _where(label))
    if clamped:
        text += f"\n\n(Requested {requested}; {label} has only {count} {_plural(unit, count)}.)"
    return RetrievalResult(mode="range", status="found", text=text, metadata=metadata)


def _resolve_search(
    request: SearchRequest, profile: DocumentProfile, full_text: str, config: EngineConfig,
) -> RetrievalResult:
    result = get_exact_quote_all(
        full_text, request.term, context_chars=config.quote_all_context_chars,
    )
    total = result.total_count
    metadata: dict[str, Any] = {
        "term": request.term,
        "count_only": request.count_only,
        "total_count": total,
    }
    if total == 0:
        text = (
            f'"{request.term}" does not appear in the document (0 occurrences).'
            if request.count_only
            else f'No mentions of "{request.term}" found in the document.'
        )
        return RetrievalResult(mode="search", status="not_found", text=text, metadata=metadata)

    if request.count_only:
        times = "time" if total == 1 else "times"
        return RetrievalResult(
            mode="search",
            status="found",
            text=f'"{request.term}" appears {total} {times} in the document.',
            metadata=metadata,
        )

    shown = result.matches[:config.max_rendered_matches]
    lines = [
        f'{n}. Line {m.line_number}: "...{m.context}..."'
        for n, m in enumerate(shown, start=1)
    ]
    if total > len(shown):
        lines.append(f"... and {total - len(shown)} more")
    positions = [m.char_position for m in shown]
    metadata.update(
        rendered_count=len(shown),
        char_positions=positions,
        line_numbers=[m.line_number for m in shown],
        sentence_numbers=[_number_at(sentence_index_at, profile, p) for p in positions],
        paragraph_numbers=[_number_at(paragraph_index_at, profile, p) for p in positions],
    )
    return RetrievalResult(
        mode="search",
        status="found",
        text=f'Found {total} mention(s) of "{request.term}":\n' + "\n".join(lines),
        metadata=metadata,
    )


def _resolve_compound(
    request: CompoundRequest, profile: DocumentProfile, full_text: str, config: EngineConfig,
) -> RetrievalResult:
    parts = tuple(_dispatch(part, profile, full_text, config) for part in request.parts)
    found = sum(1 for p in parts if p.status == "found")
    if found == len(parts):
        status = "found"
    elif found == 0:
        status = "not_found"
    else:
        status = "partial"
    return RetrievalResult(
        mode="compound",
        status=status,
        text="\n\n".join(p.text for p in parts),
        metadata={
            "part_count": len(parts),
            "found_count": found,
            "parts": [{"mode": p.mode, "status": p.status, **p.metadata} for p in parts],
        },
        parts=parts,
    )


def _dispatch(
    request: RetrievalRequest, profile: DocumentProfile, full_text: str, config: EngineConfig,
) -> RetrievalResult:
    match request:
        case SectionRequest():
            return _resolve_section(request, full_text, config)
        case NthRequest():
            return _resolve_nth(request, profile, full_text, config)
        case RangeRequest():
            return _resolve_range(request, profile, full_text, config)
        case SearchRequest():
            return _resolve_search(request, profile, full_text, config)
        case CompoundRequest():
            return _resolve_compound(request, profile, full_text, config)
        case _:
            assert_never(request)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def unclassified_result(request_text: str) -> RetrievalResult:
    return RetrievalResult(
        mode="unclassified",
        status="ambiguous",
        text=(
            f'Could not determine what to retrieve from "{request_text.strip()}". '
            'Ask for a section ("the methods"), a numbered unit '
            '("the third sentence", "lines 5 to 10", "last 2 paragraphs"), '
            'or a quoted search term ("every mention of \'data\'").'
        ),
        metadata={"request": request_text},
    )


def resolve(
    request: RetrievalRequest,
    profile: DocumentProfile,
    full_text: str,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RetrievalResult:
    """Resolve an already classified request against one document.

    Raises InvalidProfileError when ``profile`` does not describe ``full_text``.
    """
    validate_profile(profile, full_text)
    return _dispatch(request, profile, full_text, config)


def resolve_request(
    request_text: str,
    profile: DocumentProfile,
    full_text: str,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RetrievalResult:
    """Classify a free-form instruction and resolve it to one literal answer."""
    validate_profile(profile, full_text)
    request = classify_request(request_text)
    if request is None:
        log.debug("Unclassified request: %r", request_text)
        return unclassified_result(request_text)
    log.debug("Classified %r as %s", request_text, request_to_dict(request))
    result = _dispatch(request, profile, full_text, config)
    log.debug("Resolved %s -> %s", result.mode, result.status)
    return result

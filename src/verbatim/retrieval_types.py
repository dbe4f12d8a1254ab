"""Retrieval request and result types.

Type hierarchy:
  SectionRequest   — a whole named section ("the methods")
  NthRequest       — one addressed unit ("the third sentence", "last line")
  RangeRequest     — an inclusive span of units ("sentences 4 through 9")
  SearchRequest    — every literal occurrence of a term, or just their count
  CompoundRequest  — two or more of the above answered together
  RetrievalResult  — the single literal answer returned for any request

``RetrievalRequest`` is a closed union; the resolver dispatches on it with an
exhaustive ``match`` so every variant must produce a result.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

Unit: TypeAlias = Literal["sentence", "paragraph", "line", "word", "phrase", "clause"]
Mode: TypeAlias = Literal["section", "nth", "range", "search", "compound", "unclassified"]
Status: TypeAlias = Literal["found", "not_found", "partial", "ambiguous"]

UNITS: tuple[str, ...] = ("sentence", "paragraph", "line", "word", "phrase", "clause")
MODES: tuple[str, ...] = ("section", "nth", "range", "search", "compound", "unclassified")
STATUSES: tuple[str, ...] = ("found", "not_found", "partial", "ambiguous")

# Units addressable inside a single sentence ("the second clause of sentence 4").
SENTENCE_SCOPED_UNITS = frozenset({"phrase", "clause"})


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def _check_scope(unit: str, section: str | None, sentence: int | None) -> None:
    if unit not in UNITS:
        raise ValueError(f"unknown unit {unit!r}")
    if section is not None and sentence is not None:
        raise ValueError("a request is scoped to a section or a sentence, not both")
    if sentence is not None:
        if unit not in SENTENCE_SCOPED_UNITS:
            raise ValueError(f"sentence scope only applies to phrases and clauses, got {unit!r}")
        if sentence < 0:
            raise ValueError(f"sentence scope must be >= 0, got {sentence}")


@dataclass(frozen=True, slots=True)
class SectionRequest:
    section: str    # canonical name


@dataclass(frozen=True, slots=True)
class NthRequest:
    unit: Unit
    position: int               # 1-based, 0 never exists; counted from the end when from_end
    from_end: bool = False
    section: str | None = None
    sentence: int | None = None

    def __post_init__(self) -> None:
        _check_scope(self.unit, self.section, self.sentence)
        if self.position < 0:
            raise ValueError(f"position must be >= 0, got {self.position}")


@dataclass(frozen=True, slots=True)
class RangeRequest:
    """Inclusive 1-based range; ``end=None`` runs to the last unit.

    With ``from_end`` both bounds count back from the last unit, so
    "last 3 sentences" is ``start=3, end=1, from_end=True``. A zero bound is
    accepted and resolves to not found.
    """

    unit: Unit
    start: int
    end: int | None
    from_end: bool = False
    section: str | None = None
    sentence: int | None = None

    def __post_init__(self) -> None:
        _check_scope(self.unit, self.section, self.sentence)
        if self.start < 0:
            raise ValueError(f"start must be >= 0, got {self.start}")
        if self.end is not None and self.end < 0:
            raise ValueError(f"end must be >= 0, got {self.end}")


@dataclass(frozen=True, slots=True)
class SearchRequest:
    term: str
    count_only: bool = False

    def __post_init__(self) -> None:
        if not self.term.strip():
            raise ValueError("search term cannot be blank")


@dataclass(frozen=True, slots=True)
class CompoundRequest:
    parts: tuple[SectionRequest | NthRequest | RangeRequest | SearchRequest, ...]

    def __post_init__(self) -> None:
        if len(self.parts) < 2:
            raise ValueError(f"a compound request needs >= 2 parts, got {len(self.parts)}")


SimpleRequest: TypeAlias = SectionRequest | NthRequest | RangeRequest | SearchRequest
RetrievalRequest: TypeAlias = SimpleRequest | CompoundRequest


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RetrievalResult:
    """One literal answer. ``text`` is never empty, even when nothing was found."""

    mode: Mode
    status: Status
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    parts: tuple[RetrievalResult, ...] = ()

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"unknown mode {self.mode!r}")
        if self.status not in STATUSES:
            raise ValueError(f"unknown status {self.status!r}")
        if not self.text.strip():
            raise ValueError("result text cannot be empty")

    @property
    def found(self) -> bool:
        return self.status == "found"


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def request_to_dict(request: RetrievalRequest) -> dict[str, Any]:
    """JSON-ready form of a request, tagged with its mode."""
    match request:
        case SectionRequest(section=section):
            return {"mode": "section", "section": section}
        case NthRequest():
            return {
                "mode": "nth",
                "unit": request.unit,
                "position": request.position,
                "from_end": request.from_end,
                "section": request.section,
                "sentence": request.sentence,
            }
        case RangeRequest():
            return {
                "mode": "range",
                "unit": request.unit,
                "start": request.start,
                "end": request.end,
                "from_end": request.from_end,
                "section": request.section,
                "sentence": request.sentence,
            }
        case SearchRequest(term=term, count_only=count_only):
            return {"mode": "search", "term": term, "count_only": count_only}
        case CompoundRequest(parts=parts):
            return {"mode": "compound", "parts": [request_to_dict(p) for p in parts]}


def result_to_dict(result: RetrievalResult) -> dict[str, Any]:
    out: dict[str, Any] = {
        "mode": result.mode,
        "status": result.status,
        "text": result.text,
        "metadata": result.metadata,
    }
    if result.parts:
        out["parts"] = [result_to_dict(p) for p in result.parts]
    return out

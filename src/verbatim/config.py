"""Engine configuration: heuristic constants with their tuned defaults.

Every threshold used by the profiler, the section detector and the resolver
lives here so callers can tune them per corpus without touching code. The
defaults are tuned for English prose; they are not expected to carry over to
other languages.

A config file is a JSON object holding any subset of the fields below::

    {"inferred_abstract_max_chars": 4000, "abbreviations": ["mr", "dr"]}
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from verbatim.io_utils import load_json

ANALYZER_VERSION = "1.0"

# Lowercase, without the trailing period. Multi-period forms ("e.g") are
# matched both as written and with the internal periods removed.
DEFAULT_ABBREVIATIONS: frozenset[str] = frozenset({
    # Titles
    "mr", "mrs", "ms", "dr", "prof", "rev", "gen", "gov", "sgt", "cpl",
    "jr", "sr", "lt", "col", "maj", "capt", "st",
    # Address
    "ave", "blvd", "rd", "apt",
    # Latin / academic
    "etc", "e.g", "i.e", "vs", "viz", "al", "approx", "dept", "est",
    "fig", "figs", "no", "vol", "ch", "sec", "ed", "eq", "cf", "ca",
    # Months
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sept", "sep",
    "oct", "nov", "dec",
})


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Tunable parameters shared by all engine components."""

    abbreviations: frozenset[str] = DEFAULT_ABBREVIATIONS
    inferred_abstract_min_chars: int = 50
    inferred_abstract_max_chars: int = 3000
    bare_heading_max_chars: int = 50
    bare_heading_max_words: int = 6
    caps_heading_max_chars: int = 40
    min_scientific_sections: int = 3
    quote_context_chars: int = 100
    quote_all_context_chars: int = 50
    max_rendered_matches: int = 50
    analyzer_version: str = field(default=ANALYZER_VERSION)

    def __post_init__(self) -> None:
        if not isinstance(self.abbreviations, frozenset):
            # Allow lists/sets from JSON; normalise to lowercase, no trailing dot.
            object.__setattr__(
                self,
                "abbreviations",
                frozenset(str(a).lower().rstrip(".") for a in self.abbreviations),
            )
        for name in (
            "inferred_abstract_min_chars",
            "inferred_abstract_max_chars",
            "bare_heading_max_chars",
            "bare_heading_max_words",
            "caps_heading_max_chars",
            "quote_context_chars",
            "quote_all_context_chars",
        ):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative int, got {value!r}")
        if self.inferred_abstract_max_chars <= self.inferred_abstract_min_chars:
            raise ValueError(
                "inferred_abstract_max_chars must be > inferred_abstract_min_chars, "
                f"got {self.inferred_abstract_max_chars} <= {self.inferred_abstract_min_chars}",
            )
        if self.min_scientific_sections < 1:
            raise ValueError(
                f"min_scientific_sections must be >= 1, got {self.min_scientific_sections}",
            )
        if self.max_rendered_matches < 1:
            raise ValueError(
                f"max_rendered_matches must be >= 1, got {self.max_rendered_matches}",
            )
        if not self.analyzer_version:
            raise ValueError("analyzer_version cannot be empty")


DEFAULT_CONFIG = EngineConfig()

_FIELD_NAMES = frozenset(f.name for f in fields(EngineConfig))


def config_from_dict(payload: dict[str, Any]) -> EngineConfig:
    """Build a config from a dict of overrides; unknown keys are rejected."""
    if not isinstance(payload, dict):
        raise ValueError(f"config payload must be a JSON object, got {type(payload).__name__}")
    unknown = sorted(set(payload) - _FIELD_NAMES)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")
    return EngineConfig(**payload)


def load_engine_config(path: Path) -> EngineConfig:
    """Load config overrides from a JSON file."""
    return config_from_dict(load_json(path))


def config_to_dict(config: EngineConfig) -> dict[str, Any]:
    """Serialize a config for JSON output (abbreviations sorted)."""
    out: dict[str, Any] = {}
    for f in fields(config):
        value = getattr(config, f.name)
        out[f.name] = sorted(value) if isinstance(value, frozenset) else value
    return out

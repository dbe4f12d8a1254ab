"""Tests for verbatim.sections heading detection."""
from __future__ import annotations

from verbatim.config import EngineConfig
from verbatim.sections import (
    INFERRED_ABSTRACT_LABEL,
    SECTION_NAMES,
    detect_sections,
    normalize_section_name,
)

PAPER = """A Study of Things

This paper examines many things in careful detail and reports what we found about them.

1. Introduction
Things matter a great deal.

2. Methods
We counted things.

3. Results
There were many things.

References
Smith J. Introduction to Things. 2020.
Introduction
"""


class TestNormalizeSectionName:
    def test_markdown_and_ordinal_stripped(self) -> None:
        assert normalize_section_name("## 2.1 Materials and Methods") == "methods"

    def test_roman_numeral_caps(self) -> None:
        assert normalize_section_name("IV. DISCUSSION") == "discussion"

    def test_alias_with_trailing_punctuation(self) -> None:
        assert normalize_section_name("Acknowledgements:") == "acknowledgments"
        assert normalize_section_name("Works Cited") == "references"

    def test_first_word_fallback(self) -> None:
        assert normalize_section_name("Results of the survey") == "results"

    def test_unknown(self) -> None:
        assert normalize_section_name("Random Heading") is None
        assert normalize_section_name("   ") is None

    def test_aliases_map_into_vocabulary(self) -> None:
        assert normalize_section_name("Related Work") in SECTION_NAMES


class TestDetectSections:
    def test_reference_entries_do_not_create_sections(self) -> None:
        profile = detect_sections(PAPER)
        assert profile.section_names.count("introduction") == 1
        assert profile.section_names[-1] == "references"
        intro = profile.get("introduction")
        assert intro is not None
        assert intro.start_line == 5

    def test_spans_and_text(self) -> None:
        profile = detect_sections(PAPER)
        assert profile.section_names == (
            "abstract", "introduction", "methods", "results", "references",
        )
        methods = profile.get("methods")
        assert methods is not None
        assert methods.display_name == "2. Methods"
        assert (methods.start_line, methods.end_line) == (8, 10)
        assert methods.text == "We counted things."
        assert methods.word_count == 3
        refs = profile.get("references")
        assert refs is not None
        assert refs.text == "Smith J. Introduction to Things. 2020.\nIntroduction"

    def test_inferred_abstract(self) -> None:
        abstract = detect_sections(PAPER).get("abstract")
        assert abstract is not None
        assert abstract.display_name == INFERRED_ABSTRACT_LABEL
        assert (abstract.start_line, abstract.end_line) == (1, 4)
        assert abstract.text.startswith("A Study of Things")

    def test_no_inferred_abstract_when_explicit(self) -> None:
        text = (
            "Some leading prose that is long enough to count as an abstract block.\n\n"
            "Abstract\nWe did it.\n\nIntroduction\nWhy.\n\nMethods\nHow.\n"
        )
        profile = detect_sections(text)
        abstracts = [s for s in profile.sections if s.name == "abstract"]
        assert len(abstracts) == 1
        assert abstracts[0].display_name == "Abstract"

    def test_short_leading_block_not_inferred(self) -> None:
        text = "Title\n\nIntroduction\nA.\n\nMethods\nB.\n\nResults\nC.\n"
        assert detect_sections(text).section_names == ("introduction", "methods", "results")

    def test_heading_families(self) -> None:
        text = "# Abstract\nx y\n\nMETHODS\nx y\n\nIII. Results\nx y\n\nConclusions\nx y\n"
        assert detect_sections(text).section_names == (
            "abstract", "methods", "results", "conclusion",
        )

    def test_prose_line_is_not_heading(self) -> None:
        profile = detect_sections("Results were mixed.\nMethods vary.\n")
        assert profile.sections == ()
        assert not profile.is_scientific_format

    def test_unpunctuated_prose_is_not_heading(self) -> None:
        text = (
            "Introduction\nA b.\n\nResults were mixed\nMethods vary widely\n\n"
            "Results Overview\nC d.\n"
        )
        assert detect_sections(text).section_names == ("introduction", "results")

    def test_scientific_threshold(self) -> None:
        text = "Introduction\nA b.\n\nMethods\nC d.\n"
        assert not detect_sections(text).is_scientific_format
        assert detect_sections(text, EngineConfig(min_scientific_sections=2)).is_scientific_format

    def test_get_missing(self) -> None:
        assert detect_sections(PAPER).get("appendix") is None

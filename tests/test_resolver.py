"""End-to-end tests for verbatim.resolver."""
from __future__ import annotations

import pytest

from verbatim.config import EngineConfig
from verbatim.profile_types import InvalidProfileError
from verbatim.profiler import analyze_document
from verbatim.resolver import resolve, resolve_request
from verbatim.retrieval_types import (
    MODES,
    CompoundRequest,
    NthRequest,
    RangeRequest,
    RetrievalResult,
    SearchRequest,
    SectionRequest,
)

SIX = "One is here. Two is here. Three is here.\n\nFour is here. Five is here. Six is here."

FIVE_PARAGRAPHS = "\n\n".join(
    f"Paragraph {name} starts. It ends here."
    for name in ("alpha", "beta", "gamma", "delta", "omega")
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


def ask(request: str, text: str = SIX, config: EngineConfig | None = None) -> RetrievalResult:
    profile = analyze_document(text)
    if config is None:
        return resolve_request(request, profile, text)
    return resolve_request(request, profile, text, config)


class TestNth:
    def test_sentence(self) -> None:
        result = ask("the third sentence")
        assert result.mode == "nth"
        assert result.status == "found"
        assert result.text == 'Sentence 3 (line 1): "Three is here."'

    def test_sentence_line_number(self) -> None:
        assert ask("sentence 4").text == 'Sentence 4 (line 3): "Four is here."'

    def test_paragraph(self) -> None:
        assert ask("the second paragraph").text == (
            'Paragraph 2 (lines 3-3, 9 words):\n"Four is here. Five is here. Six is here."'
        )

    def test_line_and_word(self) -> None:
        assert ask("line 3").text == 'Line 3: "Four is here. Five is here. Six is here."'
        assert ask("word 2").text == 'Word 2: "is"'

    def test_from_end(self) -> None:
        result = ask("the last sentence")
        assert result.text == 'Sentence 6 (line 3): "Six is here."'
        assert result.metadata["number"] == 6

    def test_out_of_range(self) -> None:
        result = ask("paragraph 5")
        assert result.status == "not_found"
        assert result.text == "Paragraph 5 not found. The document has 2 paragraphs."

    def test_clause_in_sentence(self) -> None:
        text = "We stayed inside because it rained."
        result = ask("the second clause of sentence 1", text)
        assert result.found
        assert result.text == (
            'Clause 2 of sentence 1 (sentence 1, dependent, line 1): "because it rained."'
        )

    def test_clause_scope_beyond_document(self) -> None:
        result = ask("the first clause of sentence 9", "Only one sentence here.")
        assert result.status == "not_found"
        assert result.text == "Sentence 9 not found. The document has 1 sentence."

    @pytest.mark.parametrize(
        ("request_text", "expected"),
        [
            ("sentence 0", "Sentence 0 not found. The document has 6 sentences."),
            ("paragraph 0", "Paragraph 0 not found. The document has 2 paragraphs."),
        ],
    )
    def test_zero_position_is_not_found(self, request_text: str, expected: str) -> None:
        result = ask(request_text)
        assert result.mode == "nth"
        assert result.status == "not_found"
        assert result.text == expected

    def test_zero_sentence_scope(self) -> None:
        result = ask("the first clause of sentence 0", "Only one sentence here.")
        assert result.status == "not_found"
        assert result.text == "Sentence 0 not found. The document has 1 sentence."


class TestRange:
    def test_clamped_to_document(self) -> None:
        result = ask("sentences 4 through 20")
        assert result.status == "found"
        assert result.metadata["start"] == 4
        assert result.metadata["end"] == 6
        assert result.metadata["clamped"] is True
        assert result.text == (
            "Sentences 4-6:\n"
            '4. "Four is here." (line 3)\n'
            '5. "Five is here." (line 3)\n'
            '6. "Six is here." (line 3)\n\n'
            "(Requested sentences 4-20; the document has only 6 sentences.)"
        )

    def test_wholly_out_of_range(self) -> None:
        result = ask("sentences 20 through 25")
        assert result.status == "not_found"
        assert result.mode == "range"
        assert result.text == "Sentences 20-25 not found. The document has 6 sentences."

    def test_zero_start_is_not_found(self) -> None:
        result = ask("sentences 0 through 3")
        assert result.mode == "range"
        assert result.status == "not_found"
        assert result.text == "Sentences 0-3 not found. The document has 6 sentences."

    def test_backwards_range(self) -> None:
        result = ask("sentences 5 to 2")
        assert result.status == "not_found"
        assert result.text == "Invalid range: sentence 5 comes after sentence 2."

    def test_last_n(self) -> None:
        result = ask("last 2 sentences")
        assert result.metadata["numbers"] == [5, 6]
        assert result.text.startswith("Sentences 5-6:\n")

    def test_last_n_more_than_available(self) -> None:
        result = ask("last 9 sentences")
        assert result.found
        assert result.metadata["numbers"] == [1, 2, 3, 4, 5, 6]
        assert result.text.endswith("(Requested the last 9 sentences; the document has only 6 sentences.)")

    def test_open_ended(self) -> None:
        result = ask("everything after sentence 4")
        assert result.metadata["numbers"] == [5, 6]
        assert result.metadata["clamped"] is False

    def test_words_on_one_line(self) -> None:
        assert ask("words 1 to 3").text == "Words 1-3: One is here."

    def test_lines_render_line_numbers(self) -> None:
        assert ask("lines 1 to 2").text == 'Lines 1-2:\n1: "One is here. Two is here. Three is here."\n2: ""'


class TestSection:
    def test_found(self) -> None:
        result = ask("the methods", PAPER)
        assert result.mode == "section"
        assert result.text == '2. Methods (lines 8-10, 3 words):\n"We counted things."'

    def test_missing_lists_present(self) -> None:
        result = ask("the appendix", PAPER)
        assert result.status == "not_found"
        assert result.text == (
            "No appendix section found. "
            "Sections present: abstract, introduction, methods, results, references."
        )

    def test_no_structure(self) -> None:
        result = ask("the methods")
        assert result.status == "not_found"
        assert result.metadata["is_scientific_format"] is False

    def test_unit_within_section_uses_document_lines(self) -> None:
        result = ask("the first sentence of the methods", PAPER)
        assert result.found
        assert result.text == 'Sentence 1 of the methods section (line 9): "We counted things."'

    def test_unit_within_missing_section(self) -> None:
        result = ask("the first sentence of the appendix", PAPER)
        assert result.status == "not_found"
        assert result.metadata["unit"] == "sentence"


class TestSearch:
    def test_listing(self) -> None:
        result = ask("every mention of 'is here'")
        assert result.found
        assert result.metadata["total_count"] == 6
        assert result.text.startswith('Found 6 mention(s) of "is here":\n1. Line 1: "...')

    def test_count_only(self) -> None:
        assert ask("how many times does 'Four' appear").text == (
            '"Four" appears 1 time in the document.'
        )

    def test_zero(self) -> None:
        result = ask("every mention of 'zebra'")
        assert result.status == "not_found"
        assert result.text == 'No mentions of "zebra" found in the document.'

    def test_zero_count_only(self) -> None:
        assert ask("how many times does 'zebra' appear").text == (
            '"zebra" does not appear in the document (0 occurrences).'
        )

    def test_rendering_capped(self) -> None:
        result = ask("every mention of 'is'", config=EngineConfig(max_rendered_matches=2))
        assert result.metadata["total_count"] == 6
        assert result.metadata["rendered_count"] == 2
        assert result.text.endswith("... and 4 more")

    def test_match_locations(self) -> None:
        result = ask("every mention of 'Four'")
        assert result.metadata["line_numbers"] == [3]
        assert result.metadata["sentence_numbers"] == [4]
        assert result.metadata["paragraph_numbers"] == [2]


class TestCompound:
    def test_first_and_last_paragraphs_keep_order(self) -> None:
        result = ask("first and last paragraphs", FIVE_PARAGRAPHS)
        assert result.mode == "compound"
        assert result.status == "found"
        first = result.text.index("Paragraph alpha starts.")
        last = result.text.index("Paragraph omega starts.")
        assert first < last
        assert [p.mode for p in result.parts] == ["nth", "nth"]

    @pytest.mark.parametrize(
        "request_text",
        ["show me the first and last paragraphs", "what are the first and last paragraphs"],
    )
    def test_lead_in_returns_both_paragraphs(self, request_text: str) -> None:
        result = ask(request_text, FIVE_PARAGRAPHS)
        assert result.mode == "compound"
        assert result.status == "found"
        assert result.text.index("Paragraph alpha starts.") < result.text.index(
            "Paragraph omega starts."
        )

    def test_second_sentence_and_fourth_one(self) -> None:
        result = ask("the second sentence and the fourth one")
        assert result.mode == "compound"
        assert [p.metadata["number"] for p in result.parts] == [2, 4]
        assert "Two is here." in result.text
        assert "Four is here." in result.text

    def test_unclear_part_is_not_dropped(self) -> None:
        result = ask("the abstract and the weather", PAPER)
        assert result.mode == "unclassified"
        assert result.status == "ambiguous"
        assert "weather" in result.text

    def test_partial(self) -> None:
        result = ask("sentence 1 and paragraph 9")
        assert result.status == "partial"
        assert result.metadata["found_count"] == 1


class TestNoFallback:
    @pytest.mark.parametrize(
        "request_text",
        [
            "the methods",
            "the third sentence",
            "sentences 2 through 4",
            "every mention of 'here'",
            "first and last paragraphs",
            "tell me something interesting",
            "",
        ],
    )
    def test_mode_is_named_outcome(self, request_text: str) -> None:
        result = ask(request_text)
        assert result.mode in MODES
        assert result.text.strip()
        assert result.text != SIX

    def test_unclassified(self) -> None:
        result = ask("tell me something interesting")
        assert result.mode == "unclassified"
        assert result.status == "ambiguous"


class TestResolve:
    def test_typed_requests(self) -> None:
        profile = analyze_document(SIX)
        assert resolve(NthRequest(unit="sentence", position=2), profile, SIX).found
        assert resolve(RangeRequest(unit="line", start=1, end=3), profile, SIX).found
        assert resolve(SearchRequest(term="Six"), profile, SIX).found
        assert resolve(SectionRequest(section="methods"), profile, SIX).status == "not_found"
        compound = CompoundRequest(parts=(
            NthRequest(unit="word", position=1),
            NthRequest(unit="word", position=1, from_end=True),
        ))
        assert resolve(compound, profile, SIX).text == 'Word 1: "One"\n\nWord 18: "here."'

    def test_mismatched_profile_raises(self) -> None:
        profile = analyze_document("Something else entirely.")
        with pytest.raises(InvalidProfileError):
            resolve_request("sentence 1", profile, SIX)

"""Tests for verbatim.grammar phrase and clause detection."""
from __future__ import annotations

import pytest

from verbatim.grammar import (
    count_clauses,
    count_phrases,
    detect_clauses,
    detect_phrases,
    document_clauses,
    document_phrases,
)
from verbatim.profiler import analyze_document


class TestDetectPhrases:
    def test_comma_split(self) -> None:
        phrases = detect_phrases("However, the results, which were clear, held.", 0)
        assert [p.text for p in phrases] == ["However", "the results", "which were clear", "held."]
        assert [p.index for p in phrases] == [0, 1, 2, 3]

    def test_digit_comma_and_semicolon(self) -> None:
        phrases = detect_phrases("We counted 1,000 birds; most flew.", 3)
        assert [p.text for p in phrases] == ["We counted 1,000 birds", "most flew."]
        assert all(p.sentence_index == 3 for p in phrases)

    def test_quotes_and_brackets_protect(self) -> None:
        phrases = detect_phrases('He said "yes, no" (a, b), then left.', 0)
        assert [p.text for p in phrases] == ['He said "yes, no" (a, b)', "then left."]

    def test_offsets_match_text(self) -> None:
        sentence = "First part: second part, third part."
        for p in detect_phrases(sentence, 0):
            assert sentence[p.start:p.end] == p.text

    def test_no_splitters(self) -> None:
        phrases = detect_phrases("Just one phrase.", 0)
        assert len(phrases) == 1
        assert phrases[0].word_count == 3

    def test_blank(self) -> None:
        assert detect_phrases("   ", 0) == ()


class TestDetectClauses:
    def test_leading_subordinate(self) -> None:
        clauses = detect_clauses("Although it rained, we played outside.", 0)
        assert [(c.text, c.clause_type) for c in clauses] == [
            ("Although it rained", "dependent"),
            ("we played outside.", "independent"),
        ]

    def test_mid_sentence_conjunction_starts_clause(self) -> None:
        clauses = detect_clauses("We stayed inside because it rained.", 0)
        assert [(c.text, c.clause_type) for c in clauses] == [
            ("We stayed inside", "independent"),
            ("because it rained.", "dependent"),
        ]

    def test_multiword_conjunction(self) -> None:
        clauses = detect_clauses("She smiled even though she lost.", 0)
        assert [c.text for c in clauses] == ["She smiled", "even though she lost."]
        assert clauses[1].clause_type == "dependent"

    def test_short_segments_fall_back_to_sentence(self) -> None:
        clauses = detect_clauses("Yes, indeed.", 0)
        assert len(clauses) == 1
        assert clauses[0].text == "Yes, indeed."
        assert clauses[0].clause_type == "independent"

    def test_conjunction_inside_word_ignored(self) -> None:
        clauses = detect_clauses("The gift arrived beforehand.", 0)
        assert len(clauses) == 1

    def test_offsets_match_text(self) -> None:
        sentence = "When it ends, we leave, unless it rains again."
        for c in detect_clauses(sentence, 0):
            assert sentence[c.start:c.end] == c.text


class TestDocumentAggregates:
    def test_document_level(self) -> None:
        p = analyze_document("Red, green, blue. Because we can, we do.")
        assert [x.text for x in document_phrases(p)] == [
            "Red", "green", "blue.", "Because we can", "we do.",
        ]
        assert count_phrases(p.sentences) == 5
        clauses = document_clauses(p)
        assert [c.sentence_index for c in clauses] == [0, 1, 1]
        assert count_clauses(p.sentences) == 3


class TestRepeatability:
    @pytest.mark.parametrize(
        "sentence",
        [
            'He said "yes, no" (a, b), then left.',
            "She smiled even though she lost, as long as it rained.",
            "In order that we win [see note, p. 4]; we train so that we improve.",
            "When it ends, we leave, unless it rains again.",
        ],
    )
    def test_same_input_same_boundaries(self, sentence: str) -> None:
        assert detect_phrases(sentence, 2) == detect_phrases(sentence, 2)
        assert detect_clauses(sentence, 2) == detect_clauses(sentence, 2)
        for unit in (*detect_phrases(sentence, 2), *detect_clauses(sentence, 2)):
            assert sentence[unit.start:unit.end] == unit.text

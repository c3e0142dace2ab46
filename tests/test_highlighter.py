"""
Tests for glossary term highlighting
"""
import pytest
from hypothesis import given, strategies as st

from models.document import GlossaryTerm
from services.highlighter import (
    highlight, sort_terms_for_matching, segments_to_text, PlainSegment, TermMatch
)


def term(text, definition="definition"):
    return GlossaryTerm(term=text, definition=definition)


def count_matches(segments):
    return sum(1 for segment in segments if isinstance(segment, TermMatch))


class TestHighlight:
    """Test splitting text into plain and matched segments"""

    def test_empty_glossary_returns_text_unchanged(self):
        """Test that no glossary yields a single plain segment"""
        assert highlight("Patient has hypertension.", []) == [PlainSegment("Patient has hypertension.")]
        assert highlight("Patient has hypertension.", None) == [PlainSegment("Patient has hypertension.")]

    def test_empty_text(self):
        """Test that empty text yields one empty plain segment"""
        assert highlight("", [term("heart")]) == [PlainSegment("")]

    def test_case_insensitive_match_preserves_source_casing(self):
        """Test that matches keep the casing found in the text"""
        segments = highlight("HYPERTENSION noted", [term("hypertension")])

        assert segments[0] == TermMatch("HYPERTENSION", term("hypertension"))
        assert segments[1] == PlainSegment(" noted")

    def test_whole_word_only(self):
        """Test that a term inside a longer word is not matched"""
        segments = highlight("The heartbeat was regular", [term("heart")])

        assert count_matches(segments) == 0
        assert segments == [PlainSegment("The heartbeat was regular")]

    def test_longest_term_wins(self):
        """Test that a multi-word term is matched before a shorter term inside it"""
        glossary = [term("heart"), term("heart failure")]
        segments = highlight("Signs of heart failure and a weak heart.", glossary)

        matches = [s for s in segments if isinstance(s, TermMatch)]
        assert [m.text for m in matches] == ["heart failure", "heart"]
        assert matches[0].term.term == "heart failure"
        assert matches[1].term.term == "heart"

    def test_standalone_occurrence_of_shorter_term_is_matched(self):
        """Test that occurrences outside a longer match stay matchable"""
        glossary = [term("failure"), term("heart failure")]
        segments = highlight("heart failure; kidney failure", glossary)

        assert [s.text for s in segments if isinstance(s, TermMatch)] == ["heart failure", "failure"]

    def test_multiple_occurrences(self):
        """Test that every occurrence is matched"""
        segments = highlight("BP high. bp checked.", [term("BP")])

        assert count_matches(segments) == 2

    def test_blank_terms_are_ignored(self):
        """Test that empty or whitespace-only terms never match"""
        segments = highlight("some text", [term(""), term("   ")])

        assert segments == [PlainSegment("some text")]

    def test_regex_characters_are_escaped(self):
        """Test that terms containing regex syntax match literally"""
        segments = highlight("Dose of 5 mg (oral) given", [term("5 mg")])

        assert [s.text for s in segments if isinstance(s, TermMatch)] == ["5 mg"]

    def test_term_ending_in_symbol(self):
        """Test that terms ending in a symbol still match"""
        segments = highlight("Serum Na+ was low", [term("Na+")])

        assert segments == [PlainSegment("Serum "), TermMatch("Na+", term("Na+")), PlainSegment(" was low")]

    @pytest.mark.parametrize("text,expected", [
        ("(Na+)", ["Na+"]),
        ("Na+, K+ normal", ["Na+"]),
        ("Na+x", []),
        ("xNa+", []),
    ])
    def test_symbol_edged_term_boundaries(self, text, expected):
        """Test that matches are never preceded or followed by a word character"""
        segments = highlight(text, [term("Na+")])

        assert [s.text for s in segments if isinstance(s, TermMatch)] == expected

    def test_no_empty_plain_segments(self):
        """Test that splitting at the text edges leaves no empty plain pieces"""
        segments = highlight("anemia", [term("anemia")])

        assert segments == [TermMatch("anemia", term("anemia"))]


class TestSortTermsForMatching:
    """Test term ordering"""

    def test_longest_first_and_stable(self):
        """Test descending length with glossary order kept for ties"""
        glossary = [term("abc"), term("a"), term("xyz"), term("abcd")]

        ordered = [t.term for t in sort_terms_for_matching(glossary)]

        assert ordered == ["abcd", "abc", "xyz", "a"]


words = st.sampled_from(["heart", "failure", "heart failure", "blood", "pressure", "high", "the", "and"])
texts = st.lists(st.sampled_from(["heart", "failure", "blood", "pressure", "High", "the", "HEART", "x"]),
                 max_size=30).map(lambda parts: " ".join(parts))
glossaries = st.lists(words, max_size=6).map(lambda items: [term(w) for w in items])


class TestHighlightProperties:
    """Property-based tests for highlighting"""

    @given(texts, glossaries)
    def test_segments_reconstruct_input(self, text, glossary):
        """Test that concatenating segments reproduces the input"""
        assert segments_to_text(highlight(text, glossary)) == text

    @given(texts, glossaries)
    def test_longer_terms_are_never_split(self, text, glossary):
        """Test that a matched longer term is never re-split by a term it contains"""
        segments = highlight(text, glossary)
        if any(t.term == "heart failure" for t in glossary):
            plain = "".join(s.text for s in segments if isinstance(s, PlainSegment))
            assert "heart failure" not in plain.lower()

    @given(texts, glossaries)
    def test_rehighlighting_plain_parts_is_stable(self, text, glossary):
        """Test that plain parts contain no further matches"""
        for segment in highlight(text, glossary):
            if isinstance(segment, PlainSegment):
                assert count_matches(highlight(segment.text, glossary)) == 0

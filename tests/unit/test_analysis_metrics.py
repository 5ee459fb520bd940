"""Tests for per-page content metrics."""

import pytest

from pipeline.analysis.metrics import (
    content_depth,
    count_syllables,
    count_words,
    keyword_density,
    readability_score,
    semantic_keywords,
)
from pipeline.models import Heading


class TestCountWords:
    """Tests for count_words."""

    def test_whitespace_separated(self) -> None:
        """Words are whitespace-separated tokens."""
        assert count_words("  one two\nthree\tfour ") == 4
        assert count_words("") == 0


class TestCountSyllables:
    """Tests for count_syllables."""

    def test_short_words_are_one_syllable(self) -> None:
        """Words of three letters or fewer count as one."""
        assert count_syllables("cat") == 1
        assert count_syllables("a") == 1

    def test_vowel_groups(self) -> None:
        """Each vowel group is a syllable."""
        assert count_syllables("banana") == 3
        assert count_syllables("rhythm") == 1

    def test_silent_trailing_e(self) -> None:
        """A trailing e is not counted when other vowels exist."""
        assert count_syllables("house") == 1
        assert count_syllables("invoice") == 2


class TestReadabilityScore:
    """Tests for readability_score."""

    def test_empty(self) -> None:
        """No sentences scores zero."""
        assert readability_score([]) == 0.0
        assert readability_score(["   "]) == 0.0

    def test_simple_text_scores_high(self) -> None:
        """Short words in medium sentences read easily."""
        sentences = [
            "The cat sat on the mat and then it ran to the big red barn.",
            "We send the bill to you and you pay it on time each week.",
        ]

        assert readability_score(sentences) > 80

    def test_always_clamped(self) -> None:
        """Scores stay within 0-100 even for extreme input."""
        sentences = ["Incomprehensibilities institutionalization internationalization."]

        score = readability_score(sentences)

        assert 0.0 <= score <= 100.0


class TestKeywordDensity:
    """Tests for keyword_density."""

    def test_only_frequent_keywords(self) -> None:
        """Keywords need three occurrences; short tokens are ignored."""
        result = keyword_density("invoice invoice invoice payroll payroll at at at")

        assert [k.keyword for k in result] == ["invoice"]
        assert result[0].count == 3
        assert result[0].density == pytest.approx(60.0)

    def test_sorted_by_density(self) -> None:
        """The most frequent keyword comes first."""
        text = "tax " * 5 + "cash " * 3 + "report " * 4

        assert [k.keyword for k in keyword_density(text)] == ["tax", "report", "cash"]

    def test_non_ascii_letters(self) -> None:
        """Accented words are single tokens."""
        result = keyword_density("käse käse käse")

        assert result[0].keyword == "käse"


class TestSemanticKeywords:
    """Tests for semantic_keywords."""

    def test_recurring_phrases(self) -> None:
        """Two-word phrases that repeat are reported."""
        result = semantic_keywords("Cash flow report. Cash flow chart.")

        assert result == ["cash flow"]

    def test_no_repeats(self) -> None:
        """Text without repeats has no phrases."""
        assert semantic_keywords("every word here appears once only") == []


class TestContentDepth:
    """Tests for content_depth."""

    def test_empty(self) -> None:
        """No content scores zero."""
        assert content_depth([], []) == 0.0

    def test_structured_content(self) -> None:
        """Word volume, headings and paragraph length all contribute."""
        paragraphs = [" ".join(["word"] * 40), " ".join(["word"] * 40)]
        headings = [
            Heading(level=1, text="Title"),
            Heading(level=2, text="One"),
            Heading(level=2, text="Two"),
        ]

        # 80 words -> 4, two H2 -> 6, single H1 -> 10, 40-word paragraphs -> 15
        assert content_depth(paragraphs, headings) == pytest.approx(35.0)

    def test_capped_at_100(self) -> None:
        """The score never exceeds 100."""
        paragraphs = [" ".join(["word"] * 60)] * 50
        headings = [Heading(level=1, text="T")] + [Heading(level=2, text="S")] * 10 + [
            Heading(level=3, text="X")
        ] * 10

        assert content_depth(paragraphs, headings) == 100.0

"""
Unit tests for the string similarity kernel.

Reference values come from the textbook examples for Levenshtein and
Jaro-Winkler, so a regression in either algorithm shows up here first.
"""

import pytest

from rostermatch.players.similarity import (
    compare,
    edit_distance,
    edit_similarity,
    jaro_winkler,
    normalize,
)


class TestNormalize:
    """Tests for text normalization."""

    def test_lowercase_and_trim(self):
        assert normalize("  JORDAN  ") == "jordan"

    def test_collapse_whitespace(self):
        assert normalize("Mary    Ann\tLee") == "mary ann lee"

    def test_strip_punctuation(self):
        assert normalize("O'Brien") == "obrien"
        assert normalize("St. John") == "st john"

    def test_remove_accents(self):
        assert normalize("José Martínez") == "jose martinez"

    def test_punctuation_between_spaces_leaves_single_space(self):
        assert normalize("Smith - Jones") == "smith jones"

    def test_empty_string(self):
        assert normalize("") == ""
        assert normalize("   ") == ""


class TestEditDistance:
    """Tests for Levenshtein distance."""

    def test_reference_values(self):
        assert edit_distance("", "") == 0
        assert edit_distance("kitten", "sitting") == 3
        assert edit_distance("flaw", "lawn") == 2

    def test_against_empty(self):
        assert edit_distance("abc", "") == 3
        assert edit_distance("", "abcd") == 4


class TestEditSimilarity:
    """Tests for edit distance as a percentage."""

    def test_equal_strings(self):
        assert edit_similarity("smith", "smith") == 100.0
        assert edit_similarity("", "") == 100.0

    def test_one_side_empty(self):
        assert edit_similarity("", "smith") == 0.0
        assert edit_similarity("smith", "") == 0.0

    def test_scaled_by_longer_string(self):
        assert edit_similarity("kitten", "sitting") == pytest.approx(4 / 7 * 100)


class TestJaroWinkler:
    """Tests for Jaro-Winkler similarity."""

    def test_martha_reference_value(self):
        assert jaro_winkler("MARTHA", "MARHTA") == pytest.approx(96.1, abs=0.5)

    def test_dixon_reference_value(self):
        assert jaro_winkler("DIXON", "DICKSONX") == pytest.approx(81.3, abs=0.5)

    def test_equal_strings(self):
        assert jaro_winkler("smith", "smith") == 100.0

    def test_one_side_empty(self):
        assert jaro_winkler("", "smith") == 0.0

    def test_no_common_characters(self):
        assert jaro_winkler("abc", "xyz") == 0.0

    def test_prefix_bonus_applies_to_low_scores(self):
        """The prefix bonus has no minimum Jaro score."""
        # Jaro("ab", "ac") = (1/2 + 1/2 + 1) / 3; one shared leading char
        jaro = (0.5 + 0.5 + 1.0) / 3
        expected = (jaro + 0.1 * 1 * (1 - jaro)) * 100
        assert jaro_winkler("ab", "ac") == pytest.approx(expected)


class TestCompare:
    """Tests for the combined comparison."""

    @pytest.mark.parametrize("text", ["", "Jordan", "O'Brien", "  mary  ann ", "!!!"])
    def test_identity_scores_100(self, text):
        assert compare(text, text) == 100.0

    @pytest.mark.parametrize(
        "a,b",
        [
            ("Jordan", "Jordon"),
            ("Smith", "Smyth"),
            ("Katherine", "Catherine"),
            ("MARTHA", "marhta"),
            ("Lee", "Leigh"),
        ],
    )
    def test_symmetric(self, a, b):
        assert compare(a, b) == pytest.approx(compare(b, a))

    def test_normalizes_before_comparing(self):
        assert compare("O'BRIEN", "obrien") == 100.0

    def test_accents_are_folded(self):
        assert compare("José", "Jose") == 100.0
        assert compare("Zoë Müller", "zoe muller") == 100.0

    def test_takes_the_more_lenient_algorithm(self):
        # Edit similarity: 75. Jaro-Winkler: ~93.3
        score = compare("Jon", "John")
        assert score == pytest.approx(jaro_winkler("jon", "john"))
        assert score > edit_similarity("jon", "john")

    def test_different_names_score_low(self):
        assert compare("Alice", "Bob") < 50.0

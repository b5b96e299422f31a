"""Tests for OCR text cleanup."""

import pytest

from recipepantry.normalize.text import (
    apply_character_corrections,
    collapse_whitespace,
    normalize,
    normalize_unit_words,
    strip_noise_tokens,
)


class TestCharacterCorrections:
    """Tests for misread-character replacement."""

    def test_pipe_and_backslash_become_capital_i(self):
        assert apply_character_corrections("| love \\t") == "I love It"

    def test_zero_becomes_letter_o(self):
        """Known false positive: real digits are rewritten too."""
        assert apply_character_corrections("Bake 10 min") == "Bake 1O min"


class TestNoiseTokens:
    """Tests for punctuation-only token removal."""

    def test_isolated_symbols_removed(self):
        assert strip_noise_tokens("* 2 cups flour") == " 2 cups flour"
        assert strip_noise_tokens("salt ## pepper") == "salt  pepper"

    def test_symbols_inside_words_kept(self):
        assert strip_noise_tokens("salt&pepper #1") == "salt&pepper #1"


class TestUnitWords:
    """Tests for unit singularization."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2 cups flour", "2 cup flour"),
            ("3 Tbsps oil", "3 tbsp oil"),
            ("4 tsps salt", "4 tsp salt"),
            ("2 lbs beef", "2 lb beef"),
            ("8 ozs cheese", "8 oz cheese"),
            ("3 cloves garlic", "3 clove garlic"),
        ],
    )
    def test_plural_units_singularized(self, raw, expected):
        assert normalize_unit_words(raw) == expected

    def test_unit_words_match_whole_words_only(self):
        assert normalize_unit_words("teaspoons cupsize") == "teaspoons cupsize"


class TestCollapseWhitespace:
    def test_blank_lines_and_runs_of_spaces(self):
        assert collapse_whitespace("  a   b \n\n  \n c\t d ") == "a b\nc d"


class TestNormalize:
    """Tests for the full cleanup pipeline."""

    def test_empty_input(self):
        assert normalize("") == ""
        assert normalize(None) == ""

    def test_whitespace_only_input(self):
        assert normalize(" \n\t\n ") == ""

    def test_full_cleanup(self):
        raw = "Pancakes\n\n* 2 cups  flour\n@ 1 Tsps salt\n| mix well"
        assert normalize(raw) == "Pancakes\n2 cup flour\n1 tsp salt\nI mix well"

    @pytest.mark.parametrize(
        "raw",
        [
            "Pancakes\nServes 4\n2 cups flour",
            "  * 10 cups | sugar  \n\n # \n2 Tbsps butter",
            "@@ && %%\n\\ 0 0",
            "cups cups cups\n\n\n",
            "Bake at 350 for 20 minutes",
        ],
    )
    def test_idempotent(self, raw):
        once = normalize(raw)
        assert normalize(once) == once

"""
LittleNest Backend: Name Derivation Unit Tests
================================================

What:  Tests for the pure derivation pipeline (slug, metadata, letter
       analysis, numerology).
How:   Direct function calls; no database, no mocks.

What we test:
    ✅ Slug rules (case, whitespace, punctuation, hyphen runs, idempotence)
    ✅ Blank / punctuation-only names are rejected
    ✅ Metadata and letter analysis for simple and multi-word names
    ✅ Numerology reduction, including master numbers
    ✅ derive_name_fields() is deterministic
"""

import pytest

from littlenest.exceptions import ValidationError
from littlenest.services.derivation import (
    NUMEROLOGY_TRAITS,
    LetterTraits,
    analyze_letters,
    clean_name,
    compute_numerology,
    derive_metadata,
    derive_name_fields,
    letter_traits,
    reduce_number,
    slugify,
)


class TestSlugify:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Ava", "ava"),
            ("Mary Ann", "mary-ann"),
            ("  Anne--Marie  ", "anne-marie"),
            ("O'Brien", "obrien"),
            ("snake_case name", "snake-case-name"),
            ("Jean - Luc", "jean-luc"),
        ],
    )
    def test_slug_rules(self, raw, expected):
        assert slugify(raw) == expected

    def test_slug_is_idempotent(self):
        for raw in ["Mary Ann", "  Anne--Marie  ", "O'Brien", "Jean - Luc"]:
            once = slugify(raw)
            assert slugify(once) == once

    def test_blank_is_rejected(self):
        with pytest.raises(ValidationError):
            slugify("   ")

    def test_punctuation_only_is_rejected(self):
        with pytest.raises(ValidationError, match="URL-safe"):
            slugify("!!!")


class TestMetadata:
    def test_clean_name_collapses_whitespace(self):
        assert clean_name("  Mary   Ann ") == "Mary Ann"

    def test_simple_name(self):
        meta = derive_metadata("Ava")
        assert meta.length == 3
        assert meta.first_letter == "a"
        assert meta.last_letter == "a"

    def test_letters_are_lowercased(self):
        meta = derive_metadata("Noah")
        assert meta.first_letter == "n"
        assert meta.last_letter == "h"

    def test_empty_name_is_rejected(self):
        with pytest.raises(ValidationError):
            derive_metadata("")


class TestLetterAnalysis:
    def test_ava(self):
        analysis = analyze_letters("Ava")
        assert analysis.vowels == 2
        assert analysis.consonants == 1
        assert analysis.first_letter == LetterTraits("spiritual", "air", "sun")
        assert analysis.last_letter == LetterTraits("spiritual", "air", "sun")

    def test_space_counts_as_consonant(self):
        analysis = analyze_letters("Mary Ann")
        assert analysis.vowels == 2
        assert analysis.consonants == 6
        assert analysis.vowels + analysis.consonants == len("Mary Ann")
        assert analysis.first_letter.nature == "emotional"
        assert analysis.last_letter.ruling == "neptune"

    def test_unmapped_letter_is_unknown(self):
        assert letter_traits("é") == LetterTraits("unknown", "unknown", "unknown")
        assert letter_traits("") == LetterTraits()


class TestNumerology:
    def test_ava_is_six(self):
        result = compute_numerology("Ava")
        assert result.number == 6
        assert result.traits == NUMEROLOGY_TRAITS[6]

    def test_max_is_master_eleven(self):
        # m4 + a1 + x6 = 11
        result = compute_numerology("Max")
        assert result.number == 11
        assert result.traits == []

    def test_lily_is_master_twenty_two(self):
        # l3 + i9 + l3 + y7 = 22
        assert compute_numerology("Lily").number == 22

    def test_multi_step_reduction(self):
        # Elizabeth sums to 43 → 7
        assert compute_numerology("Elizabeth").number == 7

    def test_empty_name_is_zero(self):
        result = compute_numerology("")
        assert result.number == 0
        assert result.traits == []

    def test_non_letters_contribute_nothing(self):
        assert compute_numerology("Mary-Ann").number == compute_numerology("MaryAnn").number

    @pytest.mark.parametrize(
        "total, expected",
        [(0, 0), (7, 7), (10, 1), (29, 11), (38, 11), (33, 33), (99, 9), (49, 4)],
    )
    def test_reduce_number(self, total, expected):
        assert reduce_number(total) == expected


class TestDeriveNameFields:
    def test_full_derivation(self):
        derived = derive_name_fields("  Mary   Ann ")
        assert derived.name == "Mary Ann"
        assert derived.slug == "mary-ann"
        assert derived.metadata.length == 8
        assert derived.letter_analysis.vowels == 2

    def test_deterministic(self):
        assert derive_name_fields("Elizabeth") == derive_name_fields("Elizabeth")

    def test_nested_stages(self):
        derived = derive_name_fields("Ava")
        assert derived.numerology.number == 6
        assert derived.letter_analysis.first_letter.element == "air"

    def test_blank_raises(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            derive_name_fields("   ")

"""
LittleNest Backend: Popularity & Similarity Unit Tests
========================================================

What:  Tests for the popularity formula and similarity scoring.
How:   Direct function calls; the SQL form of the formula is compiled, not run.
"""

import pytest
from sqlalchemy.dialects import postgresql

from littlenest.models.name import Name
from littlenest.services.popularity import (
    SimilarityProfile,
    popularity_score,
    rank_by_similarity,
    similarity_score,
)


class TestPopularityScore:
    def test_weighted_formula(self):
        assert popularity_score(11, 5, 2) == pytest.approx(8.3)

    def test_zero_counters(self):
        assert popularity_score(0, 0, 0) == 0

    def test_search_appearance_weight(self):
        assert popularity_score(1, 1, 0) == pytest.approx(0.9)

    def test_sql_expression_from_columns(self):
        expression = popularity_score(Name.views + 1, Name.search_appearances, Name.trend)
        sql = str(expression.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))

        assert sql == "(names.views + 1) * 0.6 + names.search_appearances * 0.3 + names.trend * 0.1"


class TestSimilarity:
    def setup_method(self):
        self.source = SimilarityProfile(origin="latin", length=3, numerology_number=6)

    def test_full_match(self):
        assert similarity_score(self.source, self.source) == 4

    def test_origin_only(self):
        candidate = SimilarityProfile(origin="latin", length=5, numerology_number=2)
        assert similarity_score(self.source, candidate) == 2

    def test_length_and_numerology(self):
        candidate = SimilarityProfile(origin="greek", length=3, numerology_number=6)
        assert similarity_score(self.source, candidate) == 2

    def test_no_match(self):
        candidate = SimilarityProfile(origin="greek", length=7, numerology_number=1)
        assert similarity_score(self.source, candidate) == 0

    def test_ranking_is_descending_and_stable(self):
        candidates = [
            ("first-two", SimilarityProfile("latin", 9, 9)),
            ("four", SimilarityProfile("latin", 3, 6)),
            ("second-two", SimilarityProfile("greek", 3, 6)),
            ("zero", SimilarityProfile("greek", 9, 9)),
        ]
        ranked = rank_by_similarity(self.source, candidates, lambda pair: pair[1])
        assert [(pair[0], score) for pair, score in ranked] == [
            ("four", 4),
            ("first-two", 2),
            ("second-two", 2),
            ("zero", 0),
        ]

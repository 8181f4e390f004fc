"""
Tests for the similarity primitives.
"""

import pytest

from collabsense.similarity import jaccard, tag_similarity, text_similarity, tokenize


class TestTokenize:
    """Test whitespace tokenization."""

    def test_drops_short_tokens(self):
        assert tokenize("a big data pipeline for ML") == {"data", "pipeline"}

    def test_empty_and_none(self):
        assert tokenize("") == set()
        assert tokenize(None) == set()


class TestTextSimilarity:
    """Test title token overlap."""

    def test_identical_text_scores_100(self):
        assert text_similarity("React Performance Optimization", "React Performance Optimization") == 100.0

    def test_empty_text_scores_zero(self):
        assert text_similarity("", "anything") == 0.0
        assert text_similarity("anything", "") == 0.0

    def test_only_short_tokens_scores_zero(self):
        assert text_similarity("a an the", "a an the") == 0.0

    def test_partial_overlap_is_jaccard(self):
        # {react, performance, optimization, tips} vs {..., guide}: 3 / 5
        score = text_similarity(
            "react performance optimization tips",
            "react performance optimization guide"
        )
        assert score == pytest.approx(60.0)

    def test_is_case_sensitive(self):
        assert text_similarity("Python", "python") == 0.0

    def test_score_is_bounded(self):
        score = text_similarity("alpha beta gamma delta", "gamma delta epsilon")
        assert 0.0 <= score <= 100.0


class TestTagSimilarity:
    """Test tag set overlap."""

    def test_case_insensitive(self):
        assert tag_similarity(["React"], ["react"]) == 100.0

    def test_empty_list_scores_zero(self):
        assert tag_similarity([], ["x"]) == 0.0
        assert tag_similarity(["x"], []) == 0.0
        assert tag_similarity(None, ["x"]) == 0.0

    def test_partial_overlap(self):
        assert tag_similarity(["Python", "ML"], ["python", "Go"]) == pytest.approx(100 / 3)

    def test_duplicates_collapse(self):
        assert tag_similarity(["ml", "ML", "Ml"], ["ml"]) == 100.0


class TestJaccard:
    def test_disjoint_sets(self):
        assert jaccard({"a"}, {"b"}) == 0.0

    def test_empty_side(self):
        assert jaccard(set(), {"b"}) == 0.0

"""
Unit tests for edit-distance ingredient matching.
"""

import pytest

from menugen.core.fuzzy import best_match, confidence_tier, similarity


class TestSimilarity:
    """Test the normalized similarity score."""

    def test_identical_ignoring_case_and_spacing(self):
        assert similarity("Piept  de Pui", "piept de pui") == 1.0

    def test_partial_similarity(self):
        assert similarity("piept pui", "Piept de pui") == pytest.approx(0.75)

    def test_confidence_tiers(self):
        assert confidence_tier(0.95) == "high"
        assert confidence_tier(0.75) == "medium"
        assert confidence_tier(0.5) == "low"


class TestBestMatch:
    """Test vocabulary lookup."""

    def test_close_name_matches(self):
        match = best_match("piept pui", ["Piept de pui", "Chiflă"])

        assert match.match == "Piept de pui"
        assert match.similarity >= 0.7
        assert match.confidence == "medium"
        assert match.accepted

    def test_unrelated_name_does_not_match(self):
        match = best_match("Quinoa", ["Piept de pui", "Chiflă"])

        assert match.match is None
        assert match.confidence == "low"
        assert not match.accepted

    def test_empty_vocabulary(self):
        match = best_match("Quinoa", [])

        assert match.match is None
        assert match.similarity == 0.0

    def test_threshold_is_respected(self):
        assert best_match("piept pui", ["Piept de pui"], threshold=0.8).match is None

    def test_ties_keep_vocabulary_order(self):
        match = best_match("abc", ["abd", "abe"], threshold=0.5)
        assert match.match == "abd"

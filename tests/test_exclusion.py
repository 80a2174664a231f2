"""
Unit tests for the beverage and packaged-product exclusion filter.
"""

import pytest

from menugen.core.exclusion import is_excluded, match_exclusion


class TestExclusionFilter:
    """Test which item names skip generation."""

    @pytest.mark.parametrize("name", [
        "Coca-Cola 330ml",
        "Bere Ursus 0.5l",
        "Apă plată",
        "Red Bull",
        "Vin roșu de casă",
        "Orange juice",
    ])
    def test_beverages_are_excluded(self, name):
        assert is_excluded(name)

    @pytest.mark.parametrize("name", [
        "Piept de pui la grătar",
        "Ciorbă de burtă",
        "Grilled salmon with vegetables",
        "Papanași cu smântână și dulceață",
    ])
    def test_dishes_are_not_excluded(self, name):
        assert not is_excluded(name)

    def test_match_reports_category(self):
        match = match_exclusion("Coca-Cola 330ml")

        assert match is not None
        assert match.category == "brand"
        assert match.matched == "coca"

    def test_packaging_size_is_enough(self):
        match = match_exclusion("Limonadă 500 ml")

        assert match is not None
        assert match.category == "packaging"

    def test_word_boundaries_respected(self):
        # "vinete" contains "vin" but is an eggplant salad
        assert match_exclusion("Salată de vinete") is None

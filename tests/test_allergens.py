"""
Unit tests for allergen code mapping.
"""

from menugen.core.allergens import ALLERGENS, map_allergens


class TestAllergenMapping:
    """Test keyword mapping to allergen codes."""

    def test_romanian_ingredients(self):
        assert map_allergens(["Chiflă", "Brânză"], "ro") == ["A1", "A7"]

    def test_english_ingredients(self):
        assert map_allergens(["Wheat bun", "Cheddar cheese", "Shrimp"], "en") == ["A1", "A2", "A7"]

    def test_codes_are_deduplicated_in_table_order(self):
        codes = map_allergens(["Cașcaval", "Smântână", "Făină de grâu"], "ro")
        assert codes == ["A1", "A7"]

    def test_empty_input(self):
        assert map_allergens([], "ro") == []
        assert map_allergens(["", None], "ro") == []

    def test_unknown_ingredient_maps_to_nothing(self):
        assert map_allergens(["Roșii"], "ro") == []

    def test_plain_egg_maps_to_a3(self):
        assert map_allergens(["Egg"], "en") == ["A3"]
        assert map_allergens(["Fried eggs"], "en") == ["A3"]
        assert map_allergens(["Ou"], "ro") == ["A3"]
        assert map_allergens(["Ouă fierte"], "ro") == ["A3"]

    def test_similar_words_do_not_match(self):
        assert map_allergens(["Eggplant"], "en") == []
        assert map_allergens(["Vinete"], "ro") == []
        assert map_allergens(["Eggplant", "Nougat"], "en") == []
        assert map_allergens(["Ardei umplut", "Cartofi noi"], "ro") == []

    def test_table_covers_fourteen_codes(self):
        assert [allergen.code for allergen in ALLERGENS] == [f"A{i}" for i in range(1, 15)]

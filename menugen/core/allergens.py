"""
Allergen mapping from ingredient names to ANPC allergen codes.

Pure keyword containment against a small static table; an ingredient
that names none of the keywords maps to nothing.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple


@dataclass(frozen=True)
class AllergenDefinition:
    """One regulated allergen with its names and keywords per language."""
    code: str
    localized_names: Dict[str, str]
    localized_keywords: Dict[str, Tuple[str, ...]]
    # Short words that only count as a whole word ("egg" but not "eggplant")
    localized_whole_words: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def terms(self, language: str) -> Tuple[str, ...]:
        """Lowercased name and keywords for a language."""
        name = self.localized_names.get(language, "")
        keywords = self.localized_keywords.get(language, ())
        return tuple(term.lower() for term in (name, *keywords) if term)

    def matches(self, ingredient: str, language: str) -> bool:
        """Whether a lowercased ingredient name names this allergen."""
        if any(term in ingredient for term in self.terms(language)):
            return True
        return any(
            re.search(rf"(?<!\w){re.escape(word.lower())}(?!\w)", ingredient)
            for word in self.localized_whole_words.get(language, ())
        )


ALLERGENS: Tuple[AllergenDefinition, ...] = (
    AllergenDefinition(
        code="A1",
        localized_names={"ro": "Cereale care conțin gluten", "en": "Cereals containing gluten"},
        localized_keywords={
            "ro": ("grâu", "secară", "orz", "ovăz", "spelta", "făină", "pâine", "chiflă", "paste", "gluten", "pesmet", "aluat", "lipie"),
            "en": ("wheat", "rye", "barley", "oats", "spelt", "flour", "bread", "bun", "pasta", "gluten", "breadcrumbs", "dough", "tortilla"),
        },
    ),
    AllergenDefinition(
        code="A2",
        localized_names={"ro": "Crustacee", "en": "Crustaceans"},
        localized_keywords={
            "ro": ("raci", "creveți", "crabi", "homar"),
            "en": ("prawn", "shrimp", "crab", "lobster", "crayfish"),
        },
    ),
    AllergenDefinition(
        code="A3",
        localized_names={"ro": "Ouă", "en": "Eggs"},
        localized_keywords={
            "ro": ("ou de", "gălbenuș", "albuș", "maioneză"),
            "en": ("egg yolk", "egg white", "mayonnaise", "mayo"),
        },
        localized_whole_words={"ro": ("ou", "oua"), "en": ("egg", "eggs")},
    ),
    AllergenDefinition(
        code="A4",
        localized_names={"ro": "Pește", "en": "Fish"},
        localized_keywords={
            "ro": ("peste", "somon", "file de ton", "crap", "păstrăv", "hamsii", "cod"),
            "en": ("salmon", "tuna", "cod", "trout", "anchov", "carp"),
        },
    ),
    AllergenDefinition(
        code="A5",
        localized_names={"ro": "Arahide", "en": "Peanuts"},
        localized_keywords={"ro": ("alune de pământ",), "en": ("peanut",)},
    ),
    AllergenDefinition(
        code="A6",
        localized_names={"ro": "Soia", "en": "Soya"},
        localized_keywords={"ro": ("tofu",), "en": ("soy", "tofu", "edamame")},
    ),
    AllergenDefinition(
        code="A7",
        localized_names={"ro": "Lapte", "en": "Milk"},
        localized_keywords={
            "ro": ("brânză", "branză", "cașcaval", "telemea", "smântână", "unt", "frișcă", "iaurt", "mozzarella", "parmezan", "cheddar"),
            "en": ("cheese", "butter", "cream", "yogurt", "yoghurt", "mozzarella", "parmesan", "cheddar", "dairy", "lactose"),
        },
    ),
    AllergenDefinition(
        code="A8",
        localized_names={"ro": "Fructe cu coajă", "en": "Nuts"},
        localized_keywords={
            "ro": ("migdale", "alune", "nuci", "nucă", "castane", "caju", "fistic"),
            "en": ("almond", "hazelnut", "walnut", "cashew", "pecan", "pistachio", "macadamia"),
        },
    ),
    AllergenDefinition(
        code="A9",
        localized_names={"ro": "Țelină", "en": "Celery"},
        localized_keywords={"ro": ("telina",), "en": ("celeriac",)},
    ),
    AllergenDefinition(
        code="A10",
        localized_names={"ro": "Muștar", "en": "Mustard"},
        localized_keywords={"ro": ("mustar",), "en": ()},
    ),
    AllergenDefinition(
        code="A11",
        localized_names={"ro": "Susan", "en": "Sesame"},
        localized_keywords={"ro": ("tahini",), "en": ("tahini",)},
    ),
    AllergenDefinition(
        code="A12",
        localized_names={"ro": "Dioxid de sulf", "en": "Sulphur dioxide"},
        localized_keywords={"ro": ("sulfiți", "vin alb", "vin roșu"), "en": ("sulphite", "sulfite", "wine")},
    ),
    AllergenDefinition(
        code="A13",
        localized_names={"ro": "Lupin", "en": "Lupin"},
        localized_keywords={"ro": (), "en": ()},
    ),
    AllergenDefinition(
        code="A14",
        localized_names={"ro": "Moluște", "en": "Molluscs"},
        localized_keywords={
            "ro": ("scoici", "midii", "melci", "sepie", "calamar", "caracatiță"),
            "en": ("mussel", "clam", "oyster", "snail", "squid", "calamari", "octopus"),
        },
    ),
)


def map_allergens(
    ingredient_names: Iterable[str],
    language: str,
    table: Tuple[AllergenDefinition, ...] = ALLERGENS,
) -> List[str]:
    """Map allergen-bearing ingredient names to allergen codes.

    Args:
        ingredient_names: Ingredients flagged as allergen candidates
        language: Language the names are written in
        table: Allergen definitions to match against

    Returns:
        Deduplicated allergen codes in table order
    """
    lowered = [name.lower() for name in ingredient_names if name]
    if not lowered:
        return []

    codes = []
    for allergen in table:
        if any(allergen.matches(ingredient, language) for ingredient in lowered):
            codes.append(allergen.code)
    return codes

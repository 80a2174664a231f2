"""
Exclusion filter for items that need no generated content.

Packaged and bottled beverages are sold as-is, so generating a recipe or
a nutrition estimate for them is wasted spend.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Tuple

EXCLUSION_PATTERNS: Dict[str, Tuple[Pattern, ...]] = {
    "brand": (
        re.compile(r"\b(pepsi|coca|cola|coke|fanta|sprite|7up|mirinda|schweppes)\b"),
        re.compile(r"\b(heineken|corona|stella|budweiser|becks|carlsberg|ursus|timisoreana)\b"),
        re.compile(r"\b(evian|perrier|san pellegrino|aqua carpatica|borsec|dorna)\b"),
        re.compile(r"\b(tropicana|innocent|red bull|monster)\b"),
    ),
    "beverage": (
        re.compile(r"\b(beer|bere|water|apa|apă|wine|vin|prosecco|champagne|sauvignon|chardonnay)\b"),
        re.compile(r"\b(juice|suc|energy drink)\b"),
    ),
    "packaging": (
        re.compile(r"\b\d+([.,]\d+)?\s?(ml|cl|l)\b"),
        re.compile(r"\b(bottle|can|sticla|sticlă|doza|doză)\b"),
    ),
}


@dataclass(frozen=True)
class ExclusionMatch:
    """Which pattern group excluded a name and the matched text."""
    category: str
    matched: str


def match_exclusion(name: str) -> Optional[ExclusionMatch]:
    """Find the first exclusion pattern matching an item name.

    Args:
        name: Item name as entered by the tenant

    Returns:
        ExclusionMatch for the first matching pattern, or None
    """
    text = name.lower()
    for category, patterns in EXCLUSION_PATTERNS.items():
        for pattern in patterns:
            found = pattern.search(text)
            if found:
                return ExclusionMatch(category=category, matched=found.group(0))
    return None


def is_excluded(name: str) -> bool:
    """Check whether an item name should skip generation."""
    return match_exclusion(name) is not None

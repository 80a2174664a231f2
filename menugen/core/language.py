"""
Language detection for item names.

Scores each supported language independently against a fixed profile of
cues and picks the higher score. A manual override bypasses detection.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

logger = logging.getLogger(__name__)

SHORT_TEXT_CONFIDENCE = 0.1
AMBIGUOUS_CONFIDENCE = 0.2
MIN_DECISIVE_SCORE = 0.1

_ROMANIAN_DIACRITICS = re.compile(r"[ăâîșțşţĂÂÎȘȚŞŢ]")


@dataclass(frozen=True)
class LanguageProfile:
    """Cue vocabulary for one language.

    Each cue category adds a capped increment to the language score.
    """
    code: str
    food_words: Tuple[str, ...]
    cooking_methods: Tuple[str, ...]
    descriptors: Tuple[str, ...]
    function_words: Tuple[str, ...]
    diacritics: Optional[Pattern] = None
    letter_patterns: Optional[Pattern] = None
    word_endings: Optional[Pattern] = None
    # Penalty applied when another language's diacritics are present
    foreign_diacritics: Optional[Pattern] = None


@dataclass(frozen=True)
class LanguageDetection:
    """Detected language with a confidence in [0, 1] and the cues found."""
    language: str
    confidence: float
    reasons: List[str] = field(default_factory=list)


ROMANIAN = LanguageProfile(
    code="ro",
    food_words=(
        "ciorbă", "supă", "mici", "papanași", "mămăligă", "sarmale", "cozonac",
        "plăcintă", "gogoșari", "ardei", "roșii", "castraveți", "ceapă",
        "usturoi", "brânză", "telemea", "cașcaval", "smântână", "lapte",
        "ouă", "pui", "porc", "vită", "miel", "peste", "somon", "crap",
        "pâine", "chiflă", "lipie", "covrigi", "prăjituri", "tort",
        "înghețată", "cafea", "ceai", "suc", "bere", "vin", "țuică", "pălincă",
    ),
    cooking_methods=(
        "la grătar", "la cuptor", "prăjit", "fiert", "copt", "afumat",
        "marinat", "condimentat", "umplut", "învelit",
    ),
    descriptors=(
        "proaspăt", "cald", "rece", "picant", "dulce", "sărat", "acru",
        "tradițional", "casnic", "de casă", "artizanal",
    ),
    function_words=(
        "cu", "și", "de", "la", "în", "pe", "din", "pentru", "sau",
        "fără", "plus", "minus", "extra",
    ),
    diacritics=_ROMANIAN_DIACRITICS,
    letter_patterns=re.compile(r"\b(ți|și|ău|ea|ia|ie|ii|uri|oare|este|sunt)\b", re.IGNORECASE),
)

ENGLISH = LanguageProfile(
    code="en",
    food_words=(
        "burger", "pizza", "pasta", "salad", "soup", "sandwich", "steak",
        "chicken", "beef", "pork", "fish", "salmon", "tuna", "shrimp",
        "cheese", "bread", "rice", "noodles", "fries", "chips",
        "cake", "pie", "ice cream", "chocolate", "vanilla",
        "coffee", "tea", "juice", "water", "beer", "wine", "cocktail",
    ),
    cooking_methods=(
        "grilled", "fried", "baked", "roasted", "steamed", "boiled",
        "sautéed", "braised", "smoked", "marinated", "seasoned",
    ),
    descriptors=(
        "fresh", "hot", "cold", "spicy", "sweet", "salty", "sour",
        "crispy", "tender", "juicy", "homemade", "organic", "premium",
    ),
    function_words=(
        "with", "and", "or", "the", "a", "an", "in", "on", "at",
        "from", "to", "for", "without", "plus", "extra",
    ),
    word_endings=re.compile(r"\b\w+(ing|ed|tion|ly|ness|ment|able|ible)\b", re.IGNORECASE),
    foreign_diacritics=_ROMANIAN_DIACRITICS,
)

PROFILES: Dict[str, LanguageProfile] = {p.code: p for p in (ROMANIAN, ENGLISH)}


def score_language(text: str, profile: LanguageProfile) -> Tuple[float, List[str]]:
    """Score how strongly `text` looks like the profile's language.

    Returns:
        Tuple of (score in [0, 1], human-readable reasons)
    """
    reasons: List[str] = []
    score = 0.0
    lower = text.lower()

    if profile.diacritics is not None and profile.diacritics.search(text):
        score += 0.4
        reasons.append(f"Contains {profile.code} diacritics")

    if profile.letter_patterns is not None and profile.letter_patterns.search(text):
        score += 0.2
        reasons.append(f"Contains {profile.code} letter patterns")

    if profile.word_endings is not None and profile.word_endings.search(text):
        score += 0.2
        reasons.append(f"Contains {profile.code} word endings")

    food = [word for word in profile.food_words if word in lower]
    if food:
        score += min(len(food) * 0.15, 0.3)
        reasons.append(f"Contains {profile.code} food words: {', '.join(food[:3])}")

    methods = [method for method in profile.cooking_methods if method in lower]
    if methods:
        score += 0.2
        reasons.append(f"Contains {profile.code} cooking methods: {methods[0]}")

    descriptors = [desc for desc in profile.descriptors if desc in lower]
    if descriptors:
        score += 0.1
        reasons.append(f"Contains {profile.code} descriptors: {descriptors[0]}")

    function_words = [
        word for word in profile.function_words
        if re.search(rf"\b{re.escape(word)}\b", lower)
    ]
    if function_words:
        score += min(len(function_words) * 0.05, 0.1)
        reasons.append(f"Contains {profile.code} function words: {', '.join(function_words[:2])}")

    if profile.foreign_diacritics is not None and profile.foreign_diacritics.search(text):
        score = max(0.0, score - 0.5)

    return min(score, 1.0), reasons


class LanguageDetector:
    """Detects the language of item names among the supported languages."""

    def __init__(self, default_language: str = "ro", supported: Sequence[str] = ("ro", "en")):
        if default_language not in supported:
            raise ValueError(f"default language '{default_language}' must be one of {list(supported)}")
        unknown = [code for code in supported if code not in PROFILES]
        if unknown:
            raise ValueError(f"no language profile for {unknown}; available: {sorted(PROFILES)}")
        self.default_language = default_language
        self.profiles = [PROFILES[code] for code in supported]

    def detect(self, name: str) -> LanguageDetection:
        """Detect the language of a single item name.

        Args:
            name: Item name text

        Returns:
            LanguageDetection with the winning language, or the default
            language with low confidence when the signal is ambiguous
        """
        if not name or len(name.strip()) < 2:
            return LanguageDetection(
                language=self.default_language,
                confidence=SHORT_TEXT_CONFIDENCE,
                reasons=[f"Text too short, defaulting to {self.default_language}"],
            )

        scored = [(profile.code, *score_language(name, profile)) for profile in self.profiles]
        scored.sort(key=lambda entry: entry[1], reverse=True)

        best_code, best_score, best_reasons = scored[0]
        runner_up = scored[1][1] if len(scored) > 1 else 0.0

        if best_score > runner_up and best_score >= MIN_DECISIVE_SCORE:
            return LanguageDetection(language=best_code, confidence=best_score, reasons=best_reasons)

        reasons = [f"Ambiguous language detection, defaulting to {self.default_language}"]
        for _, _, profile_reasons in scored:
            reasons.extend(profile_reasons)
        logger.debug("Ambiguous language for %r, using default %s", name, self.default_language)
        return LanguageDetection(
            language=self.default_language,
            confidence=AMBIGUOUS_CONFIDENCE,
            reasons=reasons,
        )

    def effective_language(self, name: str, override: Optional[str] = None) -> str:
        """Get the language to generate in; a manual override always wins."""
        if override:
            return override
        return self.detect(name).language

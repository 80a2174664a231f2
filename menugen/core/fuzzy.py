"""
String-similarity matching for ingredient names.

Fallback tier of the ingredient normalizer, used when the semantic tier
has no vocabulary to work with or the provider is unavailable.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from rapidfuzz.distance import Levenshtein

HIGH_CONFIDENCE_SIMILARITY = 0.9
DEFAULT_THRESHOLD = 0.7


@dataclass(frozen=True)
class FuzzyMatch:
    """Closest vocabulary entry for a candidate phrase."""
    candidate: str
    match: Optional[str]
    similarity: float
    confidence: str

    @property
    def accepted(self) -> bool:
        return self.match is not None and self.confidence != "low"


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def similarity(a: str, b: str) -> float:
    """Normalized edit-distance similarity in [0, 1] (1.0 is identical)."""
    return Levenshtein.normalized_similarity(_normalize(a), _normalize(b))


def confidence_tier(score: float, threshold: float = DEFAULT_THRESHOLD) -> str:
    """Bucket a similarity score into high/medium/low."""
    if score >= HIGH_CONFIDENCE_SIMILARITY:
        return "high"
    if score >= threshold:
        return "medium"
    return "low"


def best_match(
    candidate: str,
    vocabulary: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> FuzzyMatch:
    """Find the closest vocabulary entry to `candidate`.

    Ties keep the first entry in vocabulary order, so the result is
    deterministic for an unchanged vocabulary.

    Args:
        candidate: Ingredient phrase to normalize
        vocabulary: Known ingredient names
        threshold: Minimum similarity for a match to be accepted

    Returns:
        FuzzyMatch; `match` is None when nothing reaches the threshold
    """
    best_name: Optional[str] = None
    best_score = 0.0
    for name in vocabulary:
        score = similarity(candidate, name)
        if score > best_score:
            best_name, best_score = name, score

    if best_name is None or best_score < threshold:
        return FuzzyMatch(candidate=candidate, match=None, similarity=best_score, confidence="low")
    return FuzzyMatch(
        candidate=candidate,
        match=best_name,
        similarity=best_score,
        confidence=confidence_tier(best_score, threshold),
    )

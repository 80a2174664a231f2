"""
Domain models for the generation pipeline.

Defines item inputs, generated content, per-item outcomes and batch results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class GenerationMode(Enum):
    """What the provider is asked to produce."""
    FULL = "full"
    DESCRIPTION_ONLY = "description_only"


class ItemState(Enum):
    """States visited by the single-item generator."""
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    COST_CHECK = "cost_check"
    DENIED = "denied"
    ALLOWED = "allowed"
    FILTERED = "filtered"
    GENERATING = "generating"
    NORMALIZING = "normalizing"
    NUTRITION_ENHANCING = "nutrition_enhancing"
    ALLERGEN_MAPPING = "allergen_mapping"
    CACHING = "caching"
    DONE = "done"


class ItemStatus(Enum):
    """Final classification of an item in a batch."""
    CACHED = "cached"
    GENERATED = "generated"
    EXCLUDED = "excluded"
    FAILED = "failed"


@dataclass(frozen=True)
class RecipeLine:
    """One ingredient of a recipe with its free-text quantity."""
    ingredient_name: str
    quantity: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"ingredient": self.ingredient_name, "quantity": self.quantity}


@dataclass(frozen=True)
class Nutrition:
    """Per-portion nutrition estimate (calories in kcal, macros in grams)."""
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
        }


@dataclass(frozen=True)
class GenerationInput:
    """Caller-supplied item to generate content for."""
    item_id: str
    name: str
    tenant_id: str
    language_override: Optional[str] = None


@dataclass(frozen=True)
class GenerationResult:
    """Generated content for one item, as written to the cache."""
    item_id: str
    language: str
    description: str
    recipe: Tuple[RecipeLine, ...] = ()
    nutrition: Nutrition = field(default_factory=Nutrition)
    allergen_codes: Tuple[str, ...] = ()
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def empty(cls, item_id: str, language: str) -> "GenerationResult":
        """Canonical empty result: no description, no recipe, zero nutrition."""
        return cls(item_id=item_id, language=language, description="")

    @property
    def is_empty(self) -> bool:
        return not self.description and not self.recipe and not self.allergen_codes


@dataclass(frozen=True)
class UsageStats:
    """Tokens, cost and latency accumulated over one or more provider calls."""
    tokens_used: int = 0
    cost_estimate: float = 0.0
    processing_time_ms: int = 0

    def __add__(self, other: "UsageStats") -> "UsageStats":
        return UsageStats(
            tokens_used=self.tokens_used + other.tokens_used,
            cost_estimate=self.cost_estimate + other.cost_estimate,
            processing_time_ms=self.processing_time_ms + other.processing_time_ms,
        )


@dataclass
class ItemOutcome:
    """Output record for one input item, whatever happened to it."""
    item_id: str
    result: GenerationResult
    status: ItemStatus
    states: List[ItemState] = field(default_factory=list)
    error: Optional[str] = None
    usage: UsageStats = field(default_factory=UsageStats)
    processing_time_ms: int = 0
    attempts: int = 0

    @property
    def cached(self) -> bool:
        return self.status == ItemStatus.CACHED

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.item_id,
            "language": self.result.language,
            "description": self.result.description,
            "recipe": [line.to_dict() for line in self.result.recipe],
            "nutrition": self.result.nutrition.to_dict(),
            "allergens": list(self.result.allergen_codes),
            "status": self.status.value,
            "cached": self.cached,
            "processing_time_ms": self.processing_time_ms,
            "cost_estimate": self.usage.cost_estimate,
            "tokens_used": self.usage.tokens_used,
            "attempts": self.attempts,
            "states": [state.value for state in self.states],
        }
        if self.error is not None:
            record["error"] = self.error
        return record


@dataclass
class BatchSummary:
    """Aggregated counters for one batch."""
    total: int
    cached_count: int = 0
    generated_count: int = 0
    excluded_count: int = 0
    failed_count: int = 0
    total_cost: float = 0.0
    total_tokens: int = 0
    total_processing_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "cached": self.cached_count,
            "generated": self.generated_count,
            "excluded": self.excluded_count,
            "failed": self.failed_count,
            "total_cost": round(self.total_cost, 6),
            "total_tokens": self.total_tokens,
            "total_processing_time_ms": self.total_processing_time_ms,
        }


@dataclass
class BatchResult:
    """One outcome per input item, in input order, plus the summary."""
    results: List[ItemOutcome]
    summary: BatchSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [outcome.to_dict() for outcome in self.results],
            "summary": self.summary.to_dict(),
        }

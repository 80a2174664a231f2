"""
Data models for storage layer.

Defines persisted records: cached item content, the ingredient nutrition
corpus and the usage ledger.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from menugen.core.models import GenerationInput, GenerationResult


@dataclass(frozen=True)
class CachedRecord:
    """Generated content plus the guard fields it was produced from.

    A cached record only counts as a hit while its guard fields equal the
    current input's; a renamed item or a changed override is a miss.
    """
    tenant_id: str
    result: GenerationResult
    guard_name: str
    guard_language_override: Optional[str] = None
    excluded: bool = False

    def matches(self, item: GenerationInput) -> bool:
        """Check the guard fields against the current input."""
        return (
            self.guard_name == item.name
            and self.guard_language_override == item.language_override
        )

    @property
    def has_content(self) -> bool:
        """Non-empty description, or an intentionally empty excluded record."""
        return bool(self.result.description) or self.excluded


@dataclass(frozen=True)
class IngredientRecord:
    """Per-100g nutrition for one ingredient name in one language."""
    name: str
    language: str
    calories_per_100g: float = 0.0
    protein_per_100g: float = 0.0
    carbs_per_100g: float = 0.0
    fat_per_100g: float = 0.0


@dataclass(frozen=True)
class UsageLogEntry:
    """Immutable record of one provider call for cost tracking.

    Append-only events that create an auditable ledger of generation
    spend. Once written, these records must never be modified.
    """
    tenant_id: str
    request_type: str
    tokens_used: int = 0
    cost_estimate: float = 0.0
    processing_time_ms: int = 0
    error: Optional[str] = None
    model: str = ""
    item_id: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

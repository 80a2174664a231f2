"""
Pricing calculations and rate management.

Handles cost computations for the supported generation models.
"""

from dataclasses import dataclass
from decimal import ROUND_UP, Decimal
from typing import Dict


@dataclass(frozen=True)
class TokenUsage:
    """Token usage counters reported by the provider."""
    prompt_tokens: int
    completion_tokens: int

    @property
    def total_tokens(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    prompt_cost_per_1k: Decimal  # USD per 1K prompt tokens
    completion_cost_per_1k: Decimal  # USD per 1K completion tokens


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported models."""
    prices: Dict[str, ModelPricing]

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a specific model.

        Args:
            model: Model identifier

        Returns:
            ModelPricing for the model

        Raises:
            ValueError: If model is not supported
        """
        if model not in self.prices:
            raise ValueError(f"Unsupported model: {model}")
        return self.prices[model]


# Fixed pricing table - no dynamic fetching
PRICING_TABLE = PricingTable({
    "gpt-4o-mini": ModelPricing(
        prompt_cost_per_1k=Decimal("0.00015"),
        completion_cost_per_1k=Decimal("0.0006")
    ),
    "gpt-4o": ModelPricing(
        prompt_cost_per_1k=Decimal("0.0025"),
        completion_cost_per_1k=Decimal("0.01")
    ),
    "gpt-4.1-mini": ModelPricing(
        prompt_cost_per_1k=Decimal("0.0004"),
        completion_cost_per_1k=Decimal("0.0016")
    ),
})

_COST_QUANTUM = Decimal("0.000001")


def calculate_cost(model: str, usage: TokenUsage) -> float:
    """Calculate total cost for model usage with conservative rounding.

    Per-call costs for small models are fractions of a cent, so the
    result keeps six decimal places and always rounds up.

    Args:
        model: Model identifier
        usage: Token usage data

    Returns:
        Total cost in USD rounded UP to 6 decimal places

    Raises:
        ValueError: If model is not supported
    """
    pricing = PRICING_TABLE.get_pricing(model)

    prompt_cost = (Decimal(usage.prompt_tokens) / Decimal("1000")) * pricing.prompt_cost_per_1k
    completion_cost = (Decimal(usage.completion_tokens) / Decimal("1000")) * pricing.completion_cost_per_1k

    total_cost = prompt_cost + completion_cost
    return float(total_cost.quantize(_COST_QUANTUM, rounding=ROUND_UP))

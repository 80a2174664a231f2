"""
Unit tests for pricing calculations.
"""

from decimal import Decimal

import pytest

from menugen.core.pricing import PRICING_TABLE, TokenUsage, calculate_cost


class TestPricingTable:
    """Test pricing table lookups."""

    def test_supported_model(self):
        pricing = PRICING_TABLE.get_pricing("gpt-4o-mini")

        assert pricing.prompt_cost_per_1k == Decimal("0.00015")
        assert pricing.completion_cost_per_1k == Decimal("0.0006")

    def test_unsupported_model(self):
        with pytest.raises(ValueError, match="Unsupported model: unknown-model"):
            PRICING_TABLE.get_pricing("unknown-model")


class TestCostCalculation:
    """Test cost calculation and rounding."""

    def test_token_usage_total(self):
        assert TokenUsage(prompt_tokens=100, completion_tokens=50).total_tokens == 150

    def test_basic_cost(self):
        cost = calculate_cost("gpt-4o-mini", TokenUsage(prompt_tokens=1000, completion_tokens=1000))
        assert cost == pytest.approx(0.00075)

    def test_cost_rounds_up(self):
        # 1 prompt token costs 0.00000015, which rounds up to the next micro-dollar
        cost = calculate_cost("gpt-4o-mini", TokenUsage(prompt_tokens=1, completion_tokens=0))
        assert cost == pytest.approx(0.000001)

    def test_zero_tokens_cost_nothing(self):
        assert calculate_cost("gpt-4o", TokenUsage(prompt_tokens=0, completion_tokens=0)) == 0.0

    def test_unsupported_model_raises(self):
        with pytest.raises(ValueError, match="Unsupported model"):
            calculate_cost("unknown-model", TokenUsage(prompt_tokens=1, completion_tokens=1))

"""
Unit tests for the single-item generation state machine.
"""

import pytest

from conftest import DEFAULT_PRODUCT_REPLY, NUTRITION, PRODUCT, FakeProvider, fast_config
from menugen.config.loader import BudgetConfig
from menugen.core.errors import ProviderError
from menugen.core.models import GenerationInput, GenerationMode, ItemState, ItemStatus, RecipeLine
from menugen.pipeline import build_pipeline
from menugen.sdk.openai_client import DESCRIPTION_ONLY_SYSTEM_PROMPT
from menugen.storage.models import UsageLogEntry


class TestSingleItemGenerator:
    """Test every path through the per-item state machine."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_path):
        self.provider = FakeProvider()
        self.pipeline = build_pipeline(self.provider, fast_config(), db_path)
        self.generator = self.pipeline.generator

    @pytest.mark.asyncio
    async def test_generates_and_caches_new_item(self):
        item = GenerationInput("item-1", "Burger de pui", "bistro")

        outcome = await self.generator.generate(item)

        assert outcome.status == ItemStatus.GENERATED
        assert outcome.error is None
        assert outcome.attempts == 1
        assert outcome.result.description == DEFAULT_PRODUCT_REPLY["description"]
        assert outcome.result.language == "ro"
        assert outcome.result.recipe == (RecipeLine("Piept de pui", "150g"), RecipeLine("Chiflă", "1 buc"))
        assert outcome.result.allergen_codes == ("A1",)
        assert outcome.states == [
            ItemState.CACHE_MISS, ItemState.COST_CHECK, ItemState.ALLOWED, ItemState.GENERATING,
            ItemState.NORMALIZING, ItemState.NUTRITION_ENHANCING, ItemState.ALLERGEN_MAPPING,
            ItemState.CACHING, ItemState.DONE,
        ]
        # One product call plus one nutrition lookup per new ingredient
        assert len(self.provider.calls_for(PRODUCT)) == 1
        assert len(self.provider.calls_for(NUTRITION)) == 2
        assert outcome.usage.tokens_used == 450

        record = await self.pipeline.cache.get(item)
        assert record is not None
        assert record.result.description == outcome.result.description

    @pytest.mark.asyncio
    async def test_second_request_is_served_from_cache(self):
        item = GenerationInput("item-1", "Burger de pui", "bistro")
        first = await self.generator.generate(item)
        calls_before = len(self.provider.calls)

        second = await self.generator.generate(item)

        assert second.status == ItemStatus.CACHED
        assert second.cached
        assert second.states == [ItemState.CACHE_HIT, ItemState.DONE]
        assert second.result.description == first.result.description
        assert second.result.recipe == first.result.recipe
        assert second.usage.cost_estimate == 0.0
        assert len(self.provider.calls) == calls_before

    @pytest.mark.asyncio
    async def test_rename_invalidates_cache(self):
        await self.generator.generate(GenerationInput("item-1", "Burger de pui", "bistro"))

        outcome = await self.generator.generate(GenerationInput("item-1", "Burger de vită", "bistro"))

        assert outcome.status == ItemStatus.GENERATED
        assert len(self.provider.calls_for(PRODUCT, "Burger de vită")) == 1

    @pytest.mark.asyncio
    async def test_override_change_invalidates_cache(self):
        await self.generator.generate(GenerationInput("item-1", "Burger de pui", "bistro"))

        outcome = await self.generator.generate(GenerationInput("item-1", "Burger de pui", "bistro", "en"))

        assert outcome.status == ItemStatus.GENERATED
        assert outcome.result.language == "en"
        assert "in English" in self.provider.calls_for(PRODUCT)[-1].user

    @pytest.mark.asyncio
    async def test_excluded_item_skips_provider(self):
        item = GenerationInput("drink-1", "Coca-Cola 330ml", "bistro")

        outcome = await self.generator.generate(item)

        assert outcome.status == ItemStatus.EXCLUDED
        assert outcome.result.is_empty
        assert outcome.result.nutrition.calories == 0
        assert ItemState.FILTERED in outcome.states
        assert self.provider.calls == []

        again = await self.generator.generate(item)
        assert again.status == ItemStatus.EXCLUDED
        assert again.states[0] == ItemState.CACHE_HIT
        assert self.provider.calls == []

    @pytest.mark.asyncio
    async def test_denied_when_budget_is_spent(self):
        await self.pipeline.ledger.append(UsageLogEntry("bistro", "product_generation", 1000, 10.0))

        outcome = await self.generator.generate(GenerationInput("item-1", "Burger de pui", "bistro"))

        assert outcome.status == ItemStatus.FAILED
        assert ItemState.DENIED in outcome.states
        assert "Daily cost limit" in outcome.error
        assert self.provider.calls == []

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self):
        self.provider.queue(PRODUCT, ProviderError("Connection reset"))

        outcome = await self.generator.generate(GenerationInput("item-1", "Burger de pui", "bistro"))

        assert outcome.status == ItemStatus.GENERATED
        assert outcome.attempts == 2
        assert len(self.provider.calls_for(PRODUCT)) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        self.provider.queue(PRODUCT, *[ProviderError("Connection reset")] * 4)
        item = GenerationInput("item-1", "Burger de pui", "bistro")

        outcome = await self.generator.generate(item)

        assert outcome.status == ItemStatus.FAILED
        assert outcome.attempts == 4
        assert outcome.error == "Connection reset"
        assert outcome.result.is_empty
        assert len(self.provider.calls_for(PRODUCT)) == 4
        assert await self.pipeline.cache.get(item) is None

    @pytest.mark.asyncio
    async def test_malformed_replies_count_as_failures(self):
        self.provider.queue(PRODUCT, *["not json"] * 4)

        outcome = await self.generator.generate(GenerationInput("item-1", "Burger de pui", "bistro"))

        assert outcome.status == ItemStatus.FAILED
        assert len(self.provider.calls_for(PRODUCT)) == 4

    @pytest.mark.asyncio
    async def test_permanent_failure_is_not_retried(self):
        self.provider.queue(PRODUCT, ProviderError("Invalid API key", retryable=False))

        outcome = await self.generator.generate(GenerationInput("item-1", "Burger de pui", "bistro"))

        assert outcome.status == ItemStatus.FAILED
        assert outcome.attempts == 1
        assert len(self.provider.calls_for(PRODUCT)) == 1

    @pytest.mark.asyncio
    async def test_description_only_keeps_cached_recipe(self):
        item = GenerationInput("item-1", "Burger de pui", "bistro")
        first = await self.generator.generate(item)
        self.provider.queue(PRODUCT, dict(
            DEFAULT_PRODUCT_REPLY,
            description="Burger nou cu pui crocant",
            recipe=[{"ingredient": "Tofu", "quantity": "100g"}],
        ))

        outcome = await self.generator.generate(item, use_cache=False, mode=GenerationMode.DESCRIPTION_ONLY)

        assert outcome.status == ItemStatus.GENERATED
        assert outcome.result.description == "Burger nou cu pui crocant"
        assert outcome.result.recipe == first.result.recipe
        assert ItemState.NORMALIZING not in outcome.states
        assert self.provider.calls_for(PRODUCT)[-1].system == DESCRIPTION_ONLY_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_description_only_without_recipe_generates_in_full(self):
        outcome = await self.generator.generate(
            GenerationInput("item-1", "Burger de pui", "bistro"), mode=GenerationMode.DESCRIPTION_ONLY
        )

        assert outcome.status == ItemStatus.GENERATED
        assert ItemState.NORMALIZING in outcome.states
        assert self.provider.calls_for(PRODUCT)[0].system != DESCRIPTION_ONLY_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_tenant_ceiling_override_applies(self, db_path):
        pipeline = build_pipeline(
            self.provider, fast_config(budget=BudgetConfig(daily_ceiling=1.0, tenants={"bistro": 50.0})), db_path
        )
        await pipeline.ledger.append(UsageLogEntry("bistro", "product_generation", 1000, 10.0))

        outcome = await pipeline.generator.generate(GenerationInput("item-1", "Burger de pui", "bistro"))

        assert outcome.status == ItemStatus.GENERATED

"""
Unit tests for two-tier ingredient normalization.
"""

import pytest

from conftest import MATCH, FakeProvider, fast_config
from menugen.config.loader import NormalizerConfig
from menugen.core.cache import CacheStore
from menugen.core.errors import ProviderError
from menugen.core.models import GenerationInput, GenerationResult, RecipeLine
from menugen.core.normalizer import IngredientNormalizer
from menugen.core.usage import UsageLogger
from menugen.sdk.openai_client import GenerationClient
from menugen.storage.repository import SQLiteItemStore, SQLiteUsageLedger

VOCABULARY = ["Chiflă", "Piept de pui", "Pulpe de pui"]


def _match_reply(original, normalized, confidence="high", score=0.92):
    return {"matches": [{
        "original": original, "normalized": normalized, "quantity": "",
        "similarity_score": score, "confidence": confidence,
    }]}


class TestIngredientNormalizer:
    """Test exact, semantic and fuzzy normalization tiers."""

    @pytest.fixture(autouse=True)
    def _setup(self, db_path):
        self.provider = FakeProvider()
        config = fast_config()
        self.client = GenerationClient(self.provider, config.provider, UsageLogger(SQLiteUsageLedger(db_path)))
        self.cache = CacheStore(SQLiteItemStore(db_path))
        self.normalizer = IngredientNormalizer(self.client, self.cache, config.normalizer, config.retry)

    @pytest.mark.asyncio
    async def test_exact_match_ignores_case(self):
        result = await self.normalizer.normalize(
            [RecipeLine("piept de pui", "150g")], "ro", "bistro", VOCABULARY
        )

        ingredient = result.ingredients[0]
        assert ingredient.normalized == "Piept de pui"
        assert ingredient.source == "exact"
        assert not ingredient.is_new
        assert result.recipe == (RecipeLine("Piept de pui", "150g"),)
        assert self.provider.calls == []

    @pytest.mark.asyncio
    async def test_semantic_match_accepted_when_in_vocabulary(self):
        self.provider.queue(MATCH, _match_reply("Pulpă de pui dezosată", "Pulpe de pui"))

        result = await self.normalizer.normalize(
            [RecipeLine("Pulpă de pui dezosată", "200g")], "ro", "bistro", VOCABULARY
        )

        ingredient = result.ingredients[0]
        assert ingredient.normalized == "Pulpe de pui"
        assert ingredient.quantity == "200g"
        assert ingredient.source == "semantic"
        assert ingredient.confidence == "high"
        assert not ingredient.is_new
        assert result.usage.tokens_used == 150

    @pytest.mark.asyncio
    async def test_semantic_match_outside_vocabulary_is_new(self):
        self.provider.queue(MATCH, _match_reply("Quinoa", "Quinoa albă"))

        result = await self.normalizer.normalize([RecipeLine("Quinoa", "80g")], "ro", "bistro", VOCABULARY)

        ingredient = result.ingredients[0]
        assert ingredient.normalized == "Quinoa"
        assert ingredient.is_new
        assert ingredient.confidence == "low"

    @pytest.mark.asyncio
    async def test_low_confidence_semantic_match_is_new(self):
        self.provider.queue(MATCH, _match_reply("Piept pui afumat", "Piept de pui", confidence="low", score=0.4))

        result = await self.normalizer.normalize(
            [RecipeLine("Piept pui afumat", "100g")], "ro", "bistro", VOCABULARY
        )

        assert result.ingredients[0].is_new
        assert result.ingredients[0].normalized == "Piept pui afumat"

    @pytest.mark.asyncio
    async def test_candidate_missing_from_reply_falls_back_to_fuzzy(self):
        result = await self.normalizer.normalize([RecipeLine("piept pui", "150g")], "ro", "bistro", VOCABULARY)

        ingredient = result.ingredients[0]
        assert ingredient.source == "fuzzy"
        assert ingredient.normalized == "Piept de pui"
        assert ingredient.confidence == "medium"
        assert len(self.provider.calls_for(MATCH)) == 1

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back_to_fuzzy(self):
        self.provider.queue(MATCH, *[ProviderError("Connection reset")] * 4)

        result = await self.normalizer.normalize([RecipeLine("piept pui", "150g")], "ro", "bistro", VOCABULARY)

        assert result.ingredients[0].source == "fuzzy"
        assert result.ingredients[0].normalized == "Piept de pui"
        assert len(self.provider.calls_for(MATCH)) == 4
        assert result.usage.tokens_used == 0

    @pytest.mark.asyncio
    async def test_empty_vocabulary_registers_new_without_calls(self):
        result = await self.normalizer.normalize([RecipeLine("Quinoa", "80g")], "ro", "bistro", [])

        ingredient = result.ingredients[0]
        assert ingredient.is_new
        assert ingredient.normalized == "Quinoa"
        assert ingredient.confidence == "low"
        assert self.provider.calls == []

    @pytest.mark.asyncio
    async def test_repeated_normalization_is_stable(self):
        self.provider.queue(MATCH, _match_reply("Pulpă de pui dezosată", "Pulpe de pui"))
        recipe = [RecipeLine("Pulpă de pui dezosată", "200g"), RecipeLine("chiflă", "1 buc")]

        first = await self.normalizer.normalize(recipe, "ro", "bistro", VOCABULARY)
        second = await self.normalizer.normalize(recipe, "ro", "bistro", VOCABULARY)

        assert first.recipe == second.recipe
        assert second.usage.tokens_used == 0
        assert len(self.provider.calls_for(MATCH)) == 1

    @pytest.mark.asyncio
    async def test_memo_stays_bounded_as_vocabulary_grows(self):
        normalizer = IngredientNormalizer(self.client, self.cache, fast_config().normalizer,
                                          fast_config().retry, memo_size=2)
        recipe = [RecipeLine("Pulpă de pui dezosată", "200g")]
        vocabularies = [VOCABULARY + [f"Ingredient {n}"] for n in range(5)]
        self.provider.queue(MATCH, *[_match_reply("Pulpă de pui dezosată", "Pulpe de pui")] * 6)

        for vocabulary in vocabularies:
            await normalizer.normalize(recipe, "ro", "bistro", vocabulary)
        assert len(normalizer._semantic_memo) == 2
        assert len(self.provider.calls_for(MATCH)) == 5

        # Most recent vocabulary still hits, the oldest was evicted
        await normalizer.normalize(recipe, "ro", "bistro", vocabularies[-1])
        assert len(self.provider.calls_for(MATCH)) == 5
        await normalizer.normalize(recipe, "ro", "bistro", vocabularies[0])
        assert len(self.provider.calls_for(MATCH)) == 6
        assert len(normalizer._semantic_memo) == 2

    @pytest.mark.asyncio
    async def test_order_is_preserved(self):
        recipe = [RecipeLine("Quinoa", "80g"), RecipeLine("CHIFLĂ", "1 buc"), RecipeLine("piept pui", "150g")]

        result = await self.normalizer.normalize(recipe, "ro", "bistro", VOCABULARY)

        assert [i.original for i in result.ingredients] == ["Quinoa", "CHIFLĂ", "piept pui"]
        assert [i.normalized for i in result.ingredients] == ["Quinoa", "Chiflă", "Piept de pui"]

    @pytest.mark.asyncio
    async def test_vocabulary_loaded_from_cache(self):
        item = GenerationInput("item-1", "Burger de pui", "bistro")
        await self.cache.put(item, GenerationResult(
            item_id="item-1", language="ro", description="Burger",
            recipe=(RecipeLine("Piept de pui", "150g"),),
        ))

        result = await self.normalizer.normalize([RecipeLine("PIEPT DE PUI", "100g")], "ro", "bistro")

        assert result.ingredients[0].normalized == "Piept de pui"
        assert result.ingredients[0].source == "exact"

    @pytest.mark.asyncio
    async def test_without_client_only_fuzzy_is_used(self):
        normalizer = IngredientNormalizer(None, self.cache)

        result = await normalizer.normalize([RecipeLine("piept pui", "150g")], "ro", "bistro", VOCABULARY)

        assert result.ingredients[0].source == "fuzzy"
        assert self.provider.calls == []

    @pytest.mark.asyncio
    async def test_disabled_normalizer_passes_names_through(self):
        normalizer = IngredientNormalizer(self.client, self.cache, NormalizerConfig(enabled=False))

        result = await normalizer.normalize([RecipeLine("piept pui", "150g")], "ro", "bistro", VOCABULARY)

        assert result.ingredients[0].normalized == "piept pui"
        assert result.ingredients[0].source == "disabled"

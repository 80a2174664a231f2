"""
Ingredient-level nutrition enhancement.

Fills gaps in the per-100g ingredient corpus for a recipe. The product
level estimate from the provider is returned unchanged; per-ingredient
values are only cached for later use.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence

from menugen.config.loader import NutritionConfig, RetryConfig
from menugen.storage.interfaces import IngredientStore

from .errors import CacheError, ParseError, ProviderError
from .models import Nutrition, RecipeLine, UsageStats
from .retry import RetryExhausted, retry_with_backoff

if TYPE_CHECKING:
    from menugen.sdk.openai_client import GenerationClient

logger = logging.getLogger(__name__)


@dataclass
class EnhancementResult:
    nutrition: Nutrition
    usage: UsageStats = field(default_factory=UsageStats)
    fetched: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class NutritionEnhancer:
    """Fetches and caches per-100g nutrition for uncached recipe ingredients."""

    def __init__(
        self,
        client: "GenerationClient",
        store: IngredientStore,
        config: Optional[NutritionConfig] = None,
        retry: Optional[RetryConfig] = None,
    ):
        self.client = client
        self.store = store
        self.config = config or NutritionConfig()
        self.retry = retry or RetryConfig()

    async def enhance(
        self,
        recipe: Sequence[RecipeLine],
        base_nutrition: Nutrition,
        language: str,
        tenant_id: str,
    ) -> EnhancementResult:
        """Cache nutrition for recipe ingredients not yet in the corpus.

        Args:
            recipe: Normalized recipe lines
            base_nutrition: Product-level estimate from the provider
            language: Language of the ingredient names
            tenant_id: Tenant charged for the lookups

        Returns:
            EnhancementResult whose nutrition is `base_nutrition` unchanged
        """
        result = EnhancementResult(nutrition=base_nutrition)
        if not self.config.enabled or not recipe:
            return result

        names = list(dict.fromkeys(line.ingredient_name for line in recipe if line.ingredient_name))
        try:
            known = await self.store.get_ingredients(names, language)
        except CacheError as e:
            logger.warning("Ingredient cache read failed, skipping nutrition enhancement: %s", e)
            return result

        missing = [name for name in names if name.casefold() not in known]
        if not missing:
            return result
        logger.debug("Fetching nutrition for %s uncached ingredients", len(missing))

        size = self.config.batch_size
        for start in range(0, len(missing), size):
            if start:
                await asyncio.sleep(self.config.batch_delay_seconds)
            chunk = missing[start:start + size]
            outcomes = await asyncio.gather(
                *(self._fetch(name, language, tenant_id) for name in chunk)
            )
            for name, usage in zip(chunk, outcomes):
                if usage is None:
                    result.failed.append(name)
                else:
                    result.fetched.append(name)
                    result.usage = result.usage + usage

        return result

    async def _fetch(self, name: str, language: str, tenant_id: str) -> Optional[UsageStats]:
        """Fetch and store one ingredient; None if it could not be fetched."""
        try:
            outcome = await retry_with_backoff(
                lambda: self.client.ingredient_nutrition(name, language, tenant_id),
                self.retry,
                label=f"nutrition for {name!r}",
            )
        except (RetryExhausted, ProviderError, ParseError) as e:
            logger.warning("Skipping nutrition for ingredient %r: %s", name, e)
            return None

        record, usage = outcome.value
        try:
            await self.store.upsert_ingredient(record)
        except CacheError as e:
            logger.warning("Could not cache nutrition for ingredient %r: %s", name, e)
        return usage

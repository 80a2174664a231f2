"""
Single-item generation state machine.

    CACHE_HIT -> DONE
    CACHE_MISS -> COST_CHECK -> DENIED -> DONE (error)
                             -> ALLOWED -> FILTERED -> DONE
                             -> ALLOWED -> GENERATING -> NORMALIZING
                                -> NUTRITION_ENHANCING -> ALLERGEN_MAPPING
                                -> CACHING -> DONE

Every path ends in an ItemOutcome; failures are captured in the outcome
and never raised to the caller.
"""

import logging
import time
from typing import TYPE_CHECKING, List, Optional, Tuple

from menugen.config.loader import RetryConfig

from .allergens import map_allergens
from .cache import CacheStore
from .cost_governor import CostGovernor
from .errors import CostLimitError, ParseError, ProviderError
from .exclusion import match_exclusion
from .language import LanguageDetector
from .models import (
    GenerationInput,
    GenerationMode,
    GenerationResult,
    ItemOutcome,
    ItemState,
    ItemStatus,
    RecipeLine,
    UsageStats,
)
from .normalizer import IngredientNormalizer
from .nutrition import NutritionEnhancer
from .retry import RetryExhausted, retry_with_backoff

if TYPE_CHECKING:
    from menugen.sdk.openai_client import GenerationClient

logger = logging.getLogger(__name__)


class SingleItemGenerator:
    """Produces one ItemOutcome per GenerationInput."""

    def __init__(
        self,
        client: "GenerationClient",
        cache: CacheStore,
        governor: CostGovernor,
        detector: LanguageDetector,
        normalizer: IngredientNormalizer,
        enhancer: NutritionEnhancer,
        retry: Optional[RetryConfig] = None,
    ):
        self.client = client
        self.cache = cache
        self.governor = governor
        self.detector = detector
        self.normalizer = normalizer
        self.enhancer = enhancer
        self.retry = retry or RetryConfig()

    async def generate(
        self,
        item: GenerationInput,
        use_cache: bool = True,
        mode: GenerationMode = GenerationMode.FULL,
    ) -> ItemOutcome:
        """Run one item through the state machine.

        Args:
            item: Item to generate content for
            use_cache: Return a valid cached result without generating
            mode: FULL, or DESCRIPTION_ONLY to keep the cached recipe

        Returns:
            ItemOutcome with status CACHED, GENERATED, EXCLUDED or FAILED
        """
        started = time.monotonic()
        states: List[ItemState] = []
        language = self.detector.effective_language(item.name, item.language_override)

        def finish(result: GenerationResult, status: ItemStatus, error: Optional[str] = None,
                   usage: UsageStats = UsageStats(), attempts: int = 0) -> ItemOutcome:
            states.append(ItemState.DONE)
            logger.debug("Item %s finished as %s via %s", item.item_id, status.value,
                         " -> ".join(state.value for state in states))
            return ItemOutcome(
                item_id=item.item_id,
                result=result,
                status=status,
                states=states,
                error=error,
                usage=usage,
                processing_time_ms=int((time.monotonic() - started) * 1000),
                attempts=attempts,
            )

        try:
            if use_cache:
                hit = await self.cache.get(item)
                if hit is not None:
                    states.append(ItemState.CACHE_HIT)
                    status = ItemStatus.EXCLUDED if hit.excluded else ItemStatus.CACHED
                    return finish(hit.result, status)
            states.append(ItemState.CACHE_MISS)

            states.append(ItemState.COST_CHECK)
            try:
                await self.governor.ensure_allowed(item.tenant_id)
            except CostLimitError as e:
                states.append(ItemState.DENIED)
                return finish(GenerationResult.empty(item.item_id, language), ItemStatus.FAILED, error=str(e))
            states.append(ItemState.ALLOWED)

            exclusion = match_exclusion(item.name)
            if exclusion is not None:
                states.append(ItemState.FILTERED)
                logger.debug("Item %s excluded (%s: %r)", item.item_id, exclusion.category, exclusion.matched)
                result = GenerationResult.empty(item.item_id, language)
                await self.cache.put(item, result, excluded=True)
                return finish(result, ItemStatus.EXCLUDED)

            mode, fixed_recipe = await self._resolve_mode(item, mode)

            states.append(ItemState.GENERATING)
            try:
                outcome = await retry_with_backoff(
                    lambda: self.client.generate(
                        item.name, language, mode, fixed_recipe,
                        tenant_id=item.tenant_id, item_id=item.item_id,
                    ),
                    self.retry,
                    label=f"generation for item {item.item_id}",
                )
            except RetryExhausted as e:
                return finish(GenerationResult.empty(item.item_id, language), ItemStatus.FAILED,
                              error=str(e.last_error), attempts=e.attempts)
            except (ProviderError, ParseError) as e:
                logger.error("Generation for item %s failed permanently: %s", item.item_id, e)
                return finish(GenerationResult.empty(item.item_id, language), ItemStatus.FAILED,
                              error=str(e), attempts=1)

            content = outcome.value
            usage = content.usage
            recipe = content.recipe

            if mode == GenerationMode.FULL:
                states.append(ItemState.NORMALIZING)
                normalized = await self.normalizer.normalize(recipe, language, item.tenant_id)
                recipe = normalized.recipe
                usage = usage + normalized.usage

            states.append(ItemState.NUTRITION_ENHANCING)
            enhanced = await self.enhancer.enhance(recipe, content.nutrition, language, item.tenant_id)
            usage = usage + enhanced.usage

            states.append(ItemState.ALLERGEN_MAPPING)
            allergens = map_allergens(content.allergen_candidates, language)

            result = GenerationResult(
                item_id=item.item_id,
                language=language,
                description=content.description,
                recipe=recipe,
                nutrition=enhanced.nutrition,
                allergen_codes=tuple(allergens),
            )

            states.append(ItemState.CACHING)
            await self.cache.put(item, result)
            return finish(result, ItemStatus.GENERATED, usage=usage, attempts=outcome.attempts)

        except Exception as e:
            logger.exception("Unexpected failure generating item %s", item.item_id)
            return finish(GenerationResult.empty(item.item_id, language), ItemStatus.FAILED, error=str(e))

    async def _resolve_mode(
        self, item: GenerationInput, mode: GenerationMode
    ) -> Tuple[GenerationMode, Tuple[RecipeLine, ...]]:
        """DESCRIPTION_ONLY needs a cached recipe; without one, generate in full."""
        if mode != GenerationMode.DESCRIPTION_ONLY:
            return mode, ()
        record = await self.cache.get_record(item)
        if record is None or not record.result.recipe:
            logger.info("No cached recipe for item %s, generating in full", item.item_id)
            return GenerationMode.FULL, ()
        return mode, record.result.recipe

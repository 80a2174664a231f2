"""
Batch orchestration.

Entry point of the pipeline: validates a batch, checks the tenant's
budget, resolves cache hits first and then runs the remaining items in
fixed-size concurrency windows with a delay between windows.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

from menugen.config.loader import MenugenConfig

from .cache import CacheStore
from .cost_governor import CostGovernor
from .generator import SingleItemGenerator
from .models import (
    BatchResult,
    BatchSummary,
    GenerationInput,
    GenerationMode,
    GenerationResult,
    ItemOutcome,
    ItemState,
    ItemStatus,
)
from .validation import BatchItem, validate_batch

logger = logging.getLogger(__name__)


def summarize(outcomes: Sequence[ItemOutcome], elapsed_ms: int) -> BatchSummary:
    """Aggregate per-item outcomes into batch counters."""
    summary = BatchSummary(total=len(outcomes), total_processing_time_ms=elapsed_ms)
    for outcome in outcomes:
        if outcome.status == ItemStatus.CACHED:
            summary.cached_count += 1
        elif outcome.status == ItemStatus.GENERATED:
            summary.generated_count += 1
        elif outcome.status == ItemStatus.EXCLUDED:
            summary.excluded_count += 1
        else:
            summary.failed_count += 1
        summary.total_cost += outcome.usage.cost_estimate
        summary.total_tokens += outcome.usage.tokens_used
    return summary


class BatchOrchestrator:
    """Runs a batch of items through the single-item generator."""

    def __init__(
        self,
        generator: SingleItemGenerator,
        cache: CacheStore,
        governor: CostGovernor,
        config: Optional[MenugenConfig] = None,
    ):
        self.generator = generator
        self.cache = cache
        self.governor = governor
        self.config = config or MenugenConfig()

    async def generate_batch(
        self,
        tenant_id: str,
        items: Sequence[BatchItem],
        force_regeneration: bool = False,
        mode: GenerationMode = GenerationMode.FULL,
    ) -> BatchResult:
        """Generate content for a batch of items.

        Args:
            tenant_id: Tenant the batch belongs to
            items: GenerationInput objects or mappings with id, name and
                an optional language_override
            force_regeneration: Ignore cached content for every item
            mode: FULL or DESCRIPTION_ONLY

        Returns:
            BatchResult with exactly one outcome per input, in input order

        Raises:
            ValidationError: If the request is malformed or too large
            CostLimitError: If the tenant's daily ceiling is reached
        """
        batch = self.config.batch
        inputs = validate_batch(tenant_id, items, batch.max_batch_size, self.config.language.supported)
        await self.governor.ensure_allowed(tenant_id)

        started = time.monotonic()
        logger.info("Starting batch of %s items for tenant %s (force=%s, mode=%s)",
                    len(inputs), tenant_id, force_regeneration, mode.value)

        if force_regeneration:
            needing = {item.item_id for item in inputs}
        else:
            needing = set(await self.cache.list_needing_generation(inputs))

        outcomes: Dict[str, ItemOutcome] = {}

        # Cached entries resolve before any provider call is issued
        for item in inputs:
            if item.item_id not in needing:
                outcomes[item.item_id] = await self._run(item, use_cache=True, mode=mode)

        pending = [item for item in inputs if item.item_id in needing]
        for start in range(0, len(pending), batch.concurrency):
            if start:
                await asyncio.sleep(batch.window_delay_seconds)
            window = pending[start:start + batch.concurrency]
            results = await asyncio.gather(
                *(self._run(item, use_cache=False, mode=mode) for item in window),
                return_exceptions=True,
            )
            for item, result in zip(window, results):
                if isinstance(result, BaseException):
                    logger.error("Item %s raised out of the generator: %s", item.item_id, result)
                    result = self._failed(item, str(result))
                outcomes[item.item_id] = result

        ordered = [outcomes[item.item_id] for item in inputs]
        summary = summarize(ordered, int((time.monotonic() - started) * 1000))
        logger.info(
            "Finished batch for tenant %s: %s cached, %s generated, %s excluded, %s failed, $%.6f",
            tenant_id, summary.cached_count, summary.generated_count,
            summary.excluded_count, summary.failed_count, summary.total_cost,
        )
        return BatchResult(results=ordered, summary=summary)

    async def _run(self, item: GenerationInput, use_cache: bool, mode: GenerationMode) -> ItemOutcome:
        return await self.generator.generate(item, use_cache=use_cache, mode=mode)

    def _failed(self, item: GenerationInput, error: str) -> ItemOutcome:
        language = item.language_override or self.config.language.default
        return ItemOutcome(
            item_id=item.item_id,
            result=GenerationResult.empty(item.item_id, language),
            status=ItemStatus.FAILED,
            states=[ItemState.DONE],
            error=error,
        )

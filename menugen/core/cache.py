"""
Cache store adapter over the persistent item store.

Read failures count as "needs generation" and write failures are logged
without failing the item, so a flaky store degrades toward fresh content
rather than toward errors.
"""

import logging
from typing import Dict, List, Optional, Sequence

from menugen.storage.interfaces import ItemStore
from menugen.storage.models import CachedRecord

from .errors import CacheError
from .models import GenerationInput, GenerationResult

logger = logging.getLogger(__name__)


class CacheStore:
    """Guarded reads and best-effort writes of generated item content."""

    def __init__(self, item_store: ItemStore):
        self.item_store = item_store

    async def get_record(self, item: GenerationInput) -> Optional[CachedRecord]:
        """Get the stored record for an item if its guard fields still match.

        Unlike `get`, the record may have an empty description.

        Returns:
            CachedRecord, or None on a miss, guard drift or read failure
        """
        try:
            record = await self.item_store.get_item(item.item_id)
        except CacheError as e:
            logger.warning("Cache read failed for item %s, treating as miss: %s", item.item_id, e)
            return None

        if record is None:
            return None
        if record.tenant_id != item.tenant_id or not record.matches(item):
            logger.debug("Guard fields changed for item %s, ignoring cached content", item.item_id)
            return None
        return record

    async def get(self, item: GenerationInput) -> Optional[CachedRecord]:
        """Get a valid cache hit for an item.

        A hit needs matching guard fields (name and language override)
        and either a non-empty description or an intentionally empty
        excluded record.

        Args:
            item: Current input for the item

        Returns:
            CachedRecord on a valid hit, otherwise None
        """
        record = await self.get_record(item)
        if record is None or not record.has_content:
            return None
        return record

    async def put(self, item: GenerationInput, result: GenerationResult, excluded: bool = False) -> bool:
        """Store generated content with the guard fields it was produced from.

        Returns:
            True if persisted; False if the write failed (already logged)
        """
        record = CachedRecord(
            tenant_id=item.tenant_id,
            result=result,
            guard_name=item.name,
            guard_language_override=item.language_override,
            excluded=excluded,
        )
        try:
            await self.item_store.upsert_item(record)
        except CacheError as e:
            logger.warning("Cache write failed for item %s, returning unsaved content: %s", item.item_id, e)
            return False
        return True

    async def list_needing_generation(self, items: Sequence[GenerationInput]) -> List[str]:
        """Get ids of items with no valid cached content.

        Args:
            items: Current inputs (ids plus guard fields)

        Returns:
            Item ids in input order; every id if the store read fails
        """
        try:
            records: Dict[str, CachedRecord] = await self.item_store.get_items(
                [item.item_id for item in items]
            )
        except CacheError as e:
            logger.warning("Cache read failed for %s items, generating all: %s", len(items), e)
            return [item.item_id for item in items]

        needing = []
        for item in items:
            record = records.get(item.item_id)
            if (
                record is None
                or record.tenant_id != item.tenant_id
                or not record.matches(item)
                or not record.has_content
            ):
                needing.append(item.item_id)
        return needing

    async def vocabulary(self, tenant_id: str) -> List[str]:
        """Distinct ingredient names across a tenant's cached recipes.

        Raises:
            CacheError: If the store read fails
        """
        return await self.item_store.list_recipe_ingredients(tenant_id)

"""
Collaborator interfaces for the persistent store.

The pipeline only talks to these protocols; the SQLite repositories are
one implementation and tests may supply their own.
"""

from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence

from .models import CachedRecord, IngredientRecord, UsageLogEntry


class ItemStore(Protocol):
    """Items table: generated content keyed by item id."""

    async def get_item(self, item_id: str) -> Optional[CachedRecord]:
        ...

    async def get_items(self, item_ids: Sequence[str]) -> Dict[str, CachedRecord]:
        ...

    async def upsert_item(self, record: CachedRecord) -> None:
        ...

    async def list_recipe_ingredients(self, tenant_id: str) -> List[str]:
        ...


class IngredientStore(Protocol):
    """Ingredient nutrition corpus keyed by (name, language)."""

    async def get_ingredients(
        self, names: Sequence[str], language: str
    ) -> Dict[str, IngredientRecord]:
        ...

    async def upsert_ingredient(self, record: IngredientRecord) -> None:
        ...


class UsageLedger(Protocol):
    """Append-only usage log queryable by tenant and date."""

    async def append(self, entry: UsageLogEntry) -> None:
        ...

    async def total_cost_since(self, tenant_id: str, since: datetime) -> float:
        ...

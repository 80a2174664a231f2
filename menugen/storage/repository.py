"""
Repository pattern for data access.

SQLite implementations of the item, ingredient and usage collaborators.
Every query runs in a worker thread so callers never block the event loop.
"""

import asyncio
import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from menugen.core.errors import CacheError
from menugen.core.models import GenerationResult, Nutrition, RecipeLine

from .db import DEFAULT_DB_PATH, get_connection
from .models import CachedRecord, IngredientRecord, UsageLogEntry

logger = logging.getLogger(__name__)


class _SQLiteRepository:
    """Shared connection handling for the SQLite repositories."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    async def _run(self, operation, *args):
        try:
            return await asyncio.to_thread(operation, *args)
        except sqlite3.Error as e:
            raise CacheError(f"{type(self).__name__} failed: {e}") from e


class SQLiteItemStore(_SQLiteRepository):
    """Generated item content keyed by item id."""

    _COLUMNS = (
        "item_id, tenant_id, guard_name, guard_language_override, language, "
        "description, recipe, nutrition, allergen_codes, is_excluded, generated_at"
    )

    async def get_item(self, item_id: str) -> Optional[CachedRecord]:
        records = await self.get_items([item_id])
        return records.get(item_id)

    async def get_items(self, item_ids: Sequence[str]) -> Dict[str, CachedRecord]:
        """Fetch cached records for the given ids; missing ids are absent."""
        if not item_ids:
            return {}
        return await self._run(self._get_items, list(item_ids))

    async def upsert_item(self, record: CachedRecord) -> None:
        """Insert or overwrite the record for its item id (last writer wins)."""
        await self._run(self._upsert_item, record)

    async def list_recipe_ingredients(self, tenant_id: str) -> List[str]:
        """Distinct ingredient names across a tenant's cached recipes, sorted."""
        return await self._run(self._list_recipe_ingredients, tenant_id)

    def _get_items(self, item_ids: List[str]) -> Dict[str, CachedRecord]:
        conn = get_connection(self.db_path)
        try:
            placeholders = ", ".join("?" for _ in item_ids)
            cursor = conn.execute(
                f"SELECT {self._COLUMNS} FROM item_content WHERE item_id IN ({placeholders})",
                item_ids,
            )
            records = {}
            for row in cursor.fetchall():
                try:
                    records[row[0]] = _row_to_cached_record(row)
                except (ValueError, TypeError, AttributeError) as e:
                    # Unreadable rows count as missing and get regenerated over
                    logger.warning("Skipping malformed cached record for item %s: %s", row[0], e)
            return records
        finally:
            conn.close()

    def _upsert_item(self, record: CachedRecord) -> None:
        result = record.result
        conn = get_connection(self.db_path)
        try:
            conn.execute(f"""
                INSERT INTO item_content ({self._COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(item_id) DO UPDATE SET
                    tenant_id = excluded.tenant_id,
                    guard_name = excluded.guard_name,
                    guard_language_override = excluded.guard_language_override,
                    language = excluded.language,
                    description = excluded.description,
                    recipe = excluded.recipe,
                    nutrition = excluded.nutrition,
                    allergen_codes = excluded.allergen_codes,
                    is_excluded = excluded.is_excluded,
                    generated_at = excluded.generated_at
            """, (
                result.item_id,
                record.tenant_id,
                record.guard_name,
                record.guard_language_override,
                result.language,
                result.description,
                json.dumps([line.to_dict() for line in result.recipe], ensure_ascii=False),
                json.dumps(result.nutrition.to_dict()),
                json.dumps(list(result.allergen_codes)),
                int(record.excluded),
                result.generated_at.isoformat(),
            ))
            conn.commit()
        finally:
            conn.close()

    def _list_recipe_ingredients(self, tenant_id: str) -> List[str]:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "SELECT item_id, recipe FROM item_content WHERE tenant_id = ?", (tenant_id,)
            )
            names = set()
            for item_id, recipe_json in cursor.fetchall():
                try:
                    lines = [(line.get("ingredient") or "").strip() for line in json.loads(recipe_json or "[]")]
                except (ValueError, TypeError, AttributeError) as e:
                    logger.warning("Skipping malformed recipe for item %s: %s", item_id, e)
                    continue
                names.update(name for name in lines if name)
            return sorted(names)
        finally:
            conn.close()


class SQLiteIngredientStore(_SQLiteRepository):
    """Ingredient nutrition corpus keyed by (name, language)."""

    async def get_ingredients(
        self, names: Sequence[str], language: str
    ) -> Dict[str, IngredientRecord]:
        """Fetch cached nutrition for the given names.

        Returns:
            Records keyed by the casefolded ingredient name
        """
        if not names:
            return {}
        return await self._run(self._get_ingredients, list(names), language)

    async def upsert_ingredient(self, record: IngredientRecord) -> None:
        await self._run(self._upsert_ingredient, record)

    def _get_ingredients(self, names: List[str], language: str) -> Dict[str, IngredientRecord]:
        conn = get_connection(self.db_path)
        try:
            placeholders = ", ".join("?" for _ in names)
            cursor = conn.execute(f"""
                SELECT name, language, calories_per_100g, protein_per_100g,
                       carbs_per_100g, fat_per_100g
                FROM ingredient_nutrition
                WHERE language = ? AND name IN ({placeholders})
            """, [language, *names])
            records = {}
            for row in cursor.fetchall():
                records[row[0].casefold()] = IngredientRecord(
                    name=row[0],
                    language=row[1],
                    calories_per_100g=row[2],
                    protein_per_100g=row[3],
                    carbs_per_100g=row[4],
                    fat_per_100g=row[5],
                )
            return records
        finally:
            conn.close()

    def _upsert_ingredient(self, record: IngredientRecord) -> None:
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO ingredient_nutrition
                (name, language, calories_per_100g, protein_per_100g,
                 carbs_per_100g, fat_per_100g, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(name, language) DO UPDATE SET
                    calories_per_100g = excluded.calories_per_100g,
                    protein_per_100g = excluded.protein_per_100g,
                    carbs_per_100g = excluded.carbs_per_100g,
                    fat_per_100g = excluded.fat_per_100g,
                    updated_at = excluded.updated_at
            """, (
                record.name,
                record.language,
                record.calories_per_100g,
                record.protein_per_100g,
                record.carbs_per_100g,
                record.fat_per_100g,
                datetime.now(timezone.utc).isoformat(),
            ))
            conn.commit()
        finally:
            conn.close()


class SQLiteUsageLedger(_SQLiteRepository):
    """Append-only usage log.

    This class only ever inserts and reads; usage rows are the audit
    trail the cost governor sums over.
    """

    async def append(self, entry: UsageLogEntry) -> None:
        """Insert a single usage entry into the append-only ledger."""
        await self._run(self._append, entry)

    async def total_cost_since(self, tenant_id: str, since: datetime) -> float:
        """Sum of cost estimates for a tenant from `since` onwards."""
        return await self._run(self._total_cost_since, tenant_id, since)

    async def get_recent_entries(
        self,
        tenant_id: Optional[str] = None,
        days: Optional[int] = None,
        limit: int = 1000
    ) -> List[UsageLogEntry]:
        """Get recent usage entries, newest first.

        Args:
            tenant_id: Optional filter for a specific tenant
            days: Optional number of days to look back
            limit: Maximum number of entries to return

        Returns:
            List of usage entries ordered by timestamp (newest first)
        """
        return await self._run(self._get_recent_entries, tenant_id, days, limit)

    async def get_usage_stats(self, tenant_id: str, since: datetime) -> Dict[str, float]:
        """Get usage statistics for a tenant since the given moment.

        Returns:
            Dictionary with total_calls, total_tokens, total_cost,
            avg_processing_time_ms and error_rate
        """
        return await self._run(self._get_usage_stats, tenant_id, since)

    def _append(self, entry: UsageLogEntry) -> None:
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO usage_log
                (timestamp, tenant_id, request_type, model, item_id, tokens_used,
                 cost_estimate, processing_time_ms, error, request_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                _as_utc(entry.timestamp).isoformat(),
                entry.tenant_id,
                entry.request_type,
                entry.model,
                entry.item_id,
                entry.tokens_used,
                entry.cost_estimate,
                entry.processing_time_ms,
                entry.error,
                entry.request_id,
            ))
            conn.commit()
        finally:
            conn.close()

    def _total_cost_since(self, tenant_id: str, since: datetime) -> float:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "SELECT SUM(cost_estimate) FROM usage_log WHERE tenant_id = ? AND timestamp >= ?",
                (tenant_id, _as_utc(since).isoformat()),
            )
            row = cursor.fetchone()
            return float(row[0] or 0)
        finally:
            conn.close()

    def _get_recent_entries(
        self, tenant_id: Optional[str], days: Optional[int], limit: int
    ) -> List[UsageLogEntry]:
        conn = get_connection(self.db_path)
        try:
            query = """
                SELECT timestamp, tenant_id, request_type, model, item_id,
                       tokens_used, cost_estimate, processing_time_ms, error, request_id
                FROM usage_log
            """
            params: list = []
            conditions = []

            if tenant_id:
                conditions.append("tenant_id = ?")
                params.append(tenant_id)
            if days is not None:
                cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
                conditions.append("timestamp >= ?")
                params.append(cutoff)

            if conditions:
                query += " WHERE " + " AND ".join(conditions)

            query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
            params.append(limit)

            cursor = conn.execute(query, params)
            entries = []
            for row in cursor.fetchall():
                entries.append(UsageLogEntry(
                    timestamp=datetime.fromisoformat(row[0]),
                    tenant_id=row[1],
                    request_type=row[2],
                    model=row[3],
                    item_id=row[4],
                    tokens_used=row[5],
                    cost_estimate=row[6],
                    processing_time_ms=row[7],
                    error=row[8],
                    request_id=row[9],
                ))
            return entries
        finally:
            conn.close()

    def _get_usage_stats(self, tenant_id: str, since: datetime) -> Dict[str, float]:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute("""
                SELECT
                    COUNT(*) as total_calls,
                    SUM(tokens_used) as total_tokens,
                    SUM(cost_estimate) as total_cost,
                    AVG(processing_time_ms) as avg_processing_time,
                    SUM(CASE WHEN error IS NOT NULL THEN 1 ELSE 0 END) as error_count
                FROM usage_log
                WHERE tenant_id = ? AND timestamp >= ?
            """, (tenant_id, _as_utc(since).isoformat()))
            row = cursor.fetchone()
            total_calls = row[0] or 0

            return {
                "total_calls": total_calls,
                "total_tokens": row[1] or 0,
                "total_cost": float(row[2] or 0),
                "avg_processing_time_ms": float(row[3] or 0),
                "error_rate": (row[4] or 0) / total_calls if total_calls else 0.0,
            }
        finally:
            conn.close()


def _as_utc(moment: datetime) -> datetime:
    """Normalize timestamps so ISO strings compare correctly in SQL."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _row_to_cached_record(row: tuple) -> CachedRecord:
    nutrition = json.loads(row[7] or "{}")
    result = GenerationResult(
        item_id=row[0],
        language=row[4],
        description=row[5] or "",
        recipe=tuple(
            RecipeLine(ingredient_name=line.get("ingredient", ""), quantity=line.get("quantity", ""))
            for line in json.loads(row[6] or "[]")
        ),
        nutrition=Nutrition(
            calories=nutrition.get("calories", 0.0),
            protein=nutrition.get("protein", 0.0),
            carbs=nutrition.get("carbs", 0.0),
            fat=nutrition.get("fat", 0.0),
        ),
        allergen_codes=tuple(json.loads(row[8] or "[]")),
        generated_at=datetime.fromisoformat(row[10]),
    )
    return CachedRecord(
        tenant_id=row[1],
        result=result,
        guard_name=row[2],
        guard_language_override=row[3],
        excluded=bool(row[9]),
    )

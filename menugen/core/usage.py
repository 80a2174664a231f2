"""
Usage logging for provider calls.

Every generation attempt, successful or not, leaves one row in the
append-only usage ledger. The cost governor sums over these rows.
"""

import logging

from menugen.storage.interfaces import UsageLedger
from menugen.storage.models import UsageLogEntry

from .errors import CacheError

logger = logging.getLogger(__name__)

PRODUCT_GENERATION = "product_generation"
INGREDIENT_MATCH = "ingredient_match"
INGREDIENT_NUTRITION = "ingredient_nutrition"


class UsageLogger:
    """Appends usage entries to the ledger without failing the caller."""

    def __init__(self, ledger: UsageLedger):
        self.ledger = ledger

    async def record(self, entry: UsageLogEntry) -> bool:
        """Append one entry to the ledger.

        A ledger write failure is logged and reported through the return
        value; the content the call produced is still valid.

        Returns:
            True if the entry was persisted
        """
        try:
            await self.ledger.append(entry)
        except CacheError as e:
            logger.warning(
                "Failed to log %s usage for tenant %s: %s",
                entry.request_type, entry.tenant_id, e,
            )
            return False
        logger.debug(
            "Logged %s usage for tenant %s: %s tokens, $%.6f",
            entry.request_type, entry.tenant_id, entry.tokens_used, entry.cost_estimate,
        )
        return True

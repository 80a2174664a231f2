"""
Per-tenant daily cost governance.

Sums today's logged spend for a tenant and admits or denies new
generation against the tenant's daily ceiling.

The check is not atomic with the spend it admits: two concurrent batches
for one tenant may both pass before either logs its cost. The ceiling is
a soft daily cap, not a hard quota.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from menugen.config.loader import BudgetConfig
from menugen.storage.interfaces import UsageLedger

from .errors import CacheError, CostLimitError

logger = logging.getLogger(__name__)


@dataclass
class BudgetState:
    """Today's spend for a tenant against its ceiling."""
    tenant_id: str
    amount_used: float
    ceiling: float

    @property
    def amount_remaining(self) -> float:
        return max(0.0, self.ceiling - self.amount_used)

    @property
    def exhausted(self) -> bool:
        return self.amount_used >= self.ceiling


def start_of_day(now: Optional[datetime] = None) -> datetime:
    """UTC midnight of the given (or current) day."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


class CostGovernor:
    """Admits or denies generation based on today's ledger sum."""

    def __init__(self, ledger: UsageLedger, budget: BudgetConfig):
        self.ledger = ledger
        self.budget = budget

    async def budget_state(self, tenant_id: str, now: Optional[datetime] = None) -> BudgetState:
        """Get today's spend for a tenant.

        Raises:
            CacheError: If the ledger query fails
        """
        spent = await self.ledger.total_cost_since(tenant_id, start_of_day(now))
        return BudgetState(
            tenant_id=tenant_id,
            amount_used=spent,
            ceiling=self.budget.ceiling_for(tenant_id),
        )

    async def check_allowed(self, tenant_id: str, now: Optional[datetime] = None) -> bool:
        """Check whether a tenant may start a new generation.

        A failing ledger query allows generation.

        Args:
            tenant_id: Tenant to check
            now: Override for the current time

        Returns:
            False if today's spend is at or above the ceiling
        """
        try:
            await self.ensure_allowed(tenant_id, now)
        except CostLimitError as e:
            logger.info("Generation denied: %s", e)
            return False
        return True

    async def ensure_allowed(self, tenant_id: str, now: Optional[datetime] = None) -> None:
        """Raise if a tenant has reached its daily ceiling.

        Raises:
            CostLimitError: If today's spend is at or above the ceiling
        """
        try:
            state = await self.budget_state(tenant_id, now)
        except CacheError as e:
            logger.warning("Cost check failed for tenant %s, allowing generation: %s", tenant_id, e)
            return

        if state.exhausted:
            raise CostLimitError(tenant_id, state.amount_used, state.ceiling)

"""Cost model service: the tenant ledger and its weighted-average cost."""
from __future__ import annotations

import logging
from decimal import Decimal

from goldops.core import cost_model
from goldops.core.clock import today
from goldops.core.errors import BusinessRuleViolation, ValidationFailed
from goldops.core.schema import LedgerEntry
from goldops.core.validation import build
from goldops.infrastructure import LedgerRepository

logger = logging.getLogger(__name__)


class CostService:
    def __init__(self, ledger: LedgerRepository) -> None:
        self._ledger = ledger

    # ------------------------------------------------------------------
    # ledger
    # ------------------------------------------------------------------
    def append(
        self,
        tenant_id: str,
        *,
        amount: Decimal,
        cost: Decimal,
        kind: str = "normal",
        date: str | None = None,
        note: str | None = None,
        transfer_id: str | None = None,
    ) -> LedgerEntry:
        entry = build(
            LedgerEntry,
            id=self._ledger.new_id(),
            tenant_id=tenant_id,
            date=date or today(),
            amount=amount,
            cost=cost,
            kind=kind,
            note=note,
            transfer_id=transfer_id,
        )
        self._ledger.add(entry)
        logger.info("ledger %s %s: amount=%s wan cost=%s", tenant_id, kind, entry.amount, entry.cost)
        return entry

    def record_purchase(
        self,
        tenant_id: str,
        amount: Decimal,
        cost: Decimal,
        *,
        date: str | None = None,
        note: str | None = None,
    ) -> LedgerEntry:
        if amount <= 0:
            raise ValidationFailed("purchase amount must be positive")
        return self.append(tenant_id, amount=amount, cost=cost, date=date, note=note)

    def delete_purchase(self, tenant_id: str, entry_id: str) -> None:
        entry = self._ledger.require(entry_id, tenant_id)
        if entry.kind != "normal":
            raise BusinessRuleViolation("transfer ledger entries cannot be deleted")
        self._ledger.remove(entry_id, tenant_id)
        logger.info("ledger %s: deleted purchase %s", tenant_id, entry_id)

    def entries(self, tenant_id: str) -> list[LedgerEntry]:
        return sorted(self._ledger.list(tenant_id), key=lambda entry: (entry.date, entry.id))

    # ------------------------------------------------------------------
    # costing
    # ------------------------------------------------------------------
    def weighted_average_cost(self, tenant_id: str) -> Decimal:
        """CNY per wan."""

        value = cost_model.weighted_average_cost(self._ledger.list(tenant_id))
        logger.debug("weighted average cost for %s: %s", tenant_id, value)
        return value

    def inventory_value(self, tenant_id: str, consumed_wan: Decimal) -> Decimal:
        return cost_model.inventory_value(self._ledger.list(tenant_id), consumed_wan)

    def summary(self, tenant_id: str) -> dict[str, Decimal]:
        entries = self._ledger.list(tenant_id)
        return {
            "total_acquired": cost_model.total_acquired(entries),
            "total_cost": cost_model.total_cost(entries),
            "avg_cost_per_wan": cost_model.weighted_average_cost(entries),
            "avg_cost_per_1000": cost_model.weighted_average_cost_per_thousand(entries),
        }

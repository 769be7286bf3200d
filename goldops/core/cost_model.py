"""Weighted-average acquisition cost over a tenant's ledger entries."""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from goldops.core.schema import LedgerEntry
from goldops.core.units import THOUSAND


def total_acquired(entries: Iterable[LedgerEntry]) -> Decimal:
    return sum((entry.amount for entry in entries), Decimal("0"))


def total_cost(entries: Iterable[LedgerEntry]) -> Decimal:
    return sum((entry.cost for entry in entries), Decimal("0"))


def weighted_average_cost(entries: Iterable[LedgerEntry]) -> Decimal:
    """Return ``Σcost / Σamount`` in CNY per wan.

    Transfer-out entries are negative on both sides, so the result is a running
    weighted average rather than a mean of positive purchases.  An empty or
    fully drained ledger has no defined cost and reports 0.
    """

    rows = list(entries)
    amount = total_acquired(rows)
    if amount <= 0:
        return Decimal("0")
    return total_cost(rows) / amount


def weighted_average_cost_per_thousand(entries: Iterable[LedgerEntry]) -> Decimal:
    """Same as :func:`weighted_average_cost` in CNY per 1000 wan."""

    return weighted_average_cost(entries) * THOUSAND


def inventory_value(entries: Iterable[LedgerEntry], consumed_wan: Decimal) -> Decimal:
    """Value remaining stock ``(acquired - consumed) * average cost``."""

    rows = list(entries)
    remaining = total_acquired(rows) - consumed_wan
    return remaining * weighted_average_cost(rows)

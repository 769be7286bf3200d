from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping

from goldops.core.cost_model import total_acquired, total_cost, weighted_average_cost_per_thousand
from goldops.core.schema import (
    DailyStats,
    GlobalStats,
    LedgerEntry,
    Order,
    SettlementReport,
    StaffStats,
    TenantSettings,
)
from goldops.core.units import per_thousand_wan

HUNDRED = Decimal("100")


@dataclass
class OrderFigures:
    revenue: Decimal
    employee_cost: Decimal
    cogs: Decimal
    profit: Decimal


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def order_revenue(order: Order) -> Decimal:
    """Revenue net of the platform fee; every report uses this formula."""

    return per_thousand_wan(order.amount) * order.unit_price * (1 - order.fee_percent / HUNDRED)


def order_employee_cost(order: Order, settings: TenantSettings) -> Decimal:
    return per_thousand_wan(order.amount) * settings.employee_cost_rate


def order_cogs(order: Order, avg_cost_per_1000: Decimal) -> Decimal:
    return per_thousand_wan(order.amount + order.loss) * avg_cost_per_1000


def order_figures(order: Order, settings: TenantSettings, avg_cost_per_1000: Decimal) -> OrderFigures:
    revenue = order_revenue(order)
    employee_cost = order_employee_cost(order, settings)
    cogs = order_cogs(order, avg_cost_per_1000)
    return OrderFigures(
        revenue=revenue,
        employee_cost=employee_cost,
        cogs=cogs,
        profit=revenue - employee_cost - cogs,
    )


def calculate_settlement(
    tenant_id: str,
    ledger: Iterable[LedgerEntry],
    orders: Iterable[Order],
    settings: TenantSettings,
) -> SettlementReport:
    entries = sorted(ledger, key=lambda entry: entry.date)
    completed = sorted((order for order in orders if order.status == "completed"), key=lambda order: order.date)

    avg_cost_per_1000 = weighted_average_cost_per_thousand(entries)

    orders_by_date: dict[str, list[Order]] = {}
    for order in completed:
        orders_by_date.setdefault(order.date, []).append(order)

    daily: list[DailyStats] = []
    consumed_so_far = Decimal("0")
    total_profit = Decimal("0")
    for date in sorted(orders_by_date):
        day_orders = orders_by_date[date]
        order_amount = Decimal("0")
        loss_amount = Decimal("0")
        revenue = Decimal("0")
        employee_cost = Decimal("0")
        cogs = Decimal("0")
        for order in day_orders:
            figures = order_figures(order, settings, avg_cost_per_1000)
            order_amount += order.amount
            loss_amount += order.loss
            revenue += figures.revenue
            employee_cost += figures.employee_cost
            cogs += figures.cogs

        profit = revenue - employee_cost - cogs
        total_profit += profit
        consumed_so_far += order_amount + loss_amount
        purchased_to_date = total_acquired(entry for entry in entries if entry.date <= date)

        daily.append(
            DailyStats(
                date=date,
                order_amount=order_amount,
                loss_amount=loss_amount,
                revenue=_quantize(revenue),
                employee_cost=_quantize(employee_cost),
                cogs=_quantize(cogs),
                profit=_quantize(profit),
                inventory_after=purchased_to_date - consumed_so_far,
                order_count=len(day_orders),
            )
        )

    total_purchased = total_acquired(entries)
    current_inventory = total_purchased - consumed_so_far
    inventory_value = per_thousand_wan(current_inventory) * avg_cost_per_1000
    current_cash = settings.initial_capital + total_profit - inventory_value

    summary = GlobalStats(
        total_purchased=total_purchased,
        total_cost=_quantize(total_cost(entries)),
        avg_cost_per_1000=_quantize(avg_cost_per_1000),
        current_inventory=current_inventory,
        inventory_value=_quantize(inventory_value),
        total_profit=_quantize(total_profit),
        current_cash=_quantize(current_cash),
        total_assets=_quantize(current_cash + inventory_value),
    )
    return SettlementReport(tenant_id=tenant_id, daily=daily, summary=summary)


def calculate_staff_stats(
    orders: Iterable[Order],
    staff_names: Mapping[str, str],
    settings: TenantSettings,
) -> list[StaffStats]:
    """Aggregate delivered amount and prorated loss per staff member.

    Orders carrying an execution history credit each staff with the amount of
    their own segments; loss is split in proportion to that share.
    """

    completed = [order for order in orders if order.status == "completed"]
    results: list[StaffStats] = []
    for staff_id, staff_name in staff_names.items():
        total_orders = 0
        total_amount = Decimal("0")
        total_loss = Decimal("0")
        for order in completed:
            if order.execution_history:
                segments = [item for item in order.execution_history if item.staff_id == staff_id]
                if not segments:
                    continue
                staff_amount = sum((item.amount for item in segments), Decimal("0"))
                total_orders += 1
                total_amount += staff_amount
                total_loss += order.loss * staff_amount / order.amount
            elif order.staff_id == staff_id:
                total_orders += 1
                total_amount += order.amount
                total_loss += order.loss

        results.append(
            StaffStats(
                staff_id=staff_id,
                staff_name=staff_name,
                total_orders=total_orders,
                total_amount=total_amount,
                total_loss=total_loss,
                total_labor_cost_earned=_quantize(per_thousand_wan(total_amount) * settings.employee_cost_rate),
            )
        )
    return results

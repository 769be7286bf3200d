"""Order lifecycle: dispatch, pause/resume, partial release, completion.

State transitions::

    pending -> paused      (pause)
    paused  -> pending     (resume, optionally to another staff member)
    pending -> completed   (complete; terminal)

Deletion is allowed from every state.  Completion and partial release work on
the windows *currently* assigned to the order's staff member, not on the
snapshot taken at dispatch.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping

from goldops.core.clock import today, utcnow_iso
from goldops.core.errors import BusinessRuleViolation, ConfirmationRequired, ValidationFailed
from goldops.core.schema import ExecutionRecord, Order, PartialResult, WindowResult, WindowSnapshot
from goldops.core.units import from_wan, to_wan
from goldops.core.validation import build, to_balance
from goldops.infrastructure import DocumentStore, OrderRepository

from .settings import TenantSettingsService
from .windows import WindowLedgerService

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(
        self,
        store: DocumentStore,
        orders: OrderRepository,
        windows: WindowLedgerService,
        settings: TenantSettingsService,
    ) -> None:
        self._store = store
        self._orders = orders
        self._windows = windows
        self._settings = settings

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _require_status(self, order: Order, *allowed: str) -> None:
        if order.status in allowed:
            return
        if order.status == "completed":
            raise BusinessRuleViolation(f"order {order.id} is completed and can no longer change")
        if order.status == "paused":
            raise BusinessRuleViolation(f"order {order.id} is paused; resume it first")
        raise BusinessRuleViolation(f"order {order.id} is {order.status}")

    def _ensure_not_busy(self, tenant_id: str, staff_id: str, *, ignore: str | None = None) -> None:
        busy = [order for order in self._orders.pending_for_staff(tenant_id, staff_id) if order.id != ignore]
        if busy:
            logger.warning("staff %s is busy with order %s", staff_id, busy[0].id)
            raise BusinessRuleViolation(
                f"staff {staff_id} already has a pending order",
                details={"order_id": busy[0].id},
            )

    @staticmethod
    def _close_segment(order: Order, amount: Decimal) -> None:
        if order.execution_history and order.execution_history[-1].end_time is None:
            segment = order.execution_history[-1]
            segment.amount = amount
            segment.end_time = utcnow_iso()

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get(self, tenant_id: str, order_id: str) -> Order:
        return self._orders.require(order_id, tenant_id)

    def list_orders(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        staff_id: str | None = None,
        date: str | None = None,
    ) -> list[Order]:
        filters: dict[str, str] = {}
        if status:
            filters["status"] = status
        if staff_id:
            filters["staff_id"] = staff_id
        if date:
            filters["date"] = date
        orders = self._orders.list(tenant_id, **filters)
        return sorted(orders, key=lambda order: (order.date, order.id), reverse=True)

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------
    def dispatch(
        self,
        tenant_id: str,
        *,
        staff_id: str,
        window_ids: list[str],
        amount: Decimal,
        date: str | None = None,
        unit_price: Decimal | None = None,
        fee_percent: Decimal | None = None,
    ) -> Order:
        staff_name = self._windows.require_staff(tenant_id, staff_id)
        window_ids = list(dict.fromkeys(window_ids))
        if not window_ids:
            raise ValidationFailed("at least one window must be selected")
        if amount <= 0:
            raise ValidationFailed("amount must be positive")

        settings = self._settings.get(tenant_id)
        with self._store.transaction():
            self._ensure_not_busy(tenant_id, staff_id)
            snapshots: list[WindowSnapshot] = []
            for window_id in window_ids:
                window = self._windows.get(tenant_id, window_id)
                if window.assigned_staff_id not in (None, staff_id):
                    raise BusinessRuleViolation(f"window {window_id} is assigned to another staff member")
                if window.assigned_staff_id is None:
                    window = self._windows.assign(tenant_id, window_id, staff_id)
                snapshots.append(
                    WindowSnapshot(
                        window_id=window.id,
                        machine_id=window.machine_id,
                        window_number=window.window_number,
                        machine_name=self._windows.machine_name(tenant_id, window.machine_id),
                        start_balance=window.gold_balance,
                    )
                )

            now = utcnow_iso()
            order = build(
                Order,
                id=self._orders.new_id(),
                tenant_id=tenant_id,
                date=date or today(),
                staff_id=staff_id,
                amount=amount,
                unit_price=settings.order_unit_price if unit_price is None else unit_price,
                fee_percent=settings.default_fee_percent if fee_percent is None else fee_percent,
                window_snapshots=snapshots,
                execution_history=[ExecutionRecord(staff_id=staff_id, staff_name=staff_name, start_time=now)],
                created_at=now,
            )
            self._orders.add(order)
        logger.info("order %s dispatched to %s (%s wan, %d windows)", order.id, staff_id, amount, len(snapshots))
        return order

    def pause(self, tenant_id: str, order_id: str, completed_amount: Decimal) -> Order:
        """Pause a pending order; ``completed_amount`` is the total fulfilled so far, in wan."""

        with self._store.transaction():
            order = self._orders.require(order_id, tenant_id)
            self._require_status(order, "pending")
            if completed_amount < order.completed_amount or completed_amount > order.amount:
                raise ValidationFailed(
                    f"completed_amount must be between {order.completed_amount} and {order.amount}"
                )
            self._close_segment(order, completed_amount - order.completed_amount)
            order.completed_amount = completed_amount
            order.status = "paused"
            self._orders.save(order)
        logger.info("order %s paused at %s/%s wan", order_id, completed_amount, order.amount)
        return order

    def resume(self, tenant_id: str, order_id: str, staff_id: str | None = None) -> Order:
        """Resume a paused order, optionally handing it to another staff member.

        Windows are not moved with the order; reassigning them is an explicit
        window-ledger operation.
        """

        with self._store.transaction():
            order = self._orders.require(order_id, tenant_id)
            self._require_status(order, "paused")
            target = staff_id or order.staff_id
            staff_name = self._windows.require_staff(tenant_id, target)
            self._ensure_not_busy(tenant_id, target, ignore=order.id)
            order.staff_id = target
            order.status = "pending"
            order.execution_history.append(
                ExecutionRecord(staff_id=target, staff_name=staff_name, start_time=utcnow_iso())
            )
            self._orders.save(order)
        logger.info("order %s resumed by %s", order_id, target)
        return order

    def release_window(
        self,
        tenant_id: str,
        order_id: str,
        window_id: str,
        end_balance: int | None = None,
    ) -> Order:
        """End one window's participation in a pending order.

        Consumption is measured against the window's balance at release time;
        an omitted ``end_balance`` means nothing was consumed.
        """

        with self._store.transaction():
            order = self._orders.require(order_id, tenant_id)
            self._require_status(order, "pending")
            window = self._windows.get(tenant_id, window_id)
            if window.assigned_staff_id != order.staff_id:
                raise BusinessRuleViolation(f"window {window_id} is not assigned to the order's staff member")

            start = window.gold_balance
            end = start if end_balance is None else to_balance(end_balance, "end_balance")
            if end > start:
                raise ValidationFailed(f"end_balance {end} exceeds the window balance {start}")

            staff_name = self._windows.require_staff(tenant_id, order.staff_id)
            order.partial_results.append(
                PartialResult(
                    window_id=window.id,
                    window_number=window.window_number,
                    machine_name=self._windows.machine_name(tenant_id, window.machine_id),
                    staff_id=order.staff_id,
                    staff_name=staff_name,
                    start_balance=start,
                    end_balance=end,
                    consumed=start - end,
                    released_at=utcnow_iso(),
                )
            )
            self._windows.assign(tenant_id, window_id, None)
            self._windows.adjust_balance(tenant_id, window_id, end)
            self._orders.save(order)
        logger.info("order %s released window %s (consumed %d)", order_id, window_id, start - end)
        return order

    def complete(
        self,
        tenant_id: str,
        order_id: str,
        end_balances: Mapping[str, int | None] | None = None,
        *,
        confirm: bool = False,
    ) -> Order:
        """Settle a pending order against the staff member's live windows.

        Windows without an end balance keep their balance and contribute no
        consumption.  Under-delivery raises :class:`ConfirmationRequired`
        unless ``confirm`` is set.
        """

        end_balances = dict(end_balances or {})
        with self._store.transaction():
            order = self._orders.require(order_id, tenant_id)
            self._require_status(order, "pending")

            live_windows = self._windows.list_windows(tenant_id, staff_id=order.staff_id)
            live_ids = {window.id for window in live_windows}
            unknown = sorted(set(end_balances) - live_ids)
            if unknown:
                raise ValidationFailed(
                    f"windows not assigned to the order's staff member: {', '.join(unknown)}"
                )

            results: list[WindowResult] = []
            for window in live_windows:
                raw = end_balances.get(window.id)
                end = window.gold_balance if raw is None else to_balance(raw, f"end_balances.{window.id}")
                if end > window.gold_balance:
                    raise ValidationFailed(f"end balance for window {window.id} exceeds its balance")
                results.append(
                    WindowResult(
                        window_id=window.id,
                        start_balance=window.gold_balance,
                        end_balance=end,
                        consumed=window.gold_balance - end,
                    )
                )

            total_consumed = sum(item.consumed for item in order.partial_results) + sum(
                item.consumed for item in results
            )
            required = from_wan(order.amount)
            if total_consumed < required and not confirm:
                logger.warning("order %s under-delivered: %d < %d", order_id, total_consumed, required)
                raise ConfirmationRequired(
                    "total consumption is below the order amount; confirm to complete anyway",
                    details={
                        "total_consumed": total_consumed,
                        "required": required,
                        "shortfall_wan": str(to_wan(required - total_consumed)),
                    },
                )

            for result in results:
                self._windows.adjust_balance(tenant_id, result.window_id, result.end_balance)

            previous = sum((item.amount for item in order.execution_history[:-1]), Decimal("0"))
            self._close_segment(order, max(order.amount - previous, Decimal("0")))
            order.window_results = results
            order.total_consumed = total_consumed
            order.loss = max(to_wan(total_consumed) - order.amount, Decimal("0"))
            order.completed_amount = order.amount
            order.completed_at = utcnow_iso()
            changes = order.model_dump()
            changes["status"] = "completed"
            if not self._orders.compare_and_set_status(tenant_id, order_id, "pending", changes):
                raise BusinessRuleViolation(f"order {order_id} changed while completing")
            order.status = "completed"
        logger.info(
            "order %s completed: consumed=%d loss=%s wan", order_id, total_consumed, order.loss
        )
        return order

    def delete(self, tenant_id: str, order_id: str) -> None:
        """Remove an order in any state; window balances are left as they are."""

        self._orders.require(order_id, tenant_id)
        self._orders.remove(order_id, tenant_id)
        logger.info("order %s deleted", order_id)

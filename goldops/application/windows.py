"""Window ledger: machines, windows, balances and staff assignment."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable

from goldops.core.clock import utcnow_iso
from goldops.core.errors import BusinessRuleViolation, NotFound, ValidationFailed
from goldops.core.schema import Machine, Window, WindowRecharge, WindowRequest
from goldops.core.units import to_wan
from goldops.core.validation import build, to_balance
from goldops.infrastructure import (
    DocumentStore,
    MachineRepository,
    RechargeRepository,
    StaffDirectory,
    WindowRepository,
    WindowRequestRepository,
)

from .cost import CostService

logger = logging.getLogger(__name__)


class WindowLedgerService:
    """Owns every write to window balances and assignments."""

    def __init__(
        self,
        store: DocumentStore,
        machines: MachineRepository,
        windows: WindowRepository,
        recharges: RechargeRepository,
        requests: WindowRequestRepository,
        directory: StaffDirectory,
        cost: CostService,
        *,
        max_windows_per_staff: int = 10,
    ) -> None:
        self._store = store
        self._machines = machines
        self._windows = windows
        self._recharges = recharges
        self._requests = requests
        self._directory = directory
        self._cost = cost
        self.max_windows_per_staff = max_windows_per_staff

    # ------------------------------------------------------------------
    # staff lookups
    # ------------------------------------------------------------------
    def require_staff(self, tenant_id: str, staff_id: str | None) -> str:
        """Return the staff member's display name, checking tenant membership."""

        if not staff_id:
            raise ValidationFailed("staff_id is required")
        if self._directory.staff_tenant(staff_id) != tenant_id:
            raise NotFound(f"staff {staff_id} not found")
        return self._directory.staff_name(staff_id) or staff_id

    def machine_name(self, tenant_id: str, machine_id: str) -> str:
        machine = self._machines.get(machine_id, tenant_id)
        return machine.display_name if machine else "unknown"

    # ------------------------------------------------------------------
    # machines
    # ------------------------------------------------------------------
    def create_machine(
        self,
        tenant_id: str,
        *,
        phone: str,
        platform: str,
        login_type: str = "code",
        login_password: str | None = None,
    ) -> Machine:
        if not phone or not platform:
            raise ValidationFailed("phone and platform are required")
        machine = build(
            Machine,
            id=self._machines.new_id(),
            tenant_id=tenant_id,
            phone=phone,
            platform=platform,
            login_type=login_type or "code",
            login_password=login_password,
        )
        self._machines.add(machine)
        logger.info("machine %s created for %s", machine.id, tenant_id)
        return machine

    def purchase_machine(
        self,
        tenant_id: str,
        *,
        phone: str,
        platform: str,
        windows: Iterable[dict[str, Any]],
        cost: Decimal | None = None,
        date: str | None = None,
        login_type: str = "code",
        login_password: str | None = None,
    ) -> tuple[Machine, list[Window]]:
        """Create a machine with its windows and book the purchase in the ledger."""

        entries = [item for item in windows if item.get("window_number")]
        if not entries:
            raise ValidationFailed("at least one window is required")
        if cost is not None and cost < 0:
            raise ValidationFailed("cost cannot be negative")

        with self._store.transaction():
            machine = self.create_machine(
                tenant_id,
                phone=phone,
                platform=platform,
                login_type=login_type,
                login_password=login_password,
            )
            created = [
                self.create(
                    tenant_id,
                    machine.id,
                    str(entry["window_number"]),
                    to_balance(entry.get("gold_balance", 0), "gold_balance"),
                )
                for entry in entries
            ]
            total_gold = sum(window.gold_balance for window in created)
            if cost is not None and total_gold > 0:
                self._cost.record_purchase(
                    tenant_id,
                    to_wan(total_gold),
                    cost,
                    date=date,
                    note=f"machine {machine.display_name}",
                )
        return machine, created

    def list_machines(self, tenant_id: str) -> list[Machine]:
        return sorted(self._machines.list(tenant_id), key=lambda machine: machine.id)

    def delete_machine(self, tenant_id: str, machine_id: str) -> int:
        self._machines.require(machine_id, tenant_id)
        with self._store.transaction():
            removed = self.remove_machine_windows(tenant_id, machine_id)
            self._machines.remove(machine_id, tenant_id)
        logger.info("machine %s deleted with %d windows", machine_id, removed)
        return removed

    # ------------------------------------------------------------------
    # windows
    # ------------------------------------------------------------------
    def create(
        self,
        tenant_id: str,
        machine_id: str,
        window_number: str,
        initial_balance: int,
        *,
        staff_id: str | None = None,
    ) -> Window:
        self._machines.require(machine_id, tenant_id)
        if not window_number:
            raise ValidationFailed("window_number is required")
        if initial_balance < 0:
            raise ValidationFailed("gold_balance cannot be negative")
        window = build(
            Window,
            id=self._windows.new_id(),
            tenant_id=tenant_id,
            machine_id=machine_id,
            window_number=window_number,
            gold_balance=initial_balance,
        )
        self._windows.add(window)
        if staff_id:
            window = self.assign(tenant_id, window.id, staff_id)
        return window

    def get(self, tenant_id: str, window_id: str) -> Window:
        return self._windows.require(window_id, tenant_id)

    def list_windows(
        self,
        tenant_id: str,
        *,
        staff_id: str | None = None,
        machine_id: str | None = None,
        free_only: bool = False,
    ) -> list[Window]:
        filters: dict[str, Any] = {}
        if staff_id:
            filters["assigned_staff_id"] = staff_id
        elif free_only:
            filters["assigned_staff_id"] = None
        if machine_id:
            filters["machine_id"] = machine_id
        return sorted(self._windows.list(tenant_id, **filters), key=lambda window: window.id)

    def assign(self, tenant_id: str, window_id: str, staff_id: str | None) -> Window:
        window = self._windows.require(window_id, tenant_id)
        if staff_id:
            self.require_staff(tenant_id, staff_id)
            if window.assigned_staff_id != staff_id:
                held = len(self._windows.for_staff(tenant_id, staff_id))
                if held >= self.max_windows_per_staff:
                    logger.warning("staff %s already holds %d windows", staff_id, held)
                    raise BusinessRuleViolation(
                        f"staff {staff_id} already holds the maximum of {self.max_windows_per_staff} windows"
                    )
        window.assigned_staff_id = staff_id or None
        self._windows.save(window)
        logger.info("window %s assigned to %s", window_id, staff_id or "nobody")
        return window

    def adjust_balance(self, tenant_id: str, window_id: str, new_balance: int) -> Window:
        if new_balance < 0:
            raise ValidationFailed("window balance cannot be negative")
        window = self._windows.require(window_id, tenant_id)
        window.gold_balance = int(new_balance)
        self._windows.save(window)
        return window

    def delete(self, tenant_id: str, window_id: str) -> None:
        self._windows.require(window_id, tenant_id)
        self._windows.remove(window_id, tenant_id)
        logger.info("window %s deleted", window_id)

    def remove_machine_windows(self, tenant_id: str, machine_id: str) -> int:
        windows = self._windows.for_machine(tenant_id, machine_id)
        for window in windows:
            self._windows.remove(window.id, tenant_id)
        return len(windows)

    # ------------------------------------------------------------------
    # recharge
    # ------------------------------------------------------------------
    def recharge(
        self,
        tenant_id: str,
        window_id: str,
        amount: int,
        *,
        cost: Decimal | None = None,
        operator: str | None = None,
        date: str | None = None,
    ) -> WindowRecharge:
        if amount <= 0:
            raise ValidationFailed("recharge amount must be positive")
        with self._store.transaction():
            window = self._windows.require(window_id, tenant_id)
            before = window.gold_balance
            self.adjust_balance(tenant_id, window_id, before + amount)
            record = build(
                WindowRecharge,
                id=self._recharges.new_id(),
                tenant_id=tenant_id,
                window_id=window_id,
                amount=amount,
                balance_before=before,
                balance_after=before + amount,
                created_at=utcnow_iso(),
                created_by=operator,
            )
            self._recharges.add(record)
            if cost is not None:
                self._cost.record_purchase(
                    tenant_id,
                    to_wan(amount),
                    cost,
                    date=date,
                    note=f"recharge window {window.window_number}",
                )
        logger.info("window %s recharged by %d units", window_id, amount)
        return record

    def list_recharges(self, tenant_id: str, window_id: str | None = None) -> list[WindowRecharge]:
        filters = {"window_id": window_id} if window_id else {}
        return sorted(self._recharges.list(tenant_id, **filters), key=lambda item: item.created_at)

    # ------------------------------------------------------------------
    # staff window requests
    # ------------------------------------------------------------------
    def submit_request(
        self,
        tenant_id: str,
        staff_id: str,
        request_type: str,
        window_id: str,
        *,
        note: str | None = None,
    ) -> WindowRequest:
        staff_name = self.require_staff(tenant_id, staff_id)
        window = self._windows.require(window_id, tenant_id)
        if request_type == "apply" and window.assigned_staff_id is not None:
            raise BusinessRuleViolation(f"window {window_id} is not free")
        if request_type == "release" and window.assigned_staff_id != staff_id:
            raise BusinessRuleViolation(f"window {window_id} is not assigned to {staff_id}")
        request = build(
            WindowRequest,
            id=self._requests.new_id(),
            tenant_id=tenant_id,
            staff_id=staff_id,
            staff_name=staff_name,
            type=request_type,
            window_id=window_id,
            created_at=utcnow_iso(),
            note=note,
        )
        self._requests.add(request)
        logger.info("window request %s (%s) filed by %s", request.id, request_type, staff_id)
        return request

    def process_request(
        self,
        tenant_id: str,
        request_id: str,
        *,
        approve: bool,
        operator: str | None = None,
    ) -> WindowRequest:
        with self._store.transaction():
            request = self._requests.require(request_id, tenant_id)
            status = "approved" if approve else "rejected"
            changes = {"status": status, "processed_at": utcnow_iso(), "processed_by": operator}
            if not self._requests.compare_and_set_status(request_id, "pending", changes):
                raise BusinessRuleViolation(f"window request {request_id} was already processed")
            if approve:
                window = self._windows.require(request.window_id, tenant_id)
                if request.type == "apply":
                    if window.assigned_staff_id not in (None, request.staff_id):
                        raise BusinessRuleViolation(f"window {window.id} was taken by another staff member")
                    self.assign(tenant_id, window.id, request.staff_id)
                else:
                    self.assign(tenant_id, window.id, None)
        logger.info("window request %s %s", request_id, status)
        return self._requests.require(request_id, tenant_id)

    def list_requests(self, tenant_id: str, status: str | None = None) -> list[WindowRequest]:
        filters = {"status": status} if status else {}
        return sorted(self._requests.list(tenant_id, **filters), key=lambda item: item.created_at)

"""Peer-to-peer transfer of windows and machines between friendly tenants."""
from __future__ import annotations

import logging
from decimal import Decimal

from goldops.core.clock import today, utcnow_iso
from goldops.core.errors import BusinessRuleViolation, NotFound, ValidationFailed
from goldops.core.schema import Machine, MachineSnapshot, TransferredWindow, TransferRequest, Window
from goldops.core.units import to_wan
from goldops.core.validation import build
from goldops.domain import LegacyUngrouped, MachineGroup, SingleWindow, TransferPayload, WholeMachine
from goldops.infrastructure import (
    DocumentStore,
    FriendshipChecker,
    MachineRepository,
    TransferRepository,
    WindowRepository,
)

from .cost import CostService

logger = logging.getLogger(__name__)


class TransferService:
    def __init__(
        self,
        store: DocumentStore,
        transfers: TransferRepository,
        machines: MachineRepository,
        windows: WindowRepository,
        cost: CostService,
        friendships: FriendshipChecker,
    ) -> None:
        self._store = store
        self._transfers = transfers
        self._machines = machines
        self._windows = windows
        self._cost = cost
        self._friendships = friendships

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _collect_windows(self, tenant_id: str, payload: TransferPayload) -> list[Window]:
        if isinstance(payload, SingleWindow):
            window = self._windows.require(payload.window_id, tenant_id)
            if window.assigned_staff_id is not None:
                raise BusinessRuleViolation(f"window {window.id} is assigned to a staff member")
            return [window]

        if isinstance(payload, WholeMachine):
            eligible: list[Window] = []
            for machine_id in dict.fromkeys(payload.machine_ids):
                self._machines.require(machine_id, tenant_id)
                windows = self._windows.for_machine(tenant_id, machine_id)
                eligible.extend(window for window in windows if window.assigned_staff_id is None)
            if not eligible:
                raise BusinessRuleViolation("no unassigned windows are available for transfer")
            return sorted(eligible, key=lambda window: window.id)

        if isinstance(payload, LegacyUngrouped):
            windows = [self._windows.require(window_id, tenant_id) for window_id in dict.fromkeys(payload.window_ids)]
            assigned = [window.id for window in windows if window.assigned_staff_id is not None]
            if assigned:
                raise BusinessRuleViolation(f"windows assigned to staff cannot be transferred: {', '.join(assigned)}")
            return windows

        raise ValidationFailed("unsupported transfer payload")

    def _snapshot_machine(self, tenant_id: str, machine_id: str) -> MachineSnapshot:
        machine = self._machines.require(machine_id, tenant_id)
        return MachineSnapshot(
            machine_id=machine.id,
            phone=machine.phone,
            platform=machine.platform,
            login_type=machine.login_type,
            login_password=machine.login_password,
        )

    @staticmethod
    def group_by_machine(windows: list[TransferredWindow]) -> list[MachineGroup]:
        """Group windows by their original machine, keeping first-seen order."""

        groups: dict[str, MachineGroup] = {}
        for window in windows:
            groups.setdefault(window.machine_id, MachineGroup(machine_id=window.machine_id)).window_ids.append(
                window.window_id
            )
        return list(groups.values())

    # ------------------------------------------------------------------
    # requests
    # ------------------------------------------------------------------
    def request(
        self,
        from_tenant_id: str,
        to_tenant_id: str,
        payload: TransferPayload | None,
        *,
        price: Decimal | None = None,
    ) -> TransferRequest:
        if payload is None:
            raise ValidationFailed("a window or machine must be selected")
        if not to_tenant_id:
            raise ValidationFailed("to_tenant_id is required")
        if not self._friendships.is_friend(from_tenant_id, to_tenant_id):
            logger.warning("transfer %s -> %s refused: not friends", from_tenant_id, to_tenant_id)
            raise BusinessRuleViolation("transfers are only allowed between friends")

        windows = self._collect_windows(from_tenant_id, payload)
        snapshots = [
            TransferredWindow(
                window_id=window.id,
                machine_id=window.machine_id,
                window_number=window.window_number,
                gold_balance=window.gold_balance,
            )
            for window in windows
        ]
        machines = [
            self._snapshot_machine(from_tenant_id, group.machine_id) for group in self.group_by_machine(snapshots)
        ]
        total_gold = sum(window.gold_balance for window in snapshots)
        if price is None:
            price = to_wan(total_gold) * self._cost.weighted_average_cost(from_tenant_id)

        transfer = build(
            TransferRequest,
            id=self._transfers.new_id(),
            kind="window" if isinstance(payload, SingleWindow) else "machine",
            from_tenant_id=from_tenant_id,
            to_tenant_id=to_tenant_id,
            machines=machines,
            windows=snapshots,
            price=price,
            total_gold=total_gold,
            whole_machine=isinstance(payload, WholeMachine),
            created_at=utcnow_iso(),
        )
        self._transfers.add(transfer)
        logger.info(
            "transfer %s requested %s -> %s (%d windows, price %s)",
            transfer.id,
            from_tenant_id,
            to_tenant_id,
            len(snapshots),
            transfer.price,
        )
        return transfer

    def get(self, transfer_id: str) -> TransferRequest:
        return self._transfers.require(transfer_id)

    def received(self, tenant_id: str) -> list[TransferRequest]:
        return self._transfers.received(tenant_id)

    def sent(self, tenant_id: str) -> list[TransferRequest]:
        return self._transfers.sent(tenant_id)

    # ------------------------------------------------------------------
    # resolution
    # ------------------------------------------------------------------
    def respond(self, tenant_id: str, transfer_id: str, *, accept: bool) -> TransferRequest:
        transfer = self._transfers.require(transfer_id)
        if transfer.to_tenant_id != tenant_id:
            raise NotFound(f"transfer request {transfer_id} not found")
        if accept:
            return self.accept(transfer_id)
        return self.reject(transfer_id)

    def reject(self, transfer_id: str) -> TransferRequest:
        self._transfers.require(transfer_id)
        if not self._transfers.compare_and_set_status(transfer_id, "pending", "rejected", resolved_at=utcnow_iso()):
            raise BusinessRuleViolation(f"transfer request {transfer_id} was already resolved")
        logger.info("transfer %s rejected", transfer_id)
        return self._transfers.require(transfer_id)

    def accept(self, transfer_id: str) -> TransferRequest:
        """Re-home the transferred windows and book both sides of the ledger.

        The status flip is a compare-and-set inside the same transaction as the
        side effects, so a request can only ever be applied once.
        """

        with self._store.transaction():
            transfer = self._transfers.require(transfer_id)
            if not self._transfers.compare_and_set_status(
                transfer_id, "pending", "accepted", resolved_at=utcnow_iso()
            ):
                raise BusinessRuleViolation(f"transfer request {transfer_id} was already resolved")

            sender = transfer.from_tenant_id
            receiver = transfer.to_tenant_id
            cost_basis = to_wan(transfer.total_gold) * self._cost.weighted_average_cost(sender)

            machines_by_id = {machine.machine_id: machine for machine in transfer.machines}
            created_machine_ids: list[str] = []
            for group in self.group_by_machine(transfer.windows):
                source = machines_by_id.get(group.machine_id)
                if source is None:
                    raise BusinessRuleViolation(f"transfer {transfer_id} has no snapshot of machine {group.machine_id}")
                new_machine = self._machines.add(
                    Machine(
                        id=self._machines.new_id(),
                        tenant_id=receiver,
                        phone=source.phone,
                        platform=source.platform,
                        login_type=source.login_type,
                        login_password=source.login_password,
                    )
                )
                created_machine_ids.append(new_machine.id)

                for window_id in group.window_ids:
                    window = self._windows.get(window_id, sender)
                    if window is None:
                        raise BusinessRuleViolation(f"window {window_id} is no longer owned by the sender")
                    if window.assigned_staff_id is not None:
                        raise BusinessRuleViolation(f"window {window_id} was assigned to a staff member after the request")
                    window.tenant_id = receiver
                    window.machine_id = new_machine.id
                    self._windows.save(window)

                if transfer.whole_machine and not self._windows.for_machine(sender, group.machine_id):
                    self._machines.remove(group.machine_id, sender)

            quantity = to_wan(transfer.total_gold)
            self._cost.append(
                sender,
                amount=-quantity,
                cost=-transfer.price,
                kind="transfer_out",
                date=today(),
                note=f"transfer to {receiver}",
                transfer_id=transfer_id,
            )
            self._cost.append(
                receiver,
                amount=quantity,
                cost=transfer.price,
                kind="transfer_in",
                date=today(),
                note=f"transfer from {sender}",
                transfer_id=transfer_id,
            )

            transfer = self._transfers.require(transfer_id)
            transfer.sender_cost_basis = cost_basis
            transfer.profit = transfer.price - cost_basis
            transfer.created_machine_ids = created_machine_ids
            self._transfers.save(transfer)

        logger.info(
            "transfer %s accepted: %d windows re-homed to %s on %d machines",
            transfer_id,
            len(transfer.windows),
            receiver,
            len(created_machine_ids),
        )
        return transfer

    def cancel(self, tenant_id: str, transfer_id: str) -> None:
        """Withdraw a pending request; resolved requests are kept for audit."""

        transfer = self._transfers.require(transfer_id)
        if transfer.from_tenant_id != tenant_id:
            raise NotFound(f"transfer request {transfer_id} not found")
        if transfer.status != "pending":
            raise BusinessRuleViolation(f"transfer request {transfer_id} was already resolved")
        self._transfers.remove(transfer_id)
        logger.info("transfer %s cancelled", transfer_id)

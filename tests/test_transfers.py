from decimal import Decimal

import pytest

from goldops.core.errors import BusinessRuleViolation, NotFound, ValidationFailed
from goldops.domain import LegacyUngrouped, SingleWindow, WholeMachine, parse_transfer_payload

WAN = 10_000


def _ledger_kinds(container, tenant_id):
    return [(entry.kind, entry.amount, entry.cost) for entry in container.cost.entries(tenant_id)]


def test_parse_transfer_payload_variants():
    assert parse_transfer_payload({"machine_ids": ["m1", "m2"]}) == WholeMachine(machine_ids=("m1", "m2"))
    assert parse_transfer_payload({"machine_id": "m1"}) == WholeMachine(machine_ids=("m1",))
    assert parse_transfer_payload({"window_ids": ["w1"], "window_id": "w9"}) == LegacyUngrouped(window_ids=("w1",))
    assert parse_transfer_payload({"window_id": "w1"}) == SingleWindow(window_id="w1")
    assert parse_transfer_payload({"window_ids": []}) is None


def test_single_window_transfer(container, machine_with_windows):
    machine, windows = machine_with_windows
    transfer = container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[2].id))
    assert transfer.kind == "window"
    assert transfer.total_gold == 5 * WAN
    assert transfer.price == Decimal("5")
    assert [item.id for item in container.transfers.received("tenant-b")] == [transfer.id]
    assert [item.id for item in container.transfers.sent("tenant-a")] == [transfer.id]

    accepted = container.transfers.respond("tenant-b", transfer.id, accept=True)
    assert accepted.status == "accepted"
    assert accepted.sender_cost_basis == Decimal("5")
    assert accepted.profit == Decimal("0")

    (new_machine,) = container.windows.list_machines("tenant-b")
    assert new_machine.id != machine.id
    assert accepted.created_machine_ids == [new_machine.id]
    assert (new_machine.phone, new_machine.platform) == (machine.phone, machine.platform)

    moved = container.windows.get("tenant-b", windows[2].id)
    assert moved.machine_id == new_machine.id
    assert moved.assigned_staff_id is None
    with pytest.raises(NotFound):
        container.windows.get("tenant-a", windows[2].id)

    out_entries = [entry for entry in container.cost.entries("tenant-a") if entry.kind == "transfer_out"]
    in_entries = [entry for entry in container.cost.entries("tenant-b") if entry.kind == "transfer_in"]
    assert out_entries[0].amount + in_entries[0].amount == 0
    assert out_entries[0].cost + in_entries[0].cost == 0
    assert in_entries[0].transfer_id == transfer.id

    # a single-window transfer keeps the sender's machine
    assert [item.id for item in container.windows.list_machines("tenant-a")] == [machine.id]
    assert container.transfers.received("tenant-b") == []


def test_transfer_requires_friendship(container, machine_with_windows):
    _, windows = machine_with_windows
    with pytest.raises(BusinessRuleViolation):
        container.transfers.request("tenant-a", "tenant-c", SingleWindow(windows[0].id))
    with pytest.raises(ValidationFailed):
        container.transfers.request("tenant-a", "tenant-b", None)


def test_assigned_window_cannot_be_transferred(container, machine_with_windows):
    _, windows = machine_with_windows
    container.windows.assign("tenant-a", windows[0].id, "s1")
    with pytest.raises(BusinessRuleViolation):
        container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[0].id))
    with pytest.raises(BusinessRuleViolation):
        container.transfers.request("tenant-a", "tenant-b", LegacyUngrouped((windows[0].id, windows[1].id)))


def test_whole_machine_excludes_assigned_windows(container, machine_with_windows):
    machine, windows = machine_with_windows
    container.windows.assign("tenant-a", windows[0].id, "s1")

    transfer = container.transfers.request(
        "tenant-a", "tenant-b", WholeMachine((machine.id,)), price=Decimal("40")
    )
    assert transfer.kind == "machine"
    assert transfer.whole_machine is True
    assert sorted(item.window_id for item in transfer.windows) == sorted([windows[1].id, windows[2].id])
    assert transfer.total_gold == 25 * WAN

    accepted = container.transfers.respond("tenant-b", transfer.id, accept=True)
    assert accepted.profit == Decimal("15")

    (new_machine,) = container.windows.list_machines("tenant-b")
    assert len(container.windows.list_windows("tenant-b", machine_id=new_machine.id)) == 2
    # the assigned window keeps the source machine alive
    assert [item.id for item in container.windows.list_machines("tenant-a")] == [machine.id]
    assert [item.id for item in container.windows.list_windows("tenant-a")] == [windows[0].id]


def test_whole_machine_transfer_removes_emptied_source(container, machine_with_windows):
    machine, _ = machine_with_windows
    transfer = container.transfers.request("tenant-a", "tenant-b", WholeMachine((machine.id,)))
    container.transfers.respond("tenant-b", transfer.id, accept=True)
    assert container.windows.list_machines("tenant-a") == []
    assert len(container.windows.list_windows("tenant-b")) == 3


def test_whole_machine_without_eligible_windows(container, machine_with_windows):
    machine, windows = machine_with_windows
    for window in windows:
        container.windows.assign("tenant-a", window.id, "s1")
    with pytest.raises(BusinessRuleViolation):
        container.transfers.request("tenant-a", "tenant-b", WholeMachine((machine.id,)))


def test_legacy_batch_groups_by_original_machine(container, machine_with_windows):
    _, windows = machine_with_windows
    other = container.windows.create_machine("tenant-a", phone="13900000000", platform="ios")
    extra = container.windows.create("tenant-a", other.id, "1", 3 * WAN)

    transfer = container.transfers.request(
        "tenant-a", "tenant-b", LegacyUngrouped((windows[0].id, extra.id, windows[1].id))
    )
    assert transfer.whole_machine is False
    assert len(transfer.machines) == 2

    accepted = container.transfers.respond("tenant-b", transfer.id, accept=True)
    assert len(accepted.created_machine_ids) == 2
    machines = {machine.phone: machine for machine in container.windows.list_machines("tenant-b")}
    assert set(machines) == {"13800000000", "13900000000"}
    assert len(container.windows.list_windows("tenant-b", machine_id=machines["13800000000"].id)) == 2
    assert len(container.windows.list_windows("tenant-b", machine_id=machines["13900000000"].id)) == 1
    # partial batches never delete the sender's machines
    assert len(container.windows.list_machines("tenant-a")) == 2


def test_acceptance_is_applied_once(container, machine_with_windows):
    _, windows = machine_with_windows
    transfer = container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[1].id))
    container.transfers.respond("tenant-b", transfer.id, accept=True)
    with pytest.raises(BusinessRuleViolation):
        container.transfers.respond("tenant-b", transfer.id, accept=True)
    with pytest.raises(BusinessRuleViolation):
        container.transfers.respond("tenant-b", transfer.id, accept=False)

    assert len(container.windows.list_machines("tenant-b")) == 1
    assert [kind for kind, _, _ in _ledger_kinds(container, "tenant-b")] == ["transfer_in"]


def test_rejection_has_no_side_effects(container, machine_with_windows):
    _, windows = machine_with_windows
    before = _ledger_kinds(container, "tenant-a")
    transfer = container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[1].id))

    rejected = container.transfers.respond("tenant-b", transfer.id, accept=False)
    assert rejected.status == "rejected"
    assert container.windows.get("tenant-a", windows[1].id).tenant_id == "tenant-a"
    assert _ledger_kinds(container, "tenant-a") == before
    assert container.windows.list_machines("tenant-b") == []


def test_only_receiver_may_respond(container, machine_with_windows):
    _, windows = machine_with_windows
    transfer = container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[1].id))
    with pytest.raises(NotFound):
        container.transfers.respond("tenant-a", transfer.id, accept=True)


def test_cancel(container, machine_with_windows):
    _, windows = machine_with_windows
    transfer = container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[1].id))
    with pytest.raises(NotFound):
        container.transfers.cancel("tenant-b", transfer.id)
    container.transfers.cancel("tenant-a", transfer.id)
    assert container.transfers.sent("tenant-a") == []
    with pytest.raises(NotFound):
        container.transfers.get(transfer.id)

    accepted = container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[2].id))
    container.transfers.respond("tenant-b", accepted.id, accept=True)
    with pytest.raises(BusinessRuleViolation):
        container.transfers.cancel("tenant-a", accepted.id)


def test_failed_acceptance_rolls_back(container, machine_with_windows):
    _, windows = machine_with_windows
    transfer = container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[1].id))
    container.windows.delete("tenant-a", windows[1].id)

    with pytest.raises(BusinessRuleViolation):
        container.transfers.respond("tenant-b", transfer.id, accept=True)
    assert container.transfers.get(transfer.id).status == "pending"
    assert container.windows.list_machines("tenant-b") == []
    assert container.cost.entries("tenant-b") == []


def test_window_assigned_after_request_blocks_acceptance(container, machine_with_windows):
    _, windows = machine_with_windows
    transfer = container.transfers.request("tenant-a", "tenant-b", SingleWindow(windows[2].id))
    order = container.orders.dispatch(
        "tenant-a", staff_id="s1", window_ids=[windows[2].id], amount=Decimal("1"), date="2024-05-02"
    )

    with pytest.raises(BusinessRuleViolation):
        container.transfers.respond("tenant-b", transfer.id, accept=True)

    window = container.windows.get("tenant-a", windows[2].id)
    assert window.assigned_staff_id == "s1"
    assert container.orders.get("tenant-a", order.id).status == "pending"
    assert container.transfers.get(transfer.id).status == "pending"
    assert container.windows.list_machines("tenant-b") == []
    assert container.cost.entries("tenant-b") == []


def test_repeated_machine_ids_are_counted_once(container, machine_with_windows):
    machine, _ = machine_with_windows
    assert parse_transfer_payload({"machine_ids": [machine.id, machine.id]}) == WholeMachine(machine_ids=(machine.id,))

    transfer = container.transfers.request("tenant-a", "tenant-b", WholeMachine(machine_ids=(machine.id, machine.id)))
    assert len(transfer.windows) == 3
    assert transfer.total_gold == 75 * WAN
    assert transfer.price == Decimal("75")

    accepted = container.transfers.respond("tenant-b", transfer.id, accept=True)
    assert accepted.status == "accepted"
    assert len(container.windows.list_windows("tenant-b")) == 3

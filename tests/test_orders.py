from decimal import Decimal

import pytest

from goldops.core.errors import BusinessRuleViolation, ConfirmationRequired, NotFound, ValidationFailed

WAN = 10_000


@pytest.fixture()
def windows(machine_with_windows):
    _, created = machine_with_windows
    return created


def _dispatch(container, window_ids, amount="10", staff_id="s1"):
    return container.orders.dispatch(
        "tenant-a",
        staff_id=staff_id,
        window_ids=window_ids,
        amount=Decimal(amount),
        date="2024-05-03",
    )


def test_dispatch_snapshots_and_assigns(container, windows):
    order = _dispatch(container, [windows[0].id, windows[0].id])
    assert order.status == "pending"
    assert order.unit_price == Decimal("60")
    assert order.fee_percent == Decimal("7")
    assert len(order.window_snapshots) == 1
    snapshot = order.window_snapshots[0]
    assert snapshot.start_balance == 50 * WAN
    assert snapshot.machine_name == "13800000000 (android)"
    assert container.windows.get("tenant-a", windows[0].id).assigned_staff_id == "s1"
    assert order.execution_history[0].staff_name == "Alice"


def test_dispatch_validation(container, windows):
    with pytest.raises(ValidationFailed):
        _dispatch(container, [])
    with pytest.raises(ValidationFailed):
        _dispatch(container, [windows[0].id], amount="0")
    with pytest.raises(ValidationFailed):
        _dispatch(container, [windows[0].id], staff_id="")
    with pytest.raises(NotFound):
        _dispatch(container, ["win-missing"])


def test_dispatch_rejects_windows_owned_by_others(container, windows):
    container.windows.assign("tenant-a", windows[1].id, "s2")
    with pytest.raises(BusinessRuleViolation):
        _dispatch(container, [windows[0].id, windows[1].id])
    # the failed dispatch leaves no partial assignment behind
    assert container.windows.get("tenant-a", windows[0].id).assigned_staff_id is None
    assert container.orders.list_orders("tenant-a") == []


def test_busy_staff_guard(container, windows):
    first = _dispatch(container, [windows[0].id])
    with pytest.raises(BusinessRuleViolation) as excinfo:
        _dispatch(container, [windows[1].id])
    assert excinfo.value.details == {"order_id": first.id}

    container.orders.pause("tenant-a", first.id, Decimal("2"))
    second = _dispatch(container, [windows[1].id])
    assert second.status == "pending"


def test_default_no_consumption(container, windows):
    order = _dispatch(container, [windows[0].id])
    completed = container.orders.complete("tenant-a", order.id, {}, confirm=True)
    assert completed.total_consumed == 0
    assert completed.loss == Decimal("0")
    assert container.windows.get("tenant-a", windows[0].id).gold_balance == 50 * WAN


def test_under_delivery_requires_confirmation(container, windows):
    order = _dispatch(container, [windows[0].id])
    end_balances = {windows[0].id: 41 * WAN}
    with pytest.raises(ConfirmationRequired) as excinfo:
        container.orders.complete("tenant-a", order.id, end_balances)
    assert excinfo.value.details["total_consumed"] == 9 * WAN
    assert excinfo.value.details["required"] == 10 * WAN
    # nothing changed while waiting for confirmation
    assert container.windows.get("tenant-a", windows[0].id).gold_balance == 50 * WAN
    assert container.orders.get("tenant-a", order.id).status == "pending"

    completed = container.orders.complete("tenant-a", order.id, end_balances, confirm=True)
    assert completed.status == "completed"
    assert completed.loss == Decimal("0")
    assert container.windows.get("tenant-a", windows[0].id).gold_balance == 41 * WAN


def test_over_consumption_is_loss(container, windows):
    order = _dispatch(container, [windows[0].id])
    completed = container.orders.complete("tenant-a", order.id, {windows[0].id: 37 * WAN})
    assert completed.total_consumed == 13 * WAN
    assert completed.loss == Decimal("3")
    assert completed.completed_amount == Decimal("10")
    # windows stay with the staff member after completion
    assert container.windows.get("tenant-a", windows[0].id).assigned_staff_id == "s1"


def test_completed_order_is_terminal(container, windows):
    order = _dispatch(container, [windows[0].id])
    container.orders.complete("tenant-a", order.id, {windows[0].id: 40 * WAN})

    with pytest.raises(BusinessRuleViolation):
        container.orders.pause("tenant-a", order.id, Decimal("1"))
    with pytest.raises(BusinessRuleViolation):
        container.orders.resume("tenant-a", order.id)
    with pytest.raises(BusinessRuleViolation):
        container.orders.complete("tenant-a", order.id, {}, confirm=True)
    with pytest.raises(BusinessRuleViolation):
        container.orders.release_window("tenant-a", order.id, windows[0].id)
    assert container.orders.get("tenant-a", order.id).status == "completed"


def test_paused_order_must_resume_before_completion(container, windows):
    order = _dispatch(container, [windows[0].id])
    container.orders.pause("tenant-a", order.id, Decimal("4"))
    with pytest.raises(BusinessRuleViolation):
        container.orders.complete("tenant-a", order.id, {}, confirm=True)
    with pytest.raises(BusinessRuleViolation):
        container.orders.pause("tenant-a", order.id, Decimal("5"))


def test_pause_bounds(container, windows):
    order = _dispatch(container, [windows[0].id])
    with pytest.raises(ValidationFailed):
        container.orders.pause("tenant-a", order.id, Decimal("11"))
    container.orders.pause("tenant-a", order.id, Decimal("4"))
    container.orders.resume("tenant-a", order.id)
    with pytest.raises(ValidationFailed):
        container.orders.pause("tenant-a", order.id, Decimal("3"))


def test_resume_to_other_staff_tracks_execution_history(container, windows):
    order = _dispatch(container, [windows[0].id])
    container.orders.pause("tenant-a", order.id, Decimal("4"))

    resumed = container.orders.resume("tenant-a", order.id, "s2")
    assert resumed.staff_id == "s2"
    assert resumed.status == "pending"
    # windows are not moved along with the order
    assert container.windows.get("tenant-a", windows[0].id).assigned_staff_id == "s1"

    container.windows.assign("tenant-a", windows[1].id, "s2")
    completed = container.orders.complete("tenant-a", order.id, {windows[1].id: 10 * WAN})
    history = completed.execution_history
    assert [(item.staff_id, item.amount) for item in history] == [("s1", Decimal("4")), ("s2", Decimal("6"))]
    assert all(item.end_time for item in history)


def test_resume_checks_target_is_not_busy(container, windows):
    order = _dispatch(container, [windows[0].id])
    container.orders.pause("tenant-a", order.id, Decimal("1"))
    _dispatch(container, [windows[1].id], staff_id="s2")
    with pytest.raises(BusinessRuleViolation):
        container.orders.resume("tenant-a", order.id, "s2")
    assert container.orders.get("tenant-a", order.id).status == "paused"


def test_partial_release(container, windows):
    order = _dispatch(container, [windows[0].id, windows[1].id])
    order = container.orders.release_window("tenant-a", order.id, windows[1].id, 14 * WAN)
    partial = order.partial_results[0]
    assert partial.consumed == 6 * WAN
    assert partial.staff_name == "Alice"
    released = container.windows.get("tenant-a", windows[1].id)
    assert released.assigned_staff_id is None
    assert released.gold_balance == 14 * WAN

    with pytest.raises(BusinessRuleViolation):
        container.orders.release_window("tenant-a", order.id, windows[1].id)

    completed = container.orders.complete("tenant-a", order.id, {windows[0].id: 46 * WAN})
    assert completed.total_consumed == 10 * WAN
    assert completed.loss == Decimal("0")


def test_partial_release_defaults_to_no_consumption(container, windows):
    order = _dispatch(container, [windows[0].id, windows[2].id])
    order = container.orders.release_window("tenant-a", order.id, windows[2].id)
    assert order.partial_results[0].consumed == 0
    assert container.windows.get("tenant-a", windows[2].id).gold_balance == 5 * WAN

    with pytest.raises(ValidationFailed):
        container.orders.release_window("tenant-a", order.id, windows[0].id, 51 * WAN)


def test_completion_binds_to_live_assignment(container, windows):
    order = _dispatch(container, [windows[0].id])
    # a window handed to the staff mid-order takes part in completion
    container.windows.assign("tenant-a", windows[2].id, "s1")
    # a window taken away mid-order does not
    container.windows.assign("tenant-a", windows[0].id, "s2")

    with pytest.raises(ValidationFailed):
        container.orders.complete("tenant-a", order.id, {windows[0].id: 0}, confirm=True)

    completed = container.orders.complete("tenant-a", order.id, {windows[2].id: 0}, confirm=True)
    assert [result.window_id for result in completed.window_results] == [windows[2].id]
    assert completed.total_consumed == 5 * WAN
    assert container.windows.get("tenant-a", windows[0].id).gold_balance == 50 * WAN


def test_delete_from_any_state_keeps_balances(container, windows):
    order = _dispatch(container, [windows[0].id])
    container.orders.complete("tenant-a", order.id, {windows[0].id: 30 * WAN})
    container.orders.delete("tenant-a", order.id)
    with pytest.raises(NotFound):
        container.orders.get("tenant-a", order.id)
    assert container.windows.get("tenant-a", windows[0].id).gold_balance == 30 * WAN

    paused = _dispatch(container, [windows[1].id])
    container.orders.pause("tenant-a", paused.id, Decimal("0"))
    container.orders.delete("tenant-a", paused.id)
    assert container.orders.list_orders("tenant-a") == []

from decimal import Decimal

import pytest

from goldops.core.schema import TenantSettings
from goldops.core.settlement import order_figures

WAN = 10_000


def _scenario(container, *, purchase_date="2024-05-01", order_date="2024-05-02"):
    """Purchase 30,000 wan for 600 and fulfil a 10,000 wan order consuming 10,500."""

    container.cost.record_purchase("tenant-a", Decimal("30000"), Decimal("600"), date=purchase_date)
    machine = container.windows.create_machine("tenant-a", phone="1", platform="ios")
    window = container.windows.create("tenant-a", machine.id, "1", 12_000 * WAN)
    order = container.orders.dispatch(
        "tenant-a",
        staff_id="s1",
        window_ids=[window.id],
        amount=Decimal("10000"),
        unit_price=Decimal("60"),
        fee_percent=Decimal("5"),
        date=order_date,
    )
    return container.orders.complete("tenant-a", order.id, {window.id: 1_500 * WAN})


def test_end_to_end_profit(container):
    order = _scenario(container)
    assert order.loss == Decimal("500")

    figures = order_figures(order, TenantSettings(), Decimal("20"))
    assert figures.revenue == Decimal("570")
    assert figures.cogs == Decimal("210")
    assert figures.employee_cost == Decimal("120")
    assert figures.profit == Decimal("240")

    report = container.settlement.report("tenant-a")
    (day,) = report.daily
    assert day.date == "2024-05-02"
    assert day.order_count == 1
    assert day.revenue == Decimal("570")
    assert day.cogs == Decimal("210")
    assert day.employee_cost == Decimal("120")
    assert day.profit == Decimal("240")
    assert day.inventory_after == Decimal("19500")

    summary = report.summary
    assert summary.avg_cost_per_1000 == Decimal("20")
    assert summary.current_inventory == Decimal("19500")
    assert summary.inventory_value == Decimal("390")
    assert summary.total_profit == Decimal("240")
    assert summary.current_cash == Decimal("9850")
    assert summary.total_assets == Decimal("10240")


def test_only_completed_orders_are_reported(container):
    _scenario(container)
    machine = container.windows.create_machine("tenant-a", phone="2", platform="ios")
    window = container.windows.create("tenant-a", machine.id, "1", 100 * WAN)
    container.orders.dispatch("tenant-a", staff_id="s2", window_ids=[window.id], amount=Decimal("50"))

    report = container.settlement.report("tenant-a")
    assert len(report.daily) == 1
    assert report.summary.total_profit == Decimal("240")


def test_daily_inventory_counts_purchases_up_to_each_day(container):
    _scenario(container)
    container.cost.record_purchase("tenant-a", Decimal("1000"), Decimal("20"), date="2024-05-04")
    machine = container.windows.create_machine("tenant-a", phone="2", platform="ios")
    window = container.windows.create("tenant-a", machine.id, "1", 500 * WAN)
    order = container.orders.dispatch(
        "tenant-a", staff_id="s2", window_ids=[window.id], amount=Decimal("100"), date="2024-05-05"
    )
    container.orders.complete("tenant-a", order.id, {window.id: 400 * WAN})

    report = container.settlement.report("tenant-a")
    assert [day.date for day in report.daily] == ["2024-05-02", "2024-05-05"]
    assert report.daily[0].inventory_after == Decimal("19500")
    assert report.daily[1].inventory_after == Decimal("20400")


def test_tenant_settings_drive_employee_cost(container):
    container.settings.update("tenant-a", {"employee_cost_rate": "10", "initial_capital": "0", "unknown": 1})
    _scenario(container)
    report = container.settlement.report("tenant-a")
    assert report.daily[0].employee_cost == Decimal("100")
    assert report.summary.current_cash == Decimal("-130")


def test_staff_stats_prorate_loss_by_segment(container):
    container.cost.record_purchase("tenant-a", Decimal("1000"), Decimal("20"), date="2024-05-01")
    machine = container.windows.create_machine("tenant-a", phone="1", platform="ios")
    first = container.windows.create("tenant-a", machine.id, "1", 100 * WAN)
    second = container.windows.create("tenant-a", machine.id, "2", 100 * WAN)

    order = container.orders.dispatch("tenant-a", staff_id="s1", window_ids=[first.id], amount=Decimal("100"))
    container.orders.pause("tenant-a", order.id, Decimal("40"))
    container.orders.resume("tenant-a", order.id, "s2")
    container.windows.assign("tenant-a", second.id, "s2")
    container.orders.complete("tenant-a", order.id, {second.id: 0})

    stats = {item.staff_id: item for item in container.settlement.staff_stats("tenant-a")}
    assert stats["s1"].total_orders == 1
    assert stats["s1"].total_amount == Decimal("40")
    assert stats["s1"].total_loss == Decimal("0")
    assert stats["s2"].total_amount == Decimal("60")
    assert stats["s2"].total_labor_cost_earned == Decimal("0.72")


def test_staff_stats_loss_share(container):
    _scenario(container)
    (alice,) = [item for item in container.settlement.staff_stats("tenant-a") if item.staff_id == "s1"]
    assert alice.total_amount == Decimal("10000")
    assert alice.total_loss == Decimal("500")
    assert alice.total_labor_cost_earned == Decimal("120")


@pytest.mark.parametrize("fmt", ["csv", "xlsx"])
def test_export_writes_file(container, tmp_path, fmt):
    _scenario(container)
    path = container.settlement.export("tenant-a", fmt, target_dir=tmp_path)
    assert path == tmp_path / f"settlement.{fmt}"
    assert path.exists()

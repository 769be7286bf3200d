#!/usr/bin/env python
from __future__ import annotations

import argparse
import sys
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from goldops.application import build_container
from goldops.core.units import WAN, format_wan
from goldops.infrastructure import InMemoryAccountDirectory


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a demo tenant and print its settlement summary")
    parser.add_argument("--tenant", default="demo", help="tenant id")
    parser.add_argument("--purchase", type=Decimal, default=Decimal("30000"), help="purchased quantity in wan")
    parser.add_argument("--cost", type=Decimal, default=Decimal("600"), help="purchase cost in CNY")
    parser.add_argument("--export", choices=["csv", "xlsx"], help="also export the settlement report")
    args = parser.parse_args()

    directory = InMemoryAccountDirectory()
    directory.register_staff("staff-1", "Demo Staff", args.tenant)
    container = build_container(directory=directory)

    container.cost.record_purchase(args.tenant, args.purchase, args.cost, date="2024-05-01")
    machine = container.windows.create_machine(args.tenant, phone="13800000000", platform="android")
    window = container.windows.create(args.tenant, machine.id, "1", 12_000 * WAN)
    order = container.orders.dispatch(
        args.tenant,
        staff_id="staff-1",
        window_ids=[window.id],
        amount=Decimal("10000"),
        unit_price=Decimal("60"),
        fee_percent=Decimal("5"),
        date="2024-05-02",
    )
    container.orders.complete(args.tenant, order.id, {window.id: 1_500 * WAN})

    report = container.settlement.report(args.tenant)
    for key, value in report.summary.model_dump().items():
        print(f"{key:>20}: {value}")
    remaining = container.windows.get(args.tenant, window.id).gold_balance
    print(f"{'window balance':>20}: {format_wan(remaining)}")

    if args.export:
        path = container.settlement.export(args.tenant, args.export)
        print(f"settlement exported: {path}")


if __name__ == "__main__":
    main()

from __future__ import annotations

from pathlib import Path

import pandas as pd

from goldops.core.schema import SettlementReport

DAILY_COLUMNS = [
    "date",
    "order_count",
    "order_amount",
    "loss_amount",
    "revenue",
    "employee_cost",
    "cogs",
    "profit",
    "inventory_after",
]


def settlement_frame(report: SettlementReport) -> pd.DataFrame:
    df = pd.DataFrame([row.model_dump() for row in report.daily], columns=DAILY_COLUMNS)
    for column in DAILY_COLUMNS[2:]:
        df[column] = df[column].astype(str)
    return df


def export_settlement_csv(path: Path, report: SettlementReport) -> Path:
    df = settlement_frame(report)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from openpyxl import Workbook

from goldops.core.schema import SettlementReport

from .settlement_csv import DAILY_COLUMNS


def _cell(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


def export_settlement_xlsx(path: Path, report: SettlementReport) -> Path:
    """Write a two-sheet workbook: one row per day, then the global summary."""

    workbook = Workbook()
    daily = workbook.active
    daily.title = "daily"
    daily.append(DAILY_COLUMNS)
    for row in report.daily:
        data = row.model_dump()
        daily.append([_cell(data[column]) for column in DAILY_COLUMNS])

    summary = workbook.create_sheet("summary")
    summary.append(["metric", "value"])
    for key, value in report.summary.model_dump().items():
        summary.append([key, _cell(value)])

    path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(path)
    return path

from __future__ import annotations

import logging
from pathlib import Path

from goldops.core.errors import ValidationFailed
from goldops.core.reports import ensure_report_dir
from goldops.core.schema import SettlementReport, StaffStats
from goldops.core.settlement import calculate_settlement, calculate_staff_stats
from goldops.exporters.settlement_csv import export_settlement_csv
from goldops.exporters.settlement_xlsx import export_settlement_xlsx
from goldops.infrastructure import LedgerRepository, OrderRepository, StaffDirectory

from .settings import TenantSettingsService

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {"csv", "xlsx"}


class SettlementService:
    def __init__(
        self,
        ledger: LedgerRepository,
        orders: OrderRepository,
        settings: TenantSettingsService,
        directory: StaffDirectory,
    ) -> None:
        self._ledger = ledger
        self._orders = orders
        self._settings = settings
        self._directory = directory

    def report(self, tenant_id: str) -> SettlementReport:
        return calculate_settlement(
            tenant_id,
            self._ledger.list(tenant_id),
            self._orders.list(tenant_id),
            self._settings.get(tenant_id),
        )

    def staff_stats(self, tenant_id: str) -> list[StaffStats]:
        staff = self._directory.list_staff(tenant_id)
        return calculate_staff_stats(self._orders.list(tenant_id), staff, self._settings.get(tenant_id))

    def export(self, tenant_id: str, fmt: str = "csv", *, target_dir: Path | None = None) -> Path:
        fmt = (fmt or "csv").lower()
        if fmt not in EXPORT_FORMATS:
            raise ValidationFailed(f"unsupported export format: {fmt}")
        report = self.report(tenant_id)
        directory = target_dir or ensure_report_dir(tenant_id)
        path = directory / f"settlement.{fmt}"
        if fmt == "csv":
            export_settlement_csv(path, report)
        else:
            export_settlement_xlsx(path, report)
        logger.info("settlement for %s exported to %s", tenant_id, path)
        return path

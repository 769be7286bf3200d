"""Application services."""

from .container import ServiceContainer, build_container
from .cost import CostService
from .orders import OrderService
from .settings import TenantSettingsService
from .settlement import SettlementService
from .transfers import TransferService
from .windows import WindowLedgerService

__all__ = [
    "CostService",
    "OrderService",
    "ServiceContainer",
    "SettlementService",
    "TenantSettingsService",
    "TransferService",
    "WindowLedgerService",
    "build_container",
]

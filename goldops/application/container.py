"""Wiring of repositories and services for one application instance."""
from __future__ import annotations

from dataclasses import dataclass

from goldops.core.settings import AppConfig, load_config
from goldops.infrastructure import (
    AccountDirectory,
    DocumentStore,
    InMemoryAccountDirectory,
    InMemoryDocumentStore,
    LedgerRepository,
    MachineRepository,
    OrderRepository,
    RechargeRepository,
    SettingsRepository,
    TransferRepository,
    WindowRepository,
    WindowRequestRepository,
)

from .cost import CostService
from .orders import OrderService
from .settings import TenantSettingsService
from .settlement import SettlementService
from .transfers import TransferService
from .windows import WindowLedgerService


@dataclass(slots=True)
class ServiceContainer:
    config: AppConfig
    store: DocumentStore
    directory: AccountDirectory
    settings: TenantSettingsService
    cost: CostService
    windows: WindowLedgerService
    orders: OrderService
    transfers: TransferService
    settlement: SettlementService


def build_container(
    store: DocumentStore | None = None,
    directory: AccountDirectory | None = None,
    config: AppConfig | None = None,
) -> ServiceContainer:
    config = config or load_config()
    store = store or InMemoryDocumentStore()
    directory = directory or InMemoryAccountDirectory()

    machines = MachineRepository(store)
    windows = WindowRepository(store)
    ledger = LedgerRepository(store)
    orders = OrderRepository(store)

    settings = TenantSettingsService(SettingsRepository(store, config.tenant))
    cost = CostService(ledger)
    window_ledger = WindowLedgerService(
        store,
        machines,
        windows,
        RechargeRepository(store),
        WindowRequestRepository(store),
        directory,
        cost,
        max_windows_per_staff=config.max_windows_per_staff,
    )
    return ServiceContainer(
        config=config,
        store=store,
        directory=directory,
        settings=settings,
        cost=cost,
        windows=window_ledger,
        orders=OrderService(store, orders, window_ledger, settings),
        transfers=TransferService(store, TransferRepository(store), machines, windows, cost, directory),
        settlement=SettlementService(ledger, orders, settings, directory),
    )

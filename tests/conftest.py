import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from goldops.application import ServiceContainer, build_container
from goldops.core.settings import AppConfig
from goldops.infrastructure import InMemoryAccountDirectory, InMemoryDocumentStore

WAN = 10_000


@pytest.fixture()
def directory() -> InMemoryAccountDirectory:
    accounts = InMemoryAccountDirectory()
    accounts.register_staff("s1", "Alice", "tenant-a")
    accounts.register_staff("s2", "Bob", "tenant-a")
    accounts.register_staff("s3", "Carol", "tenant-b")
    accounts.add_friendship("tenant-a", "tenant-b")
    return accounts


@pytest.fixture()
def container(directory) -> ServiceContainer:
    return build_container(store=InMemoryDocumentStore(), directory=directory, config=AppConfig())


@pytest.fixture()
def machine_with_windows(container):
    """One machine for tenant-a with three windows of 50 / 20 / 5 wan."""

    machine, windows = container.windows.purchase_machine(
        "tenant-a",
        phone="13800000000",
        platform="android",
        windows=[
            {"window_number": "1", "gold_balance": 50 * WAN},
            {"window_number": "2", "gold_balance": 20 * WAN},
            {"window_number": "3", "gold_balance": 5 * WAN},
        ],
        cost=Decimal("75"),
        date="2024-05-01",
    )
    return machine, windows

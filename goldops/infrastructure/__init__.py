"""Infrastructure layer exports."""

from .account_service import AccountServiceError, HttpAccountDirectory
from .accounts import AccountDirectory, FriendshipChecker, InMemoryAccountDirectory, StaffDirectory
from .repositories import (
    LedgerRepository,
    MachineRepository,
    OrderRepository,
    RechargeRepository,
    SettingsRepository,
    TransferRepository,
    WindowRepository,
    WindowRequestRepository,
)
from .store import DocumentStore, InMemoryDocumentStore

__all__ = [
    "AccountDirectory",
    "AccountServiceError",
    "DocumentStore",
    "FriendshipChecker",
    "HttpAccountDirectory",
    "InMemoryAccountDirectory",
    "InMemoryDocumentStore",
    "LedgerRepository",
    "MachineRepository",
    "OrderRepository",
    "RechargeRepository",
    "SettingsRepository",
    "StaffDirectory",
    "TransferRepository",
    "WindowRepository",
    "WindowRequestRepository",
]

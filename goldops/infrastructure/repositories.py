"""Per-entity repositories over a :class:`DocumentStore`."""
from __future__ import annotations

from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from goldops.core.errors import NotFound
from goldops.core.schema import (
    LedgerEntry,
    Machine,
    Order,
    TenantSettings,
    TransferRequest,
    Window,
    WindowRecharge,
    WindowRequest,
)

from .store import DocumentStore

ModelT = TypeVar("ModelT", bound=BaseModel)


class DocumentRepository(Generic[ModelT]):
    collection: ClassVar[str]
    model: ClassVar[type[BaseModel]]
    id_prefix: ClassVar[str]
    label: ClassVar[str]

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _load(self, document: dict[str, Any] | None) -> ModelT | None:
        if document is None:
            return None
        return self.model(**document)  # type: ignore[return-value]

    def _tenant_of(self, record: ModelT) -> str:
        return str(getattr(record, "tenant_id"))

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------
    def new_id(self) -> str:
        return self._store.next_id(self.id_prefix)

    def add(self, record: ModelT) -> ModelT:
        self._store.insert(self.collection, self._tenant_of(record), record.model_dump())
        return record

    def get(self, doc_id: str, tenant_id: str | None = None) -> ModelT | None:
        return self._load(self._store.get(self.collection, doc_id, tenant_id))

    def require(self, doc_id: str, tenant_id: str | None = None) -> ModelT:
        record = self.get(doc_id, tenant_id)
        if record is None:
            raise NotFound(f"{self.label} {doc_id} not found")
        return record

    def list(self, tenant_id: str | None = None, **filters: Any) -> list[ModelT]:
        rows = self._store.find(self.collection, tenant_id, **filters)
        return [self.model(**row) for row in rows]  # type: ignore[misc]

    def save(self, record: ModelT) -> ModelT:
        doc_id = str(getattr(record, "id"))
        updated = self._store.update(self.collection, doc_id, record.model_dump())
        if updated is None:
            raise NotFound(f"{self.label} {doc_id} not found")
        return record

    def remove(self, doc_id: str, tenant_id: str | None = None) -> bool:
        return self._store.delete(self.collection, doc_id, tenant_id)


class MachineRepository(DocumentRepository[Machine]):
    collection = "machines"
    model = Machine
    id_prefix = "mac"
    label = "machine"


class WindowRepository(DocumentRepository[Window]):
    collection = "windows"
    model = Window
    id_prefix = "win"
    label = "window"

    def for_staff(self, tenant_id: str, staff_id: str) -> list[Window]:
        return self.list(tenant_id, assigned_staff_id=staff_id)

    def for_machine(self, tenant_id: str, machine_id: str) -> list[Window]:
        return self.list(tenant_id, machine_id=machine_id)

    def free(self, tenant_id: str) -> list[Window]:
        return self.list(tenant_id, assigned_staff_id=None)


class LedgerRepository(DocumentRepository[LedgerEntry]):
    collection = "ledger"
    model = LedgerEntry
    id_prefix = "led"
    label = "ledger entry"


class OrderRepository(DocumentRepository[Order]):
    collection = "orders"
    model = Order
    id_prefix = "ord"
    label = "order"

    def pending_for_staff(self, tenant_id: str, staff_id: str) -> list[Order]:
        return self.list(tenant_id, staff_id=staff_id, status="pending")

    def compare_and_set_status(self, tenant_id: str, order_id: str, expected: str, changes: dict[str, Any]) -> bool:
        updated = self._store.update(
            self.collection,
            order_id,
            changes,
            tenant_id=tenant_id,
            expected={"status": expected},
        )
        return updated is not None


class TransferRepository(DocumentRepository[TransferRequest]):
    """Transfer requests are filed under the sending tenant."""

    collection = "transfers"
    model = TransferRequest
    id_prefix = "trf"
    label = "transfer request"

    def _tenant_of(self, record: TransferRequest) -> str:
        return record.from_tenant_id

    def received(self, tenant_id: str, status: str = "pending") -> list[TransferRequest]:
        return self.list(None, to_tenant_id=tenant_id, status=status)

    def sent(self, tenant_id: str, status: str = "pending") -> list[TransferRequest]:
        return self.list(None, from_tenant_id=tenant_id, status=status)

    def compare_and_set_status(self, transfer_id: str, expected: str, new_status: str, **changes: Any) -> bool:
        changes["status"] = new_status
        updated = self._store.update(self.collection, transfer_id, changes, expected={"status": expected})
        return updated is not None


class RechargeRepository(DocumentRepository[WindowRecharge]):
    collection = "recharges"
    model = WindowRecharge
    id_prefix = "rch"
    label = "recharge"


class WindowRequestRepository(DocumentRepository[WindowRequest]):
    collection = "window_requests"
    model = WindowRequest
    id_prefix = "wrq"
    label = "window request"

    def compare_and_set_status(self, request_id: str, expected: str, changes: dict[str, Any]) -> bool:
        updated = self._store.update(self.collection, request_id, changes, expected={"status": expected})
        return updated is not None


class SettingsRepository:
    collection = "settings"

    def __init__(self, store: DocumentStore, defaults: TenantSettings) -> None:
        self._store = store
        self._defaults = defaults

    def get(self, tenant_id: str) -> TenantSettings:
        document = self._store.get(self.collection, tenant_id, tenant_id)
        if document is None:
            return self._defaults.model_copy()
        document.pop("id", None)
        document.pop("tenant_id", None)
        return TenantSettings(**document)

    def save(self, tenant_id: str, settings: TenantSettings) -> TenantSettings:
        payload = settings.model_dump()
        if self._store.update(self.collection, tenant_id, payload, tenant_id=tenant_id) is None:
            self._store.insert(self.collection, tenant_id, {"id": tenant_id, **payload})
        return settings

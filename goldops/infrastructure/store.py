"""Document persistence keyed by ``(collection, tenant_id, id)``."""
from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Protocol

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Persistence contract for tenant-scoped JSON documents."""

    def next_id(self, prefix: str) -> str: ...

    def insert(self, collection: str, tenant_id: str, document: dict[str, Any]) -> dict[str, Any]: ...

    def get(self, collection: str, doc_id: str, tenant_id: str | None = None) -> dict[str, Any] | None: ...

    def find(self, collection: str, tenant_id: str | None = None, **filters: Any) -> list[dict[str, Any]]: ...

    def update(
        self,
        collection: str,
        doc_id: str,
        changes: dict[str, Any],
        *,
        tenant_id: str | None = None,
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None: ...

    def delete(self, collection: str, doc_id: str, tenant_id: str | None = None) -> bool: ...

    def transaction(self) -> Any: ...

    def reset(self) -> None: ...


class InMemoryDocumentStore:
    """Dict-backed store for development and tests.

    Every public call holds a re-entrant lock.  ``transaction()`` keeps the lock
    for the whole block and restores the previous contents if the block raises.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._counter = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    @staticmethod
    def _matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
        return all(document.get(key) == value for key, value in filters.items())

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------
    def next_id(self, prefix: str) -> str:
        with self._lock:
            self._counter += 1
            return f"{prefix}-{self._counter:06d}"

    def insert(self, collection: str, tenant_id: str, document: dict[str, Any]) -> dict[str, Any]:
        doc_id = document.get("id")
        if not doc_id:
            raise ValueError("document must carry an id")
        with self._lock:
            records = self._collection(collection)
            if doc_id in records:
                raise ValueError(f"duplicate id {doc_id!r} in {collection}")
            stored = copy.deepcopy(document)
            stored["tenant_id"] = tenant_id
            records[doc_id] = stored
            return copy.deepcopy(stored)

    def get(self, collection: str, doc_id: str, tenant_id: str | None = None) -> dict[str, Any] | None:
        with self._lock:
            document = self._collection(collection).get(doc_id)
            if document is None:
                return None
            if tenant_id is not None and document.get("tenant_id") != tenant_id:
                return None
            return copy.deepcopy(document)

    def find(self, collection: str, tenant_id: str | None = None, **filters: Any) -> list[dict[str, Any]]:
        if tenant_id is not None:
            filters["tenant_id"] = tenant_id
        with self._lock:
            return [
                copy.deepcopy(document)
                for document in self._collection(collection).values()
                if self._matches(document, filters)
            ]

    def update(
        self,
        collection: str,
        doc_id: str,
        changes: dict[str, Any],
        *,
        tenant_id: str | None = None,
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Apply ``changes`` and return the new document.

        ``None`` is returned when the document is missing, belongs to another
        tenant, or does not match ``expected`` (compare-and-set).
        """

        with self._lock:
            document = self._collection(collection).get(doc_id)
            if document is None:
                return None
            if tenant_id is not None and document.get("tenant_id") != tenant_id:
                return None
            if expected and not self._matches(document, expected):
                return None
            document.update(copy.deepcopy(changes))
            return copy.deepcopy(document)

    def delete(self, collection: str, doc_id: str, tenant_id: str | None = None) -> bool:
        with self._lock:
            records = self._collection(collection)
            document = records.get(doc_id)
            if document is None:
                return False
            if tenant_id is not None and document.get("tenant_id") != tenant_id:
                return False
            del records[doc_id]
            return True

    @contextmanager
    def transaction(self) -> Iterator["InMemoryDocumentStore"]:
        """Run a block atomically, restoring a full snapshot if it raises.

        Every transaction deep-copies the whole store, so the cost grows with
        the store size. This backend is meant for development and tests; a
        production store should rely on the database's own transactions.
        """

        with self._lock:
            snapshot = copy.deepcopy(self._collections)
            counter = self._counter
            try:
                yield self
            except BaseException:
                logger.warning("transaction rolled back")
                self._collections = snapshot
                self._counter = counter
                raise

    def reset(self) -> None:
        with self._lock:
            self._collections.clear()
            self._counter = 0

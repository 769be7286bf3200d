"""Account-side collaborators: friendships and the staff directory."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class FriendshipChecker(Protocol):
    def is_friend(self, tenant_a: str, tenant_b: str) -> bool:
        """Return ``True`` when both tenants share an accepted friendship."""


class StaffDirectory(Protocol):
    def staff_name(self, staff_id: str) -> str | None: ...

    def staff_tenant(self, staff_id: str) -> str | None: ...

    def list_staff(self, tenant_id: str) -> dict[str, str]: ...


class AccountDirectory(FriendshipChecker, StaffDirectory, Protocol):
    """Both collaborator contracts, as provided by the account service."""


@dataclass(slots=True)
class StaffEntry:
    staff_id: str
    name: str
    tenant_id: str


class InMemoryAccountDirectory:
    """Local directory used in tests and when no account service is configured."""

    def __init__(self) -> None:
        self._staff: dict[str, StaffEntry] = {}
        self._friendships: set[frozenset[str]] = set()

    def register_staff(self, staff_id: str, name: str, tenant_id: str) -> StaffEntry:
        entry = StaffEntry(staff_id=staff_id, name=name, tenant_id=tenant_id)
        self._staff[staff_id] = entry
        return entry

    def add_friendship(self, tenant_a: str, tenant_b: str) -> None:
        self._friendships.add(frozenset((tenant_a, tenant_b)))

    def remove_friendship(self, tenant_a: str, tenant_b: str) -> None:
        self._friendships.discard(frozenset((tenant_a, tenant_b)))

    def is_friend(self, tenant_a: str, tenant_b: str) -> bool:
        if tenant_a == tenant_b:
            return False
        return frozenset((tenant_a, tenant_b)) in self._friendships

    def staff_name(self, staff_id: str) -> str | None:
        entry = self._staff.get(staff_id)
        return entry.name if entry else None

    def staff_tenant(self, staff_id: str) -> str | None:
        entry = self._staff.get(staff_id)
        return entry.tenant_id if entry else None

    def list_staff(self, tenant_id: str) -> dict[str, str]:
        return {entry.staff_id: entry.name for entry in self._staff.values() if entry.tenant_id == tenant_id}

    def reset(self) -> None:
        self._staff.clear()
        self._friendships.clear()

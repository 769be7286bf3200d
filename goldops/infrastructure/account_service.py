"""HTTP client for the external account service."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from goldops.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class AccountServiceError(UpstreamUnavailable):
    """Raised when the account service is unreachable or reports a failure."""


class HttpAccountDirectory:
    """Resolve friendships and staff records through the account service API.

    The service speaks the same ``{"success": bool, "data"|"error": ...}``
    envelope as this backend.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("base_url must include scheme and host")

        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _get(self, path: str) -> Any:
        try:
            response = self._client.get(f"{self._base_url}{path}", headers=self._headers)
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("account service request %s failed: %s", path, exc)
            raise AccountServiceError(f"account service request failed: {exc}") from exc

        body = response.json()
        if not body.get("success"):
            raise AccountServiceError(str(body.get("error") or "account service request failed"))
        return body.get("data")

    def _staff(self, staff_id: str) -> dict[str, Any] | None:
        data = self._get(f"/staff/{quote(staff_id, safe='')}")
        return data if isinstance(data, dict) else None

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def is_friend(self, tenant_a: str, tenant_b: str) -> bool:
        data = self._get(f"/friends/{quote(tenant_a, safe='')}/{quote(tenant_b, safe='')}")
        friends = bool(data and data.get("friends"))
        logger.debug("friendship %s <-> %s: %s", tenant_a, tenant_b, friends)
        return friends

    def staff_name(self, staff_id: str) -> str | None:
        record = self._staff(staff_id)
        return str(record["name"]) if record and record.get("name") else None

    def staff_tenant(self, staff_id: str) -> str | None:
        record = self._staff(staff_id)
        return str(record["tenantId"]) if record and record.get("tenantId") else None

    def list_staff(self, tenant_id: str) -> dict[str, str]:
        data = self._get(f"/tenants/{quote(tenant_id, safe='')}/staff") or []
        return {str(item["id"]): str(item.get("name") or "") for item in data if isinstance(item, dict) and item.get("id")}

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            self._client.close()


__all__ = ["AccountServiceError", "HttpAccountDirectory"]

from __future__ import annotations

import logging
from typing import Any

from goldops.core.schema import TenantSettings
from goldops.core.validation import build
from goldops.infrastructure import SettingsRepository

logger = logging.getLogger(__name__)


class TenantSettingsService:
    def __init__(self, repository: SettingsRepository) -> None:
        self._repository = repository

    def get(self, tenant_id: str) -> TenantSettings:
        return self._repository.get(tenant_id)

    def update(self, tenant_id: str, changes: dict[str, Any]) -> TenantSettings:
        current = self._repository.get(tenant_id).model_dump()
        known = {key: value for key, value in changes.items() if key in TenantSettings.model_fields}
        settings = build(TenantSettings, **{**current, **known})
        self._repository.save(tenant_id, settings)
        logger.info("settings updated for %s: %s", tenant_id, sorted(known))
        return settings

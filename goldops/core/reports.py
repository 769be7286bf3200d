from __future__ import annotations

import os
from pathlib import Path


def _base_root() -> Path:
    env_root = os.getenv("GOLDOPS_REPORTS_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path(__file__).resolve().parents[2] / "reports"


def ensure_report_dir(tenant_id: str) -> Path:
    """Ensure the tenant's export folder exists and return it."""

    root = _base_root() / Path(tenant_id).name
    root.mkdir(parents=True, exist_ok=True)
    return root

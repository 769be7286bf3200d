from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from goldops.core.schema import TenantSettings

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


class AppConfig(BaseModel):
    """Static configuration loaded once at process start."""

    max_windows_per_staff: int = Field(default=10, ge=1)
    tenant: TenantSettings = Field(default_factory=TenantSettings)


def _config_path(path: Path | str | None) -> Path:
    if path is not None:
        return Path(path).expanduser()
    env_path = os.getenv("GOLDOPS_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return CONFIG_DIR / "defaults.yaml"


def load_config(path: Path | str | None = None) -> AppConfig:
    target = _config_path(path)
    if not target.exists():
        return AppConfig()
    with target.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    return AppConfig(**data)

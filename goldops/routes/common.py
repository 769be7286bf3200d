from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import Request
from pydantic import BaseModel

from goldops.application import ServiceContainer
from goldops.core.errors import ValidationFailed
from goldops.core.validation import to_balance, to_decimal


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def ok(data: Any = None) -> dict:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    elif isinstance(data, (list, tuple)):
        data = [item.model_dump() if isinstance(item, BaseModel) else item for item in data]
    return {"success": True, "data": data}


def require(payload: dict, key: str) -> Any:
    value = payload.get(key)
    if value is None or value == "":
        raise ValidationFailed(f"{key} is required")
    return value


def optional_decimal(payload: dict, key: str) -> Decimal | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    return to_decimal(value, key)


def required_decimal(payload: dict, key: str) -> Decimal:
    return to_decimal(require(payload, key), key)


def optional_balance(payload: dict, key: str) -> int | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    return to_balance(value, key)


def id_list(payload: dict, key: str) -> list[str]:
    value = payload.get(key) or []
    if not isinstance(value, (list, tuple)):
        raise ValidationFailed(f"{key} must be a list")
    return [str(item) for item in value if item]


def flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from goldops.core.errors import ValidationFailed

ModelT = TypeVar("ModelT", bound=BaseModel)


def build(model: type[ModelT], **data: Any) -> ModelT:
    """Construct ``model`` and report schema violations as :class:`ValidationFailed`."""

    try:
        return model(**data)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        raise ValidationFailed(message) from exc


def to_decimal(value: Any, field: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationFailed(f"{field} must be a number") from exc
    if not result.is_finite():
        raise ValidationFailed(f"{field} must be a finite number")
    return result


def to_balance(value: Any, field: str) -> int:
    """Parse a raw window balance, which must be a non-negative whole number of units."""

    amount = to_decimal(value, field)
    if amount != amount.to_integral_value():
        raise ValidationFailed(f"{field} must be a whole number of units")
    if amount < 0:
        raise ValidationFailed(f"{field} cannot be negative")
    return int(amount)

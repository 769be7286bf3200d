"""Conversions between raw window balances and human-facing quantities.

Balances are stored as integer base units.  Orders, ledger entries and reports
speak in "wan" (10,000 base units).  Nothing else in the code base should
multiply or divide by :data:`WAN`.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

WAN = 10_000
THOUSAND = Decimal("1000")


def to_wan(units: int | Decimal) -> Decimal:
    """Convert base units into wan."""

    return Decimal(units) / WAN


def from_wan(wan: Decimal | int | float | str) -> int:
    """Convert wan into base units, rounding half-up to a whole unit."""

    value = Decimal(str(wan)) * WAN
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def per_thousand_wan(wan: Decimal) -> Decimal:
    """Express a wan quantity in the "per 1000 wan" pricing unit."""

    return wan / THOUSAND


def _group_digits(integer_part: str) -> str:
    groups: list[str] = []
    while len(integer_part) > 4:
        groups.insert(0, integer_part[-4:])
        integer_part = integer_part[:-4]
    groups.insert(0, integer_part)
    return ",".join(groups)


def format_wan(units: int) -> str:
    """Render a balance as ``"1,2345.5 万"`` (digits grouped by four)."""

    wan = to_wan(units)
    if wan == wan.to_integral_value():
        text = str(int(wan))
    else:
        text = str(wan.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    sign = ""
    if text.startswith("-"):
        sign, text = "-", text[1:]
    integer_part, _, fraction = text.partition(".")
    fraction = fraction.rstrip("0")
    grouped = _group_digits(integer_part)
    if fraction:
        grouped = f"{grouped}.{fraction}"
    return f"{sign}{grouped} 万"

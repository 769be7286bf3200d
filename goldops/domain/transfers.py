"""Transfer request payload variants.

The HTTP layer resolves the incoming body into exactly one of these variants;
services never inspect raw payload shapes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(slots=True, frozen=True)
class SingleWindow:
    """Hand over one unassigned window."""

    window_id: str


@dataclass(slots=True, frozen=True)
class WholeMachine:
    """Hand over every unassigned window of one or more machines."""

    machine_ids: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class LegacyUngrouped:
    """A flat list of windows; grouping is derived from each window's machine."""

    window_ids: tuple[str, ...]


TransferPayload = Union[SingleWindow, WholeMachine, LegacyUngrouped]


@dataclass(slots=True)
class MachineGroup:
    """Windows that originate from the same source machine."""

    machine_id: str
    window_ids: list[str] = field(default_factory=list)


def _as_ids(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(dict.fromkeys(str(item) for item in value if item))
    if value:
        return (str(value),)
    return ()


def parse_transfer_payload(body: dict[str, Any]) -> TransferPayload | None:
    """Pick the payload variant described by ``body``; ``None`` if none applies."""

    machine_ids = _as_ids(body.get("machine_ids") or body.get("machine_id"))
    if machine_ids:
        return WholeMachine(machine_ids=machine_ids)
    window_ids = _as_ids(body.get("window_ids"))
    if window_ids:
        return LegacyUngrouped(window_ids=window_ids)
    window_id = body.get("window_id")
    if window_id:
        return SingleWindow(window_id=str(window_id))
    return None

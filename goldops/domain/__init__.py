"""Domain layer definitions."""

from .transfers import (
    LegacyUngrouped,
    MachineGroup,
    SingleWindow,
    TransferPayload,
    WholeMachine,
    parse_transfer_payload,
)

__all__ = [
    "LegacyUngrouped",
    "MachineGroup",
    "SingleWindow",
    "TransferPayload",
    "WholeMachine",
    "parse_transfer_payload",
]

"""Error taxonomy shared by services and the HTTP layer."""
from __future__ import annotations

from typing import Any


class GoldOpsError(Exception):
    """Base class for errors reported back to callers as failure envelopes."""

    code = "error"
    status_code = 400

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationFailed(GoldOpsError):
    """Missing or malformed input; nothing was mutated."""

    code = "validation"
    status_code = 400


class BusinessRuleViolation(GoldOpsError):
    """The request is well formed but not allowed in the current state."""

    code = "business_rule"
    status_code = 409


class NotFound(GoldOpsError):
    code = "not_found"
    status_code = 404


class ConfirmationRequired(GoldOpsError):
    """The operation is permitted only after the caller explicitly confirms it."""

    code = "confirmation_required"
    status_code = 409


class UpstreamUnavailable(GoldOpsError):
    """A dependent service failed or answered with a failure envelope."""

    code = "upstream_unavailable"
    status_code = 502

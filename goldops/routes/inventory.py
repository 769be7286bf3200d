from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from goldops.application import ServiceContainer
from goldops.core.errors import ValidationFailed
from goldops.core.validation import to_balance

from .common import (
    flag,
    get_container,
    ok,
    optional_balance,
    optional_decimal,
    require,
    required_decimal,
)

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["inventory"])


# ----------------------------------------------------------------------
# machines
# ----------------------------------------------------------------------
@router.post("/machines")
async def purchase_machine(tenant_id: str, payload: dict, container: ServiceContainer = Depends(get_container)) -> dict:
    windows = payload.get("windows") or []
    if not isinstance(windows, list):
        raise ValidationFailed("windows must be a list")
    machine, created = container.windows.purchase_machine(
        tenant_id,
        phone=str(require(payload, "phone")),
        platform=str(require(payload, "platform")),
        windows=[item for item in windows if isinstance(item, dict)],
        cost=optional_decimal(payload, "cost"),
        date=payload.get("date"),
        login_type=str(payload.get("login_type") or "code"),
        login_password=payload.get("login_password"),
    )
    return ok({"machine": machine.model_dump(), "windows": [window.model_dump() for window in created]})


@router.get("/machines")
async def list_machines(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.windows.list_machines(tenant_id))


@router.delete("/machines/{machine_id}")
async def delete_machine(tenant_id: str, machine_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    removed = container.windows.delete_machine(tenant_id, machine_id)
    return ok({"machine_id": machine_id, "windows_removed": removed})


@router.post("/machines/{machine_id}/windows")
async def add_window(
    tenant_id: str,
    machine_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    window = container.windows.create(
        tenant_id,
        machine_id,
        str(require(payload, "window_number")),
        to_balance(payload.get("gold_balance", 0), "gold_balance"),
        staff_id=payload.get("staff_id"),
    )
    return ok(window)


# ----------------------------------------------------------------------
# windows
# ----------------------------------------------------------------------
@router.get("/windows")
async def list_windows(
    tenant_id: str,
    staff_id: str | None = Query(default=None),
    machine_id: str | None = Query(default=None),
    free: bool = Query(default=False),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    windows = container.windows.list_windows(tenant_id, staff_id=staff_id, machine_id=machine_id, free_only=free)
    return ok(windows)


@router.post("/windows/{window_id}/assign")
async def assign_window(
    tenant_id: str,
    window_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return ok(container.windows.assign(tenant_id, window_id, payload.get("staff_id") or None))


@router.post("/windows/{window_id}/balance")
async def set_window_balance(
    tenant_id: str,
    window_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    balance = optional_balance(payload, "gold_balance")
    if balance is None:
        raise ValidationFailed("gold_balance is required")
    return ok(container.windows.adjust_balance(tenant_id, window_id, balance))


@router.post("/windows/{window_id}/recharge")
async def recharge_window(
    tenant_id: str,
    window_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    record = container.windows.recharge(
        tenant_id,
        window_id,
        to_balance(require(payload, "amount"), "amount"),
        cost=optional_decimal(payload, "cost"),
        operator=payload.get("operator"),
        date=payload.get("date"),
    )
    return ok(record)


@router.get("/windows/{window_id}/recharges")
async def list_recharges(tenant_id: str, window_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.windows.list_recharges(tenant_id, window_id))


@router.delete("/windows/{window_id}")
async def delete_window(tenant_id: str, window_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    container.windows.delete(tenant_id, window_id)
    return ok({"window_id": window_id})


# ----------------------------------------------------------------------
# purchases
# ----------------------------------------------------------------------
@router.get("/purchases")
async def list_purchases(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.cost.entries(tenant_id))


@router.post("/purchases")
async def record_purchase(tenant_id: str, payload: dict, container: ServiceContainer = Depends(get_container)) -> dict:
    entry = container.cost.record_purchase(
        tenant_id,
        required_decimal(payload, "amount"),
        required_decimal(payload, "cost"),
        date=payload.get("date"),
        note=payload.get("note"),
    )
    return ok(entry)


@router.delete("/purchases/{entry_id}")
async def delete_purchase(tenant_id: str, entry_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    container.cost.delete_purchase(tenant_id, entry_id)
    return ok({"entry_id": entry_id})


# ----------------------------------------------------------------------
# staff window requests
# ----------------------------------------------------------------------
@router.get("/window-requests")
async def list_window_requests(
    tenant_id: str,
    status: str | None = Query(default=None),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return ok(container.windows.list_requests(tenant_id, status))


@router.post("/window-requests")
async def submit_window_request(
    tenant_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    request_type = str(require(payload, "type"))
    if request_type not in {"apply", "release"}:
        raise ValidationFailed("type must be apply or release")
    request = container.windows.submit_request(
        tenant_id,
        str(require(payload, "staff_id")),
        request_type,
        str(require(payload, "window_id")),
        note=payload.get("note"),
    )
    return ok(request)


@router.post("/window-requests/{request_id}/process")
async def process_window_request(
    tenant_id: str,
    request_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    if "approve" not in payload:
        raise ValidationFailed("approve is required")
    request = container.windows.process_request(
        tenant_id,
        request_id,
        approve=flag(payload["approve"]),
        operator=payload.get("operator"),
    )
    return ok(request)


@router.get("/staff")
async def list_staff(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    staff = container.directory.list_staff(tenant_id)
    return ok([{"id": staff_id, "name": name} for staff_id, name in sorted(staff.items())])

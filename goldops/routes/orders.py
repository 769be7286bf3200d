from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from goldops.application import ServiceContainer
from goldops.core.errors import ValidationFailed

from .common import flag, get_container, id_list, ok, optional_balance, optional_decimal, require, required_decimal

router = APIRouter(prefix="/tenants/{tenant_id}/orders", tags=["orders"])


@router.post("")
async def dispatch_order(tenant_id: str, payload: dict, container: ServiceContainer = Depends(get_container)) -> dict:
    order = container.orders.dispatch(
        tenant_id,
        staff_id=str(require(payload, "staff_id")),
        window_ids=id_list(payload, "window_ids"),
        amount=required_decimal(payload, "amount"),
        date=payload.get("date"),
        unit_price=optional_decimal(payload, "unit_price"),
        fee_percent=optional_decimal(payload, "fee_percent"),
    )
    return ok(order)


@router.get("")
async def list_orders(
    tenant_id: str,
    status: str | None = Query(default=None),
    staff_id: str | None = Query(default=None),
    date: str | None = Query(default=None),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return ok(container.orders.list_orders(tenant_id, status=status, staff_id=staff_id, date=date))


@router.get("/{order_id}")
async def get_order(tenant_id: str, order_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.orders.get(tenant_id, order_id))


@router.post("/{order_id}/pause")
async def pause_order(
    tenant_id: str,
    order_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return ok(container.orders.pause(tenant_id, order_id, required_decimal(payload, "completed_amount")))


@router.post("/{order_id}/resume")
async def resume_order(
    tenant_id: str,
    order_id: str,
    payload: dict | None = None,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    staff_id = (payload or {}).get("staff_id") or None
    return ok(container.orders.resume(tenant_id, order_id, staff_id))


@router.post("/{order_id}/release-window")
async def release_window(
    tenant_id: str,
    order_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    order = container.orders.release_window(
        tenant_id,
        order_id,
        str(require(payload, "window_id")),
        optional_balance(payload, "end_balance"),
    )
    return ok(order)


@router.post("/{order_id}/complete")
async def complete_order(
    tenant_id: str,
    order_id: str,
    payload: dict | None = None,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    payload = payload or {}
    raw = payload.get("end_balances") or {}
    if not isinstance(raw, dict):
        raise ValidationFailed("end_balances must be an object keyed by window id")
    order = container.orders.complete(tenant_id, order_id, raw, confirm=flag(payload.get("confirm")))
    return ok(order)


@router.delete("/{order_id}")
async def delete_order(tenant_id: str, order_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    container.orders.delete(tenant_id, order_id)
    return ok({"order_id": order_id})

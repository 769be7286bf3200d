from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from goldops.application import ServiceContainer
from goldops.core.errors import ValidationFailed
from goldops.domain import SingleWindow, parse_transfer_payload

from .common import flag, get_container, ok, optional_decimal, require

router = APIRouter(tags=["transfers"])


def _request(payload: dict, container: ServiceContainer, *, machines: bool) -> dict:
    transfer_payload = parse_transfer_payload(payload)
    if machines and isinstance(transfer_payload, SingleWindow):
        transfer_payload = None
    if not machines and transfer_payload is not None and not isinstance(transfer_payload, SingleWindow):
        raise ValidationFailed("use /transfers/machines to transfer several windows or whole machines")
    transfer = container.transfers.request(
        str(require(payload, "from_tenant_id")),
        str(require(payload, "to_tenant_id")),
        transfer_payload,
        price=optional_decimal(payload, "price"),
    )
    return ok(transfer)


@router.post("/transfers/windows")
async def request_window_transfer(payload: dict, container: ServiceContainer = Depends(get_container)) -> dict:
    return _request(payload, container, machines=False)


@router.post("/transfers/machines")
async def request_machine_transfer(payload: dict, container: ServiceContainer = Depends(get_container)) -> dict:
    return _request(payload, container, machines=True)


@router.post("/transfers/{transfer_id}/respond")
async def respond_transfer(
    transfer_id: str,
    payload: dict,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    if "accept" not in payload:
        raise ValidationFailed("accept is required")
    transfer = container.transfers.respond(
        str(require(payload, "tenant_id")),
        transfer_id,
        accept=flag(payload["accept"]),
    )
    return ok(transfer)


@router.delete("/transfers/{transfer_id}")
async def cancel_transfer(
    transfer_id: str,
    tenant_id: str = Query(...),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    container.transfers.cancel(tenant_id, transfer_id)
    return ok({"transfer_id": transfer_id})


@router.get("/tenants/{tenant_id}/transfers/received")
async def received_transfers(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.transfers.received(tenant_id))


@router.get("/tenants/{tenant_id}/transfers/sent")
async def sent_transfers(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.transfers.sent(tenant_id))

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from goldops.application import ServiceContainer

from .common import get_container, ok

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["reports"])

MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@router.get("/cost")
async def cost_summary(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.cost.summary(tenant_id))


@router.get("/settlement")
async def settlement(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.settlement.report(tenant_id))


@router.get("/staff-stats")
async def staff_stats(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.settlement.staff_stats(tenant_id))


@router.get("/settlement/export")
async def export_settlement(
    tenant_id: str,
    fmt: str = Query(default="csv", alias="format"),
    container: ServiceContainer = Depends(get_container),
) -> FileResponse:
    path = container.settlement.export(tenant_id, fmt)
    return FileResponse(path, media_type=MEDIA_TYPES[path.suffix.lstrip(".")], filename=path.name)


@router.get("/settings")
async def get_settings(tenant_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.settings.get(tenant_id))


@router.put("/settings")
async def update_settings(tenant_id: str, payload: dict, container: ServiceContainer = Depends(get_container)) -> dict:
    return ok(container.settings.update(tenant_id, payload))

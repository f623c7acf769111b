from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.api import deps
from bellwright.db.session import get_db
from bellwright.schemas.admin import (
    AdminListResponse,
    AdminStatus,
    AdminUserOut,
    SuperAdminDashboard,
)
from bellwright.services import admin_registrations, dashboard
from bellwright.services.identity import CallerIdentity

router = APIRouter(prefix="/superadmin", tags=["superadmin"])


@router.get("/dashboard", response_model=SuperAdminDashboard)
async def read_dashboard(
    caller: CallerIdentity = Depends(deps.require_superadmin),
    db: AsyncSession = Depends(get_db),
) -> SuperAdminDashboard:
    return await dashboard.superadmin_dashboard(db, caller)


@router.get("/admins", response_model=AdminListResponse)
async def list_admins(
    status_filter: Optional[AdminStatus] = Query(default=None, alias="status"),
    caller: CallerIdentity = Depends(deps.require_superadmin),
    db: AsyncSession = Depends(get_db),
) -> AdminListResponse:
    rows = await admin_registrations.list_admins(db, caller, status_filter)
    items = [AdminUserOut.model_validate(row) for row in rows]
    return AdminListResponse(items=items, total=len(items))


@router.post("/admins/{admin_id}/approve", response_model=AdminUserOut)
async def approve_admin(
    admin_id: UUID,
    caller: CallerIdentity = Depends(deps.require_superadmin),
    db: AsyncSession = Depends(get_db),
) -> AdminUserOut:
    grant = await admin_registrations.decide_admin(db, caller, admin_id, AdminStatus.APPROVED)
    return AdminUserOut.model_validate(grant)


@router.post("/admins/{admin_id}/reject", response_model=AdminUserOut)
async def reject_admin(
    admin_id: UUID,
    caller: CallerIdentity = Depends(deps.require_superadmin),
    db: AsyncSession = Depends(get_db),
) -> AdminUserOut:
    grant = await admin_registrations.decide_admin(db, caller, admin_id, AdminStatus.REJECTED)
    return AdminUserOut.model_validate(grant)

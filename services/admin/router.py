"""
services/admin/router.py
SUPER_ADMIN-only endpoints: admin accounts and the immutable audit log.

All mutations are recorded to AdminAuditLog once the request commits.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.admin.service import AdminDirectory
from shared.middleware.policy import Guard
from shared.models.models import Admin, AuditOutcome
from shared.schemas.schemas import (
    AdminCreate,
    AdminResponse,
    AdminUpdate,
    AuditLogResponse,
    MessageResponse,
    Page,
)
from shared.utils.audit import AuditLogger, get_audit_logger
from shared.utils.pagination import PageParams, page_params

router = APIRouter(prefix="/admins", tags=["Admin"])


def get_admin_directory(
    db: AsyncSession = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
) -> AdminDirectory:
    return AdminDirectory(db, audit)


@router.get("", response_model=Page[AdminResponse])
async def list_admins(
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("list_admins")),
    directory: AdminDirectory = Depends(get_admin_directory),
):
    """Admins holding the ADMIN role, newest first."""
    return await directory.list_admins(params)


@router.post("", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    data: AdminCreate,
    actor: Admin = Depends(Guard("create_admin")),
    directory: AdminDirectory = Depends(get_admin_directory),
):
    return await directory.create_admin(
        actor,
        name=data.name,
        email=data.email,
        phone_no=data.phone_no,
        password=data.password,
        role_id=data.role_id,
        department=data.department,
    )


# ── Audit Log ─────────────────────────────────────────────────

@router.get("/audit-logs", response_model=Page[AuditLogResponse])
async def list_audit_logs(
    params: PageParams = Depends(page_params),
    admin_id: Optional[UUID] = Query(None, alias="adminId"),
    action: Optional[str] = None,
    outcome: Optional[AuditOutcome] = None,
    actor: Admin = Depends(Guard("list_audit_logs")),
    directory: AdminDirectory = Depends(get_admin_directory),
):
    """Immutable admin action log, newest first. Filterable by admin, action and outcome."""
    return await directory.list_audit_logs(params, admin_id, action, outcome)


@router.patch("/{admin_id}", response_model=AdminResponse)
async def update_admin(
    admin_id: UUID,
    data: AdminUpdate,
    actor: Admin = Depends(Guard("update_admin")),
    directory: AdminDirectory = Depends(get_admin_directory),
):
    return await directory.update_admin(actor, admin_id, **data.model_dump(exclude_unset=True))


@router.delete("/{admin_id}", response_model=MessageResponse)
async def delete_admin(
    admin_id: UUID,
    actor: Admin = Depends(Guard("delete_admin")),
    directory: AdminDirectory = Depends(get_admin_directory),
):
    return {"message": await directory.delete_admin(actor, admin_id)}

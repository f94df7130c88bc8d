"""
services/access/router.py
Permission and role management. Writes are SUPER_ADMIN only.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.access.service import AccessService
from shared.middleware.policy import Guard
from shared.models.models import Admin
from shared.schemas.schemas import (
    AssignPermissionsRequest,
    MessageResponse,
    PermissionCreate,
    PermissionResponse,
    PermissionUpdate,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from shared.utils.audit import AuditLogger, get_audit_logger

router = APIRouter(tags=["Access Control"])


def get_access_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
) -> AccessService:
    return AccessService(db, audit)


# ── Permissions ───────────────────────────────────────────────

@router.get("/permissions", response_model=List[PermissionResponse])
async def list_permissions(
    actor: Admin = Depends(Guard("list_permissions")),
    service: AccessService = Depends(get_access_service),
):
    """All permissions, newest first."""
    return await service.list_permissions()


@router.post("/permissions", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    data: PermissionCreate,
    actor: Admin = Depends(Guard("create_permission")),
    service: AccessService = Depends(get_access_service),
):
    return await service.create_permission(actor, data.name, data.description)


@router.patch("/permissions/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: UUID,
    data: PermissionUpdate,
    actor: Admin = Depends(Guard("update_permission")),
    service: AccessService = Depends(get_access_service),
):
    return await service.update_permission(actor, permission_id, data.name, data.description)


@router.delete("/permissions/{permission_id}", response_model=MessageResponse)
async def delete_permission(
    permission_id: UUID,
    actor: Admin = Depends(Guard("delete_permission")),
    service: AccessService = Depends(get_access_service),
):
    """Refused while any role still carries the permission."""
    return {"message": await service.delete_permission(actor, permission_id)}


# ── Roles ─────────────────────────────────────────────────────

@router.get("/roles", response_model=List[RoleResponse])
async def list_roles(
    actor: Admin = Depends(Guard("list_roles")),
    service: AccessService = Depends(get_access_service),
):
    return await service.list_roles()


@router.post("/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    actor: Admin = Depends(Guard("create_role")),
    service: AccessService = Depends(get_access_service),
):
    """
    Create a role with an initial permission set.
    Nothing is written if any permission id is unknown.
    """
    return await service.create_role(actor, data.name, data.description, data.permission_ids)


@router.patch("/roles/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: UUID,
    data: RoleUpdate,
    actor: Admin = Depends(Guard("update_role")),
    service: AccessService = Depends(get_access_service),
):
    """Passing permissionIds replaces the role's whole permission set."""
    return await service.update_role(
        actor, role_id, data.name, data.description, data.permission_ids
    )


@router.delete("/roles/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: UUID,
    actor: Admin = Depends(Guard("delete_role")),
    service: AccessService = Depends(get_access_service),
):
    return {"message": await service.delete_role(actor, role_id)}


@router.post("/roles/{role_id}/permissions", response_model=RoleResponse)
async def assign_permissions_to_role(
    role_id: UUID,
    data: AssignPermissionsRequest,
    actor: Admin = Depends(Guard("assign_permissions_to_role")),
    service: AccessService = Depends(get_access_service),
):
    """Idempotent: permissions the role already has are left alone."""
    return await service.assign_permissions_to_role(actor, role_id, data.permission_ids)

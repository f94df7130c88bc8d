"""
services/user/router.py
End-user moderation for ADMIN staff: listing, search, profile edits, soft delete.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.user.service import UserService
from shared.middleware.policy import Guard
from shared.models.models import Admin
from shared.schemas.schemas import MessageResponse, Page, UserResponse, UserUpdate
from shared.utils.audit import AuditLogger, get_audit_logger
from shared.utils.pagination import PageParams, page_params

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
) -> UserService:
    return UserService(db, audit)


@router.get("", response_model=Page[UserResponse])
async def list_users(
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("list_users")),
    service: UserService = Depends(get_user_service),
):
    """All users, newest first. Soft-deleted users are included and flagged."""
    return await service.list_users(params)


@router.get("/search", response_model=Page[UserResponse])
async def search_users(
    query: Optional[str] = Query(None, max_length=100),
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("search_users")),
    service: UserService = Depends(get_user_service),
):
    return await service.search_users(params, query)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    actor: Admin = Depends(Guard("update_user")),
    service: UserService = Depends(get_user_service),
):
    """Only fields present in the body are changed."""
    return await service.update_user(actor, user_id, **data.model_dump(exclude_none=True))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: UUID,
    actor: Admin = Depends(Guard("delete_user")),
    service: UserService = Depends(get_user_service),
):
    """Soft delete: the user is deactivated and flagged, never removed."""
    return {"message": await service.delete_user(actor, user_id)}

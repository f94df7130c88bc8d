"""
services/auth/router.py
Admin authentication: email/password login, refresh-token rotation, logout, /me.

Flow:
  1. POST /auth/login with email + password -> access JWT (15 min) + refresh token (7 days)
  2. POST /auth/refresh with the refresh token -> new pair, old refresh token dead
  3. POST /auth/logout -> refresh token cleared, access JWT deny-listed in Redis
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import TokenDenyList, get_redis
from services.auth.service import AdminAuthService
from shared.middleware.auth import get_access_token_payload
from shared.middleware.policy import Guard
from shared.models.models import Admin
from shared.schemas.schemas import (
    AdminAuthResponse,
    AdminLoginRequest,
    AdminResponse,
    MessageResponse,
    RefreshTokenRequest,
)
from shared.utils.audit import AuditLogger, get_audit_logger

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
) -> AdminAuthService:
    return AdminAuthService(db, audit)


@router.post("/login", response_model=AdminAuthResponse, summary="Admin login")
async def login(
    data: AdminLoginRequest,
    service: AdminAuthService = Depends(get_auth_service),
):
    return await service.login(data.email, data.password)


@router.post("/refresh", response_model=AdminAuthResponse, summary="Rotate tokens")
async def refresh_token(
    data: RefreshTokenRequest,
    service: AdminAuthService = Depends(get_auth_service),
):
    """
    Issue a new access/refresh pair for a valid refresh token.
    Implements refresh token rotation: the presented token is revoked.
    """
    return await service.refresh(data.refresh_token)


@router.post("/logout", response_model=MessageResponse, summary="Logout admin")
async def logout(
    actor: Admin = Depends(Guard("logout_admin")),
    payload: Optional[dict] = Depends(get_access_token_payload),
    redis=Depends(get_redis),
    service: AdminAuthService = Depends(get_auth_service),
):
    return {"message": await service.logout(actor, payload, TokenDenyList(redis))}


@router.get("/me", response_model=AdminResponse, summary="Get current admin")
async def get_me(actor: Admin = Depends(Guard("current_admin"))):
    """Returns the authenticated admin's profile and role."""
    return actor

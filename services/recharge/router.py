"""
services/recharge/router.py
Recharge pack catalogue. Any admin can read it; SUPER_ADMIN and ADMIN manage it.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.recharge.service import RechargePackService
from shared.middleware.policy import Guard
from shared.models.models import Admin
from shared.schemas.schemas import (
    MessageResponse,
    RechargePackCreate,
    RechargePackResponse,
    RechargePackUpdate,
)
from shared.utils.audit import AuditLogger, get_audit_logger

router = APIRouter(prefix="/recharge-packs", tags=["Recharge Packs"])


def get_recharge_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
) -> RechargePackService:
    return RechargePackService(db, audit)


@router.get("", response_model=List[RechargePackResponse])
async def list_recharge_packs(
    actor: Admin = Depends(Guard("list_recharge_packs")),
    service: RechargePackService = Depends(get_recharge_service),
):
    return await service.list_packs()


@router.post("", response_model=RechargePackResponse, status_code=status.HTTP_201_CREATED)
async def create_recharge_pack(
    data: RechargePackCreate,
    actor: Admin = Depends(Guard("create_recharge_pack")),
    service: RechargePackService = Depends(get_recharge_service),
):
    return await service.create_pack(actor, data.model_dump())


@router.patch("/{pack_id}", response_model=RechargePackResponse)
async def update_recharge_pack(
    pack_id: UUID,
    data: RechargePackUpdate,
    actor: Admin = Depends(Guard("update_recharge_pack")),
    service: RechargePackService = Depends(get_recharge_service),
):
    return await service.update_pack(actor, pack_id, **data.model_dump(exclude_none=True))


@router.delete("/{pack_id}", response_model=MessageResponse)
async def delete_recharge_pack(
    pack_id: UUID,
    actor: Admin = Depends(Guard("delete_recharge_pack")),
    service: RechargePackService = Depends(get_recharge_service),
):
    return {"message": await service.delete_pack(actor, pack_id)}

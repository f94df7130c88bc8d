"""
services/astrologer/router.py
Astrologer records (SUPER_ADMIN / MANAGER) and the admin review queues.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.astrologer.service import AstrologerStore, SortField, SortOrder
from shared.middleware.policy import Guard
from shared.models.models import Admin
from shared.schemas.schemas import (
    AstrologerCreate,
    AstrologerResponse,
    AstrologerUpdate,
    DocumentResponse,
    InterviewResponse,
    MessageResponse,
    Page,
)
from shared.utils.audit import AuditLogger, get_audit_logger
from shared.utils.pagination import PageParams, page_params

router = APIRouter(prefix="/astrologers", tags=["Astrologers"])


def get_astrologer_store(
    db: AsyncSession = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
) -> AstrologerStore:
    return AstrologerStore(db, audit)


# ── Queues & Search ───────────────────────────────────────────

@router.get("/search", response_model=Page[AstrologerResponse])
async def search_astrologers(
    query: Optional[str] = Query(None, max_length=100),
    sort_field: Optional[SortField] = Query(None, alias="sortField"),
    sort_order: Optional[SortOrder] = Query(None, alias="sortOrder"),
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("search_astrologers")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    """
    Search by name, skill or language.
    sortField: EXPERIENCE | PRICE | RATING, sortOrder: ASC | DESC (default DESC).
    Without sortField results are newest first.
    """
    return await store.search(params, query, sort_field, sort_order)


@router.get("/pending", response_model=Page[AstrologerResponse])
async def list_pending_astrologers(
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("list_pending_astrologers")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    """Astrologers still in onboarding (PENDING, INTERVIEW, DOCUMENT_VERIFICATION)."""
    return await store.list_pending(params)


@router.get("/approved", response_model=Page[AstrologerResponse])
async def list_approved_astrologers(
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("list_approved_astrologers")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    return await store.list_approved(params)


@router.get("/registered", response_model=Page[AstrologerResponse])
async def list_registered_astrologers(
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("list_registered_astrologers")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    """Every astrologer regardless of status."""
    return await store.list_registered(params)


@router.get("/{astrologer_id}/interviews", response_model=Page[InterviewResponse])
async def list_astrologer_interviews(
    astrologer_id: UUID,
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("list_astrologer_interviews")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    """Interview rounds in round order."""
    return await store.list_interviews(astrologer_id, params)


@router.get("/{astrologer_id}/documents", response_model=Page[DocumentResponse])
async def list_astrologer_documents(
    astrologer_id: UUID,
    params: PageParams = Depends(page_params),
    actor: Admin = Depends(Guard("list_astrologer_documents")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    return await store.list_documents(astrologer_id, params)


# ── Records ───────────────────────────────────────────────────

@router.post("", response_model=AstrologerResponse, status_code=status.HTTP_201_CREATED)
async def add_astrologer(
    data: AstrologerCreate,
    actor: Admin = Depends(Guard("add_astrologer")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    """New astrologers always start PENDING."""
    return await store.add_astrologer(actor, data.model_dump())


@router.patch("/{astrologer_id:uuid}", response_model=AstrologerResponse)
async def update_astrologer(
    astrologer_id: UUID,
    data: AstrologerUpdate,
    actor: Admin = Depends(Guard("update_astrologer")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    return await store.update_astrologer(actor, astrologer_id, **data.model_dump(exclude_none=True))


@router.delete("/{astrologer_id:uuid}", response_model=MessageResponse)
async def delete_astrologer(
    astrologer_id: UUID,
    actor: Admin = Depends(Guard("delete_astrologer")),
    store: AstrologerStore = Depends(get_astrologer_store),
):
    return {"message": await store.delete_astrologer(actor, astrologer_id)}

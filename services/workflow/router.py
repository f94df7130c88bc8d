"""
services/workflow/router.py
Approval workflow endpoints for ADMIN staff: interviews, documents, approve/reject.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.workflow.service import ApprovalWorkflow
from shared.middleware.policy import Guard
from shared.models.models import Admin
from shared.schemas.schemas import (
    AstrologerResponse,
    DocumentResponse,
    DocumentUpload,
    DocumentVerifyRequest,
    InterviewCreate,
    InterviewResponse,
    InterviewResultUpdate,
    RejectAstrologerRequest,
)
from shared.utils.audit import AuditLogger, get_audit_logger

router = APIRouter(prefix="/astrologers", tags=["Approval Workflow"])


def get_workflow(
    db: AsyncSession = Depends(get_db),
    audit: AuditLogger = Depends(get_audit_logger),
) -> ApprovalWorkflow:
    return ApprovalWorkflow(db, audit)


# ── Interviews ────────────────────────────────────────────────

@router.post(
    "/{astrologer_id}/interviews",
    response_model=InterviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def schedule_interview(
    astrologer_id: UUID,
    data: InterviewCreate,
    actor: Admin = Depends(Guard("schedule_interview")),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """
    Book an interview round and move the astrologer to INTERVIEW.
    Each round number can be booked once per astrologer.
    """
    return await workflow.schedule_interview(
        actor, astrologer_id, data.round_number, data.interviewer_name, data.scheduled_at
    )


@router.patch("/interviews/{interview_id}", response_model=InterviewResponse)
async def record_interview_result(
    interview_id: int,
    data: InterviewResultUpdate,
    actor: Admin = Depends(Guard("record_interview_result")),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    return await workflow.record_interview_result(actor, interview_id, data.status, data.remarks)


# ── Documents ─────────────────────────────────────────────────

@router.post(
    "/{astrologer_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document(
    astrologer_id: UUID,
    data: DocumentUpload,
    actor: Admin = Depends(Guard("upload_document")),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Register an uploaded document URL. One document per type."""
    return await workflow.upload_document(actor, astrologer_id, data.document_type, data.document_url)


@router.post("/documents/{document_id}/verify", response_model=DocumentResponse)
async def verify_document(
    document_id: int,
    data: DocumentVerifyRequest,
    actor: Admin = Depends(Guard("verify_document")),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    return await workflow.verify_document(actor, document_id, data.status, data.remarks)


# ── Decisions ─────────────────────────────────────────────────

@router.post("/{astrologer_id}/approve", response_model=AstrologerResponse)
async def approve_astrologer(
    astrologer_id: UUID,
    actor: Admin = Depends(Guard("approve_astrologer")),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    return await workflow.approve_astrologer(actor, astrologer_id)


@router.post("/{astrologer_id}/reject", response_model=AstrologerResponse)
async def reject_astrologer(
    astrologer_id: UUID,
    data: RejectAstrologerRequest,
    actor: Admin = Depends(Guard("reject_astrologer")),
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Stage is one of PROFILE, INTERVIEW, DOCUMENT. Every rejection is kept in history."""
    return await workflow.reject_astrologer(actor, astrologer_id, data.stage, data.reason)

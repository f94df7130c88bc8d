"""
services/workflow/service.py
Astrologer approval workflow.

    PENDING ──schedule_interview──▶ INTERVIEW ──approve──▶ APPROVED
       │                                │
       └────────────reject──────────────┴──────────────▶ REJECTED (+ history row)

Transitions are deliberately permissive: scheduling always moves to
INTERVIEW and approve/reject apply from any state. Nothing moves an
astrologer back to PENDING. Each operation is a single flush inside the
request transaction, so the status change and its child row land together.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select

from shared.errors import AlreadyExists, ValidationFailed
from shared.models.models import (
    Admin,
    ApprovalStatus,
    Astrologer,
    AstrologerDocument,
    AstrologerRejectionHistory,
    DocumentStatus,
    DocumentType,
    Interview,
    InterviewStatus,
    RejectionStage,
)
from shared.utils.base_service import BaseService

logger = logging.getLogger(__name__)


class ApprovalWorkflow(BaseService):

    async def _astrologer(self, astrologer_id: uuid.UUID) -> Astrologer:
        return await self._get_or_404(Astrologer, astrologer_id, "Astrologer not found")

    def _transition(self, astrologer: Astrologer, new_status: ApprovalStatus, actor: Admin) -> None:
        old_status = astrologer.approval_status
        astrologer.approval_status = new_status
        logger.info(
            f"Astrologer {astrologer.id}: {getattr(old_status, 'value', old_status)} "
            f"-> {new_status.value} by {actor.id}"
        )

    # ── Interviews ────────────────────────────────────────────

    async def schedule_interview(
        self,
        actor: Admin,
        astrologer_id: uuid.UUID,
        round_number: int,
        interviewer_name: str,
        scheduled_at: datetime,
    ) -> Interview:
        astrologer = await self._astrologer(astrologer_id)

        taken = await self.db.scalar(
            select(Interview.id).where(
                Interview.astrologer_id == astrologer.id,
                Interview.round_number == round_number,
            )
        )
        if taken:
            raise AlreadyExists("Round number already scheduled")

        interview = Interview(
            astrologer_id=astrologer.id,
            round_number=round_number,
            interviewer_name=interviewer_name,
            scheduled_at=scheduled_at,
            status=InterviewStatus.SCHEDULED,
        )
        self.db.add(interview)
        self._transition(astrologer, ApprovalStatus.INTERVIEW, actor)
        # A concurrent insert of the same round loses here and rolls back both writes
        await self._flush(on_conflict=AlreadyExists("Round number already scheduled"))
        await self.db.refresh(interview)

        self.audit.record("schedule_interview", "astrologer", astrologer.id, admin_id=actor.id,
                          payload={"round_number": round_number, "interview_id": interview.id})
        return interview

    async def record_interview_result(
        self,
        actor: Admin,
        interview_id: int,
        status: InterviewStatus,
        remarks: Optional[str] = None,
    ) -> Interview:
        """Outcome of one round. The astrologer's approval status is left alone."""
        interview = await self._get_or_404(Interview, interview_id, "Interview not found")
        interview.status = status
        if remarks is not None:
            interview.remarks = remarks
        await self._flush()
        await self.db.refresh(interview)

        self.audit.record("record_interview_result", "interview", interview.id,
                          admin_id=actor.id, payload={"status": status, "remarks": remarks})
        return interview

    # ── Documents ─────────────────────────────────────────────

    async def upload_document(
        self,
        actor: Admin,
        astrologer_id: uuid.UUID,
        document_type: DocumentType,
        document_url: str,
    ) -> AstrologerDocument:
        astrologer = await self._astrologer(astrologer_id)

        exists = await self.db.scalar(
            select(AstrologerDocument.id).where(
                AstrologerDocument.astrologer_id == astrologer.id,
                AstrologerDocument.document_type == document_type,
            )
        )
        if exists:
            raise AlreadyExists("Document of this type already uploaded")

        document = AstrologerDocument(
            astrologer_id=astrologer.id,
            document_type=document_type,
            document_url=document_url,
            status=DocumentStatus.PENDING,
        )
        self.db.add(document)
        await self._flush(on_conflict=AlreadyExists("Document of this type already uploaded"))
        await self.db.refresh(document)

        self.audit.record("upload_document", "astrologer", astrologer.id, admin_id=actor.id,
                          payload={"document_id": document.id, "document_type": document_type})
        return document

    async def verify_document(
        self,
        actor: Admin,
        document_id: int,
        status: DocumentStatus,
        remarks: Optional[str] = None,
    ) -> AstrologerDocument:
        """Record the review outcome. Does not change the astrologer's approval status."""
        document = await self._get_or_404(AstrologerDocument, document_id, "Document not found")
        document.status = status
        document.remarks = remarks
        document.verified_by = str(actor.id)
        document.verified_at = datetime.now(timezone.utc)
        await self._flush()
        await self.db.refresh(document)

        self.audit.record("verify_document", "document", document.id, admin_id=actor.id,
                          payload={"status": status, "remarks": remarks})
        return document

    # ── Decisions ─────────────────────────────────────────────

    async def approve_astrologer(self, actor: Admin, astrologer_id: uuid.UUID) -> Astrologer:
        astrologer = await self._astrologer(astrologer_id)
        self._transition(astrologer, ApprovalStatus.APPROVED, actor)
        astrologer.approved_by_id = actor.id
        await self._flush()
        await self.db.refresh(astrologer)

        self.audit.record("approve_astrologer", "astrologer", astrologer.id, admin_id=actor.id)
        return astrologer

    async def reject_astrologer(
        self,
        actor: Admin,
        astrologer_id: uuid.UUID,
        stage: str,
        reason: str,
    ) -> Astrologer:
        """Append a rejection history row and mark the astrologer REJECTED, atomically."""
        astrologer = await self._astrologer(astrologer_id)
        try:
            stage = RejectionStage(stage)
        except ValueError:
            raise ValidationFailed("Invalid rejection stage")

        self.db.add(
            AstrologerRejectionHistory(
                astrologer_id=astrologer.id,
                stage=stage,
                reason=reason,
                rejected_by=str(actor.id),
            )
        )
        self._transition(astrologer, ApprovalStatus.REJECTED, actor)
        await self._flush()
        await self.db.refresh(astrologer)

        self.audit.record("reject_astrologer", "astrologer", astrologer.id, admin_id=actor.id,
                          payload={"stage": stage.value, "reason": reason})
        return astrologer

"""
tests/test_workflow.py
Tests for the astrologer approval workflow: interviews, documents, approve and reject.
"""

import uuid
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import (
    Admin,
    ApprovalStatus,
    Astrologer,
    AstrologerRejectionHistory,
    Gender,
    Interview,
)
from tests.conftest import auth_headers

INTERVIEW = {"roundNumber": 1, "interviewerName": "Priya Nair", "scheduledAt": "2026-11-01T10:00:00Z"}


@pytest_asyncio.fixture
async def astrologer(db: AsyncSession) -> Astrologer:
    record = Astrologer(
        profile_pic="https://default.com/profile.png",
        name="Kavya Menon",
        email="kavya@astro-backoffice.com",
        contact_no="9876500011",
        gender=Gender.FEMALE,
        date_of_birth=datetime(1988, 7, 2),
        languages=["Malayalam"],
        skills=["Vedic"],
        about="KP and Vedic astrology.",
    )
    db.add(record)
    await db.commit()
    return record


async def _status(db: AsyncSession, astrologer_id) -> ApprovalStatus:
    return await db.scalar(
        select(Astrologer.approval_status).where(Astrologer.id == astrologer_id)
    )


# ── Interviews ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_schedule_interview_moves_to_interview(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer, db: AsyncSession, audit_sink
):
    response = await client.post(
        f"/astrologers/{astrologer.id}/interviews", json=INTERVIEW, headers=auth_headers(admin_user)
    )
    assert response.status_code == 201
    data = response.json()
    assert data["roundNumber"] == 1
    assert data["status"] == "SCHEDULED"
    assert await _status(db, astrologer.id) == ApprovalStatus.INTERVIEW
    assert "schedule_interview" in audit_sink.actions("SUCCESS")


@pytest.mark.asyncio
async def test_duplicate_round_leaves_state_unchanged(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer, db: AsyncSession
):
    headers = auth_headers(admin_user)
    await client.post(f"/astrologers/{astrologer.id}/interviews", json=INTERVIEW, headers=headers)
    await client.post(
        f"/astrologers/{astrologer.id}/reject",
        json={"stage": "INTERVIEW", "reason": "No show"},
        headers=headers,
    )

    response = await client.post(
        f"/astrologers/{astrologer.id}/interviews", json=INTERVIEW, headers=headers
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Round number already scheduled"
    assert await _status(db, astrologer.id) == ApprovalStatus.REJECTED
    assert await db.scalar(select(func.count(Interview.id))) == 1


@pytest.mark.asyncio
async def test_new_round_after_reject_reopens_interview(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer, db: AsyncSession
):
    headers = auth_headers(admin_user)
    await client.post(f"/astrologers/{astrologer.id}/interviews", json=INTERVIEW, headers=headers)
    await client.post(
        f"/astrologers/{astrologer.id}/reject",
        json={"stage": "INTERVIEW", "reason": "Needs another round"},
        headers=headers,
    )
    assert await _status(db, astrologer.id) == ApprovalStatus.REJECTED

    response = await client.post(
        f"/astrologers/{astrologer.id}/interviews",
        json={**INTERVIEW, "roundNumber": 2},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["roundNumber"] == 2
    assert await _status(db, astrologer.id) == ApprovalStatus.INTERVIEW
    assert await db.scalar(select(func.count(AstrologerRejectionHistory.id))) == 1


@pytest.mark.asyncio
async def test_schedule_interview_for_missing_astrologer(client: AsyncClient, admin_user: Admin):
    response = await client.post(
        f"/astrologers/{uuid.uuid4()}/interviews", json=INTERVIEW, headers=auth_headers(admin_user)
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Astrologer not found"


@pytest.mark.asyncio
async def test_manager_cannot_schedule_interview(
    client: AsyncClient, manager: Admin, astrologer: Astrologer
):
    response = await client.post(
        f"/astrologers/{astrologer.id}/interviews", json=INTERVIEW, headers=auth_headers(manager)
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin only"


@pytest.mark.asyncio
async def test_record_interview_result(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer, db: AsyncSession
):
    headers = auth_headers(admin_user)
    interview = (await client.post(
        f"/astrologers/{astrologer.id}/interviews", json=INTERVIEW, headers=headers
    )).json()

    response = await client.patch(
        f"/astrologers/interviews/{interview['id']}",
        json={"status": "PASSED", "remarks": "Strong fundamentals"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "PASSED"
    assert response.json()["remarks"] == "Strong fundamentals"
    # The result alone does not advance the astrologer
    assert await _status(db, astrologer.id) == ApprovalStatus.INTERVIEW


@pytest.mark.asyncio
async def test_record_result_for_missing_interview(client: AsyncClient, admin_user: Admin):
    response = await client.patch(
        "/astrologers/interviews/999", json={"status": "FAILED"}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Interview not found"


# ── Documents ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_upload_and_verify_document(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer
):
    headers = auth_headers(admin_user)
    upload = await client.post(
        f"/astrologers/{astrologer.id}/documents",
        json={"documentType": "CERTIFICATE", "documentUrl": "https://cdn.astro-backoffice.com/cert.pdf"},
        headers=headers,
    )
    assert upload.status_code == 201
    document = upload.json()
    assert document["status"] == "PENDING"
    assert document["verifiedBy"] is None

    verify = await client.post(
        f"/astrologers/documents/{document['id']}/verify",
        json={"status": "VERIFIED"},
        headers=headers,
    )
    assert verify.status_code == 200
    data = verify.json()
    assert data["status"] == "VERIFIED"
    assert data["verifiedBy"] == str(admin_user.id)
    assert data["verifiedAt"] is not None


@pytest.mark.asyncio
async def test_upload_same_document_type_twice(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer
):
    body = {"documentType": "ID_PROOF", "documentUrl": "https://cdn.astro-backoffice.com/id.pdf"}
    headers = auth_headers(admin_user)
    await client.post(f"/astrologers/{astrologer.id}/documents", json=body, headers=headers)

    response = await client.post(f"/astrologers/{astrologer.id}/documents", json=body, headers=headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "Document of this type already uploaded"


@pytest.mark.asyncio
async def test_verify_missing_document(client: AsyncClient, admin_user: Admin):
    response = await client.post(
        "/astrologers/documents/999/verify", json={"status": "REJECTED"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Document not found"


# ── Decisions ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_approve_astrologer(client: AsyncClient, admin_user: Admin, astrologer: Astrologer):
    response = await client.post(
        f"/astrologers/{astrologer.id}/approve", headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    assert response.json()["approvalStatus"] == "APPROVED"
    assert response.json()["approvedById"] == str(admin_user.id)


@pytest.mark.asyncio
async def test_reject_appends_history(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer, audit_sink
):
    headers = auth_headers(admin_user)
    first = await client.post(
        f"/astrologers/{astrologer.id}/reject",
        json={"stage": "PROFILE", "reason": "Incomplete profile"},
        headers=headers,
    )
    assert first.status_code == 200
    assert first.json()["approvalStatus"] == "REJECTED"
    assert len(first.json()["rejectionHistory"]) == 1

    second = await client.post(
        f"/astrologers/{astrologer.id}/reject",
        json={"stage": "DOCUMENT", "reason": "Blurry ID"},
        headers=headers,
    )
    history = second.json()["rejectionHistory"]
    assert [h["stage"] for h in history] == ["PROFILE", "DOCUMENT"]
    assert history[0]["reason"] == "Incomplete profile"
    assert history[1]["rejectedBy"] == str(admin_user.id)
    assert audit_sink.actions("SUCCESS").count("reject_astrologer") == 2


@pytest.mark.asyncio
async def test_reject_with_invalid_stage(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer, db: AsyncSession
):
    response = await client.post(
        f"/astrologers/{astrologer.id}/reject",
        json={"stage": "PAYMENT", "reason": "x"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid rejection stage"
    assert await _status(db, astrologer.id) == ApprovalStatus.PENDING
    assert await db.scalar(select(func.count(AstrologerRejectionHistory.id))) == 0


@pytest.mark.asyncio
async def test_approve_after_reject_is_allowed(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer
):
    headers = auth_headers(admin_user)
    await client.post(
        f"/astrologers/{astrologer.id}/reject",
        json={"stage": "INTERVIEW", "reason": "Second opinion pending"},
        headers=headers,
    )
    response = await client.post(f"/astrologers/{astrologer.id}/approve", headers=headers)
    assert response.json()["approvalStatus"] == "APPROVED"
    # History survives the later approval
    assert len(response.json()["rejectionHistory"]) == 1


@pytest.mark.asyncio
async def test_rejection_history_is_append_only(
    client: AsyncClient, admin_user: Admin, astrologer: Astrologer, db: AsyncSession
):
    await client.post(
        f"/astrologers/{astrologer.id}/reject",
        json={"stage": "PROFILE", "reason": "Original reason"},
        headers=auth_headers(admin_user),
    )

    row = await db.scalar(select(AstrologerRejectionHistory))
    row.reason = "Rewritten"
    with pytest.raises(ValueError):
        await db.flush()
    await db.rollback()

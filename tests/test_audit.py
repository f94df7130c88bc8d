"""
tests/test_audit.py
Tests for the audit trail: commit-bound dispatch, denial events,
broker failures, and the Celery task that persists events.
"""

import uuid

import pytest
from fastapi import Depends
from httpx import AsyncClient
from prometheus_client import REGISTRY
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from main import app
from shared.models.models import Admin, AdminAuditLog, AuditOutcome, RechargePack
from shared.utils.audit import AuditLogger, get_audit_logger
from tasks.audit_tasks import _sync_database_url, record_audit_event
from tests.conftest import RecordingSink, auth_headers


def _pack(**overrides) -> RechargePack:
    fields = dict(name="Trial", price=1, coins=1, talktime=1, validity_days=1)
    fields.update(overrides)
    return RechargePack(**fields)


def _failures() -> float:
    return REGISTRY.get_sample_value("audit_log_dispatch_failures_total") or 0.0


# ── AuditLogger ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_recorded_events_wait_for_commit(db: AsyncSession):
    sink = RecordingSink()
    audit = AuditLogger(db, sink=sink)

    db.add(_pack())
    await db.flush()
    audit.record("create_recharge_pack", "recharge_pack", uuid.uuid4())
    assert sink.events == []

    await db.commit()
    assert sink.actions() == ["create_recharge_pack"]


@pytest.mark.asyncio
async def test_recorded_events_dropped_on_rollback(db: AsyncSession):
    sink = RecordingSink()
    audit = AuditLogger(db, sink=sink)

    db.add(_pack())
    await db.flush()
    audit.record("create_recharge_pack", "recharge_pack", uuid.uuid4())
    await db.rollback()

    assert sink.events == []


def test_emit_dispatches_immediately():
    sink = RecordingSink()
    AuditLogger(sink=sink).emit(
        "list_roles", "authorization", outcome=AuditOutcome.DENIED, payload={"reason": "x"}
    )
    event = sink.events[0]
    assert event["outcome"] == "DENIED"
    assert event["admin_id"] is None
    assert uuid.UUID(event["id"])


def test_failing_sink_is_counted_not_raised():
    def broken(event):
        raise ConnectionError("broker down")

    before = _failures()
    AuditLogger(sink=broken).emit("delete_user", "user", uuid.uuid4())
    assert _failures() == before + 1


def test_disabled_audit_dispatches_nothing(monkeypatch):
    monkeypatch.setattr(settings, "AUDIT_LOG_ENABLED", False)
    sink = RecordingSink()
    AuditLogger(sink=sink).emit("delete_user", "user", uuid.uuid4())
    assert sink.events == []


# ── Through the API ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_failed_write_is_not_audited(client: AsyncClient, super_admin: Admin, audit_sink):
    headers = auth_headers(super_admin)
    await client.post("/permissions", json={"name": "reports"}, headers=headers)
    duplicate = await client.post("/permissions", json={"name": "reports"}, headers=headers)
    assert duplicate.status_code == 409

    assert audit_sink.actions("SUCCESS").count("create_permission") == 1


@pytest.mark.asyncio
async def test_denial_is_audited(client: AsyncClient, manager: Admin, audit_sink):
    response = await client.get("/roles", headers=auth_headers(manager))
    assert response.status_code == 403

    denied = [e for e in audit_sink.events if e["outcome"] == "DENIED"]
    assert len(denied) == 1
    assert denied[0]["action"] == "list_roles"
    assert denied[0]["admin_id"] == str(manager.id)
    assert denied[0]["payload"]["reason"] == "Only SUPER_ADMIN can view roles"


@pytest.mark.asyncio
async def test_broken_audit_sink_does_not_fail_request(
    client: AsyncClient, admin_user: Admin, db: AsyncSession
):
    def broken(event):
        raise ConnectionError("broker down")

    async def _broken_logger(session: AsyncSession = Depends(get_db)) -> AuditLogger:
        return AuditLogger(session, sink=broken)

    app.dependency_overrides[get_audit_logger] = _broken_logger

    response = await client.post(
        "/recharge-packs",
        json={"name": "Gold", "price": 499, "coins": 600, "talktime": 60, "validityDays": 90},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 201
    assert await db.scalar(select(func.count(RechargePack.id))) == 1


# ── Worker ─────────────────────────────────────────────────────────────────────

def _event(**overrides) -> dict:
    event = AuditLogger.build(
        "delete_user", "user", uuid.uuid4(), admin_id=uuid.uuid4(), payload={"k": "v"}
    )
    event.update(overrides)
    return event


@pytest.mark.asyncio
async def test_task_persists_event_once(db: AsyncSession):
    event = _event()
    record_audit_event.apply(args=[event])
    record_audit_event.apply(args=[event])

    rows = (await db.execute(select(AdminAuditLog))).scalars().all()
    assert len(rows) == 1
    assert str(rows[0].id) == event["id"]
    assert rows[0].action == "delete_user"
    assert rows[0].outcome == AuditOutcome.SUCCESS
    assert rows[0].payload == {"k": "v"}


@pytest.mark.asyncio
async def test_task_accepts_anonymous_denials(db: AsyncSession):
    record_audit_event.apply(args=[_event(admin_id=None, outcome="DENIED")])

    row = await db.scalar(select(AdminAuditLog))
    assert row.admin_id is None
    assert row.outcome == AuditOutcome.DENIED


def test_sync_database_url(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "postgresql+asyncpg://u:p@db:5432/astro")
    assert _sync_database_url() == "postgresql+psycopg2://u:p@db:5432/astro"

    monkeypatch.setattr(settings, "DATABASE_URL", "sqlite+aiosqlite:///./local.db")
    assert _sync_database_url() == "sqlite:///./local.db"

"""
tasks/audit_tasks.py
Celery task that persists admin audit events to AdminAuditLog.

Events are queued by shared.utils.audit.AuditLogger after the originating
request commits. Each event carries its own id, so a redelivered message
writes nothing the second time.
"""

import logging
import uuid
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config.settings import settings
from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _sync_database_url() -> str:
    """The API's async driver URL rewritten for a synchronous driver."""
    return (
        settings.DATABASE_URL
        .replace("+asyncpg", "+psycopg2")
        .replace("+aiosqlite", "")
    )


@lru_cache()
def _session_factory() -> sessionmaker:
    engine = create_engine(_sync_database_url(), pool_pre_ping=True)
    return sessionmaker(bind=engine)


def _get_sync_session():
    """Create a synchronous SQLAlchemy session (Celery runs sync by default)."""
    return _session_factory()()


@celery_app.task(bind=True, max_retries=3, default_retry_delay=30)
def record_audit_event(self, event: dict):
    """
    Write one audit event.

    event keys: id, admin_id, action, entity_type, entity_id, outcome, payload
    """
    from shared.models.models import AdminAuditLog, AuditOutcome

    event_id = uuid.UUID(event["id"])
    db = _get_sync_session()
    try:
        if db.get(AdminAuditLog, event_id) is not None:
            logger.info(f"Audit event {event_id} already recorded")
            return

        db.add(
            AdminAuditLog(
                id=event_id,
                admin_id=uuid.UUID(event["admin_id"]) if event.get("admin_id") else None,
                action=event["action"],
                entity_type=event["entity_type"],
                entity_id=event.get("entity_id"),
                outcome=AuditOutcome(event.get("outcome", AuditOutcome.SUCCESS.value)),
                payload=event.get("payload") or {},
            )
        )
        db.commit()
        logger.info(f"Audit {event['action']} ({event['outcome']}) recorded as {event_id}")

    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"record_audit_event failed for {event_id}: {e}")
        raise self.retry(exc=e, countdown=30 * (2 ** self.request.retries))
    finally:
        db.close()

"""
shared/utils/audit.py
Admin audit trail. Events are handed to a Celery worker that writes AdminAuditLog.

record() buffers an event until the request transaction commits and drops it on
rollback, so the trail never mentions a change that did not happen.
emit() dispatches straight away; used for denials and failed logins, which
have no transaction to wait for.
A broken broker never fails the operation being audited.
"""

import logging
import uuid
from typing import Any, Callable, Optional

from fastapi import Depends
from fastapi.encoders import jsonable_encoder
from prometheus_client import Counter
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from shared.models.models import AuditOutcome

logger = logging.getLogger(__name__)

AUDIT_DISPATCH_FAILURES = Counter(
    "audit_log_dispatch_failures_total",
    "Audit events that could not be handed to the audit worker",
)

AuditSink = Callable[[dict], None]


def celery_sink(audit_event: dict) -> None:
    """Queue the event for tasks.audit_tasks.record_audit_event."""
    from tasks.audit_tasks import record_audit_event

    # retry=False: a dead broker must not stall the request
    record_audit_event.apply_async(args=[audit_event], retry=False)


class AuditLogger:
    def __init__(self, session: Optional[AsyncSession] = None, sink: Optional[AuditSink] = None):
        self.sink = sink or celery_sink
        self._pending: list[dict] = []
        if session is not None:
            event.listen(session.sync_session, "after_commit", self._on_commit)
            event.listen(session.sync_session, "after_rollback", self._on_rollback)

    @staticmethod
    def build(
        action: str,
        entity_type: str,
        entity_id: Any = None,
        admin_id: Any = None,
        outcome: AuditOutcome = AuditOutcome.SUCCESS,
        payload: Optional[dict] = None,
    ) -> dict:
        return jsonable_encoder({
            "id": str(uuid.uuid4()),
            "admin_id": str(admin_id) if admin_id else None,
            "action": action,
            "entity_type": entity_type,
            "entity_id": str(entity_id) if entity_id is not None else None,
            "outcome": outcome.value,
            "payload": payload or {},
        })

    def record(self, action: str, entity_type: str, entity_id: Any = None, **kwargs) -> None:
        """Buffer an event; it is dispatched after the session commits."""
        self._pending.append(self.build(action, entity_type, entity_id, **kwargs))

    def emit(self, action: str, entity_type: str, entity_id: Any = None, **kwargs) -> None:
        """Dispatch an event now, independent of any transaction."""
        self._dispatch(self.build(action, entity_type, entity_id, **kwargs))

    # ── Session hooks ─────────────────────────────────────────

    def _on_commit(self, session) -> None:
        pending, self._pending = self._pending, []
        for audit_event in pending:
            self._dispatch(audit_event)

    def _on_rollback(self, session) -> None:
        if self._pending:
            logger.info(f"Discarding {len(self._pending)} audit event(s) after rollback")
        self._pending = []

    def _dispatch(self, audit_event: dict) -> None:
        if not settings.AUDIT_LOG_ENABLED:
            return
        try:
            self.sink(audit_event)
        except Exception as e:
            AUDIT_DISPATCH_FAILURES.inc()
            logger.warning(
                f"Audit dispatch failed for {audit_event['action']} "
                f"({audit_event['entity_type']} {audit_event['entity_id']}): {e}"
            )


async def get_audit_logger(db: AsyncSession = Depends(get_db)) -> AuditLogger:
    """FastAPI dependency: an AuditLogger bound to the request session."""
    return AuditLogger(db)

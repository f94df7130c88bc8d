"""
tasks/celery_app.py
Celery application instance, shared across all task modules.

Workers are started with:
    celery -A tasks.celery_app worker -Q audit --loglevel=info --concurrency=2
"""

from celery import Celery

from config.settings import settings

celery_app = Celery(
    "astro_backoffice",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "tasks.audit_tasks",
    ],
)

# ── Configuration ─────────────────────────────────────────────────────────────

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,

    # Acknowledge after the row is written so a dying worker does not lose the event
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Audit writes return nothing worth keeping
    task_ignore_result=True,
    result_expires=3600,

    task_max_retries=3,

    # Routing: audit events get their own queue
    task_routes={
        "tasks.audit_tasks.*": {"queue": "audit"},
    },

    worker_prefetch_multiplier=1,
)

"""Celery worker configuration.

Two queues keep slow document rendering from delaying payment work:
- documents: contract rendering and its sweep
- payments: provider initialization and escrow reconciliation
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings
from app.core.immutability import register_immutability_enforcement

celery_app = Celery(
    "bluefleet_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks"],
)

# Workers write negotiation and escrow events too
register_immutability_enforcement()

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    task_routes={
        "app.tasks.render_contract_document": {"queue": "documents"},
        "app.tasks.render_pending_contracts": {"queue": "documents"},
        "app.tasks.initialize_escrow_payment": {"queue": "payments"},
        "app.tasks.reconcile_pending_escrows": {"queue": "payments"},
    },
    task_default_queue="payments",

    # Redelivered if a worker dies mid-task; every task re-checks state first
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Renderer and gateway timeouts plus headroom
    task_time_limit=int(max(settings.document_renderer_timeout, settings.gateway_timeout)) * 4,
    task_soft_time_limit=int(max(settings.document_renderer_timeout, settings.gateway_timeout)) * 3,

    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    result_expires=3600,

    task_default_retry_delay=60,
    task_max_retries=3,

    beat_schedule={
        "reconcile-pending-escrows": {
            "task": "app.tasks.reconcile_pending_escrows",
            "schedule": crontab(minute="*/10"),
        },
        # Contracts whose render task was lost or exhausted its retries
        "render-pending-contracts": {
            "task": "app.tasks.render_pending_contracts",
            "schedule": crontab(minute="*/15"),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()

"""
Celery Configuration - Nightly reconciliation
"""
from celery import Celery
from celery.schedules import crontab

from src.api.config import settings

# Results are logged by the task, so no result backend
celery_app = Celery(
    "worker_compliance",
    broker=settings.REDIS_URL,
    include=[
        "src.infrastructure.tasks"
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    timezone="Africa/Johannesburg",
    enable_utc=True,

    # A run interrupted by a lost worker is redelivered; reconciliation is idempotent
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    task_queues={
        "compliance": {"routing_key": "compliance.#"},
    },
    task_routes={
        "src.infrastructure.tasks.reconcile_*": {"queue": "compliance"},
    },

    beat_schedule={
        "reconcile-contractor-invoices": {
            "task": "src.infrastructure.tasks.reconcile_contractor_invoices",
            "schedule": crontab(hour=2, minute=0),
        },
    },
)

"""
Infrastructure Module - Celery and background tasks
"""
from .celery_app import celery_app
from .tasks import reconcile_contractor_invoices

__all__ = [
    'celery_app',
    'reconcile_contractor_invoices'
]

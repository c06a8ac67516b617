"""
Celery Tasks - Background Processing
"""
import asyncio
from typing import Optional

from celery import shared_task
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
import structlog

logger = structlog.get_logger()


async def _reconcile(organization_id: Optional[str]) -> dict:
    from src.api.config import settings
    from src.compliance import ReconciliationJob, SqlInvoiceRepository, build_default_registry

    # Each asyncio.run gets its own loop, so the engine cannot be shared
    engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
    try:
        repository = SqlInvoiceRepository(
            async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        )
        await repository.ensure_schema()
        job = ReconciliationJob(
            build_default_registry(),
            repository,
            batch_size=settings.RECONCILIATION_BATCH_SIZE,
            record_timeout=settings.RECONCILIATION_RECORD_TIMEOUT_SECONDS,
            organization_id=organization_id,
        )
        summary = await job.run()
        return summary.to_dict()
    finally:
        await engine.dispose()


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def reconcile_contractor_invoices(self, organization_id: Optional[str] = None):
    """
    Re-validate stored contractor invoices against current rules.

    Args:
        organization_id: Restrict the run to one organization
    """
    logger.info("Starting invoice reconciliation", organization_id=organization_id)

    try:
        summary = asyncio.run(_reconcile(organization_id))
    except Exception as e:
        logger.error("Invoice reconciliation failed", organization_id=organization_id, error=str(e))
        raise self.retry(exc=e)

    logger.info(
        "Invoice reconciliation completed",
        reviewed=summary["reviewed"],
        violations=summary["violations"],
        updated=summary["updated"],
        errors=summary["error_count"],
    )
    return summary

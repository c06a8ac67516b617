"""
Reconciliation Router - On-demand re-validation of stored invoices
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
import structlog

from src.compliance import InvoiceRepository, ProviderRegistry, ReconciliationJob

from ..config import settings
from ..dependencies import get_actor, get_audit_service, get_registry, get_repository
from ..services.audit_trail import AuditEventType, AuditTrailService

logger = structlog.get_logger()
router = APIRouter()


class ReconciliationRequest(BaseModel):
    organization_id: Optional[str] = None
    batch_size: Optional[int] = Field(default=None, ge=1, le=1000)


@router.post("/run")
async def run_reconciliation(
    request: Optional[ReconciliationRequest] = None,
    registry: ProviderRegistry = Depends(get_registry),
    repository: InvoiceRepository = Depends(get_repository),
    audit: AuditTrailService = Depends(get_audit_service),
    actor: str = Depends(get_actor),
):
    """
    Re-check stored invoices against current rules.

    Violations are flagged with an annotation; amounts are never changed.
    """
    request = request or ReconciliationRequest()
    job = ReconciliationJob(
        registry,
        repository,
        batch_size=request.batch_size or settings.RECONCILIATION_BATCH_SIZE,
        record_timeout=settings.RECONCILIATION_RECORD_TIMEOUT_SECONDS,
        organization_id=request.organization_id,
    )
    summary = await job.run()
    result = summary.to_dict()

    await audit.record(
        AuditEventType.RECONCILIATION_COMPLETED,
        aggregate_id=request.organization_id or "all",
        aggregate_type="reconciliation",
        data={
            "reviewed": summary.reviewed,
            "violations": summary.violations,
            "updated": summary.updated,
            "error_count": len(summary.errors),
        },
        actor=actor,
    )
    return result

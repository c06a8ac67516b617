"""
Contractor Invoices CRUD - Create, read, reclassify and approve

Every write goes through the eligibility gate. Approved invoices are
immutable; reclassification creates a superseding draft.
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
import structlog

from src.compliance import InvoiceEligibilityGate, InvoiceRepository, StoredInvoice

from ...dependencies import get_actor, get_audit_service, get_gate, get_repository, raise_for_failure
from ...services.audit_trail import AuditEventType, AuditTrailService
from .models import ContractorInvoiceCreate, ContractorInvoicePage, ContractorInvoiceResponse, ReclassifyRequest

logger = structlog.get_logger()
router = APIRouter()


async def _load(repository: InvoiceRepository, invoice_id: str) -> StoredInvoice:
    stored = await repository.get(invoice_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="Contractor invoice not found")
    return stored


async def _record_block(audit: AuditTrailService, aggregate_id: str, failure, actor: str):
    await audit.record(
        AuditEventType.INVOICE_BLOCKED,
        aggregate_id=aggregate_id,
        data={"code": failure.code, "error": failure.error},
        actor=actor,
    )


@router.post("/", response_model=ContractorInvoiceResponse, status_code=201)
async def create_contractor_invoice(
    invoice: ContractorInvoiceCreate,
    gate: InvoiceEligibilityGate = Depends(get_gate),
    repository: InvoiceRepository = Depends(get_repository),
    audit: AuditTrailService = Depends(get_audit_service),
    actor: str = Depends(get_actor),
):
    """
    Create a contractor invoice.

    Returns 422 when the classification cannot invoice or a field has the
    wrong format, and 400 when the tax country is not supported.
    """
    invoice_number = invoice.invoice_number
    if not invoice_number:
        invoice_number = await repository.next_invoice_number(
            invoice.organization_id, datetime.now(timezone.utc).year
        )

    result = gate.issue(invoice.to_draft(invoice_number), actor)
    if result.is_failure:
        await _record_block(audit, invoice.contractor_id, result, actor)
        raise_for_failure(result)

    stored = await repository.add(result.value)
    await audit.record(
        AuditEventType.INVOICE_ISSUED,
        aggregate_id=stored.id,
        data={
            "classification": stored.classification,
            "total_amount": str(stored.total_amount),
            "currency": stored.currency,
            "decision": result.metadata["decision"],
        },
        actor=actor,
    )
    return stored.to_dict()


@router.get("/", response_model=ContractorInvoicePage)
async def list_contractor_invoices(
    organization_id: Optional[str] = Query(default=None),
    after_id: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    repository: InvoiceRepository = Depends(get_repository),
):
    """List contractor invoices ordered by ID, paged with after_id."""
    page = await repository.fetch_page(after_id=after_id, limit=limit, organization_id=organization_id)
    return {
        "items": [row.to_dict() for row in page],
        "next_after_id": page[-1].id if len(page) == limit else None,
    }


@router.get("/{invoice_id}", response_model=ContractorInvoiceResponse)
async def get_contractor_invoice(
    invoice_id: str,
    repository: InvoiceRepository = Depends(get_repository),
):
    """Get contractor invoice by ID"""
    return (await _load(repository, invoice_id)).to_dict()


@router.get("/{invoice_id}/history")
async def get_contractor_invoice_history(
    invoice_id: str,
    repository: InvoiceRepository = Depends(get_repository),
    audit: AuditTrailService = Depends(get_audit_service),
):
    """Audit events recorded for an invoice"""
    await _load(repository, invoice_id)
    events = await audit.get_history(invoice_id)
    return {"invoice_id": invoice_id, "events": [e.to_dict() for e in events]}


@router.post("/{invoice_id}/reclassify", response_model=ContractorInvoiceResponse, status_code=201)
async def reclassify_contractor_invoice(
    invoice_id: str,
    request: ReclassifyRequest,
    gate: InvoiceEligibilityGate = Depends(get_gate),
    repository: InvoiceRepository = Depends(get_repository),
    audit: AuditTrailService = Depends(get_audit_service),
    actor: str = Depends(get_actor),
):
    """
    Change the contractor classification of a draft invoice.

    A new draft superseding the old one is created. The full eligibility
    decision runs again.
    """
    stored = await _load(repository, invoice_id)
    factors = request.control_factors.to_factors() if request.control_factors else None

    result = gate.reclassify(stored, request.classification, actor, factors=factors)
    if result.is_failure:
        await _record_block(audit, invoice_id, result, actor)
        raise_for_failure(result)

    replacement = await repository.add(result.value)
    await audit.record(
        AuditEventType.INVOICE_RECLASSIFIED,
        aggregate_id=invoice_id,
        data={
            "from": stored.classification,
            "to": replacement.classification,
            "superseded_by": replacement.id,
            "reason": request.reason,
        },
        actor=actor,
    )
    return replacement.to_dict()


@router.post("/{invoice_id}/approve", response_model=ContractorInvoiceResponse)
async def approve_contractor_invoice(
    invoice_id: str,
    gate: InvoiceEligibilityGate = Depends(get_gate),
    repository: InvoiceRepository = Depends(get_repository),
    audit: AuditTrailService = Depends(get_audit_service),
    actor: str = Depends(get_actor),
):
    """Approve a draft invoice. Approved invoices cannot be changed."""
    stored = await _load(repository, invoice_id)

    result = gate.approve(stored, actor)
    if result.is_failure:
        await _record_block(audit, invoice_id, result, actor)
        raise_for_failure(result)

    approved = await repository.save_approval(result.value)
    await audit.record(
        AuditEventType.INVOICE_APPROVED,
        aggregate_id=invoice_id,
        data={"total_amount": str(approved.total_amount), "currency": approved.currency},
        actor=actor,
    )
    return approved.to_dict()

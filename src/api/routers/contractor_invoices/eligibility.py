"""
Contractor Invoices Eligibility - Classification checks and dry runs
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
import structlog

from src.compliance import BlockKind, ClassificationValidator, InvoiceEligibilityGate, ProviderRegistry, WorkerClassification
from src.compliance.classification import parse_classification

from ...dependencies import get_actor, get_audit_service, get_gate, get_registry, resolve_provider
from ...services.audit_trail import AuditEventType, AuditTrailService
from .models import ContractorInvoiceCreate, EligibilityRequest, RecommendationRequest

logger = structlog.get_logger()
router = APIRouter()


@router.get("/types")
async def list_classification_types(
    jurisdiction: Optional[str] = Query(default=None),
    registry: ProviderRegistry = Depends(get_registry),
):
    """All worker classifications with invoice eligibility for a jurisdiction."""
    provider = resolve_provider(registry, jurisdiction)
    return {
        "jurisdiction": provider.country_code,
        "rule_version": provider.rule_version,
        "types": [
            provider.describe_classification(c).to_dict()
            for c in WorkerClassification
        ],
    }


@router.post("/check-eligibility")
async def check_eligibility(
    request: EligibilityRequest,
    registry: ProviderRegistry = Depends(get_registry),
    audit: AuditTrailService = Depends(get_audit_service),
    actor: str = Depends(get_actor),
):
    """
    Check whether a worker classification may be paid via invoice.

    Payroll-only classifications are always refused, whatever the factors say.
    """
    provider = resolve_provider(registry, request.jurisdiction)
    factors = request.factors.to_factors()
    decision = ClassificationValidator(provider).decide(request.classification, factors)

    risk = decision.risk_profile if decision.approved else provider.score_relationship(factors)
    result = {
        "can_issue_invoices": decision.approved,
        "is_employee": not decision.approved and decision.kind == BlockKind.LEGAL_VIOLATION,
        "decision": decision.to_dict(),
        "risk_profile": risk.to_dict(),
    }

    await audit.record(
        AuditEventType.ELIGIBILITY_CHECKED,
        aggregate_id=str(request.classification),
        aggregate_type="classification",
        data={
            "jurisdiction": provider.country_code,
            "rule_version": provider.rule_version,
            "outcome": decision.to_dict()["outcome"],
            "risk_level": risk.overall_risk.value,
        },
        actor=actor,
    )
    return result


@router.post("/recommend-classification")
async def recommend_classification(
    request: RecommendationRequest,
    registry: ProviderRegistry = Depends(get_registry),
):
    """Suggest a classification from the work arrangement."""
    provider = resolve_provider(registry, request.jurisdiction)
    recommendation = ClassificationValidator(provider).recommend(
        request.factors.to_factors(),
        work_type=request.work_type,
        work_duration=request.work_duration,
    )
    descriptor = provider.describe_classification(recommendation.recommended_classification)

    logger.info(
        "classification_recommended",
        recommended=recommendation.recommended_classification.value,
        confidence=recommendation.confidence.value,
    )
    result = recommendation.to_dict()
    result["can_issue_invoices"] = descriptor.can_issue_invoices
    result["descriptor"] = descriptor.to_dict()
    return result


@router.get("/compliance/{classification}")
async def get_compliance_requirements(
    classification: str,
    jurisdiction: Optional[str] = Query(default=None),
    registry: ProviderRegistry = Depends(get_registry),
):
    """Compliance requirements and description for a classification."""
    provider = resolve_provider(registry, jurisdiction)
    parsed = parse_classification(classification)
    return {
        "classification": parsed.value,
        "jurisdiction": provider.country_code,
        "rule_version": provider.rule_version,
        "descriptor": provider.describe_classification(parsed).to_dict(),
        "requirements": [r.to_dict() for r in provider.classification_requirements(parsed)],
        "country_specific": provider.country_specific_requirements(parsed),
    }


@router.post("/validate")
async def validate_invoice(
    invoice: ContractorInvoiceCreate,
    gate: InvoiceEligibilityGate = Depends(get_gate),
):
    """Dry run of invoice creation. Nothing is stored."""
    evaluation = gate.evaluate(invoice.to_draft())
    logger.info(
        "invoice_validated",
        can_issue=evaluation.can_issue,
        format_errors=len(evaluation.format_errors),
    )
    return evaluation.to_dict()

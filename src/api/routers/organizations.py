"""
Organizations Router - Risk assessment, required documents and verification
"""
from decimal import Decimal
from typing import Optional, List, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
import structlog

from src.compliance import OrganizationProfile, ProviderRegistry
from src.compliance.organization import assess_organization
from src.compliance.types import BeneficialOwner, OrganizationDocument, OrganizationType

from ..dependencies import get_actor, get_audit_service, get_registry, resolve_provider
from ..services.audit_trail import AuditEventType, AuditTrailService

logger = structlog.get_logger()
router = APIRouter()


class BeneficialOwnerModel(BaseModel):
    name: str
    country: Optional[str] = None
    politically_exposed: bool = False
    sanctions_flagged: bool = False


class OrganizationDocumentModel(BaseModel):
    doc_type: str
    verified: bool = False


class OrganizationProfileRequest(BaseModel):
    """Organization facts. Omitted facts are reported as insufficient data."""
    organization_id: Optional[str] = None
    jurisdiction: Optional[str] = None
    org_type: Optional[OrganizationType] = None
    industry_code: Optional[str] = None
    annual_revenue: Optional[Decimal] = None
    employee_count: Optional[int] = Field(default=None, ge=0)
    region: Optional[str] = None
    beneficial_owners: Optional[List[BeneficialOwnerModel]] = None
    bank_verified: Optional[bool] = None
    bee_compliance_verified: Optional[bool] = None
    documents: List[OrganizationDocumentModel] = Field(default_factory=list)
    registration_number: Optional[str] = None
    tax_number: Optional[str] = None

    def to_profile(self) -> OrganizationProfile:
        owners = None
        if self.beneficial_owners is not None:
            owners = [BeneficialOwner(**o.model_dump()) for o in self.beneficial_owners]
        return OrganizationProfile(
            org_type=self.org_type,
            industry_code=self.industry_code,
            annual_revenue=self.annual_revenue,
            employee_count=self.employee_count,
            region=self.region,
            beneficial_owners=owners,
            bank_verified=self.bank_verified,
            bee_compliance_verified=self.bee_compliance_verified,
            documents=[OrganizationDocument(**d.model_dump()) for d in self.documents],
            registration_number=self.registration_number,
            tax_number=self.tax_number,
        )


class RequiredDocumentsRequest(BaseModel):
    jurisdiction: Optional[str] = None
    org_type: Optional[OrganizationType] = None
    annual_revenue: Optional[Decimal] = None
    employee_count: Optional[int] = Field(default=None, ge=0)


class AddressModel(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class IdentifierValidationRequest(BaseModel):
    jurisdiction: Optional[str] = None
    org_type: Optional[OrganizationType] = None
    company_registration_number: Optional[str] = None
    tax_number: Optional[str] = None
    vat_number: Optional[str] = None
    phone_number: Optional[str] = None
    postal_code: Optional[str] = None
    address: Optional[AddressModel] = None


@router.post("/risk-assessment")
async def assess_organization_risk(
    request: OrganizationProfileRequest,
    registry: ProviderRegistry = Depends(get_registry),
    audit: AuditTrailService = Depends(get_audit_service),
    actor: str = Depends(get_actor),
):
    """
    Score an organization across industry, geography, ownership, financial
    and compliance dimensions and schedule its next review.
    """
    provider = resolve_provider(registry, request.jurisdiction)
    assessment = assess_organization(provider, request.to_profile())
    result = assessment.to_dict()

    logger.info(
        "organization_risk_assessed",
        organization_id=request.organization_id,
        overall_risk=result["overall_risk"],
        jurisdiction=provider.country_code,
    )
    if request.organization_id:
        await audit.record(
            AuditEventType.ORGANIZATION_ASSESSED,
            aggregate_id=request.organization_id,
            aggregate_type="organization",
            data={
                "overall_risk": result["overall_risk"],
                "risk_factors": result["risk_factors"],
                "rule_version": provider.rule_version,
            },
            actor=actor,
        )
    return result


@router.post("/required-documents")
async def get_required_documents(
    request: RequiredDocumentsRequest,
    registry: ProviderRegistry = Depends(get_registry),
):
    """Documents an organization must provide, ordered by category."""
    provider = resolve_provider(registry, request.jurisdiction)
    documents = provider.get_required_documents(
        request.org_type, request.annual_revenue, request.employee_count
    )
    return {
        "jurisdiction": provider.country_code,
        "rule_version": provider.rule_version,
        "documents": [d.to_dict() for d in documents],
    }


@router.post("/verification")
async def verify_organization(
    request: OrganizationProfileRequest,
    registry: ProviderRegistry = Depends(get_registry),
):
    """Verification checklist, compliance checks and validation findings."""
    provider = resolve_provider(registry, request.jurisdiction)
    profile = request.to_profile()
    validation = provider.validate_organization(profile)
    return {
        "jurisdiction": provider.country_code,
        "checklist": provider.build_verification_checklist(profile),
        **validation.to_dict(),
    }


@router.post("/validate-identifiers")
async def validate_identifiers(
    request: IdentifierValidationRequest,
    registry: ProviderRegistry = Depends(get_registry),
):
    """Check identifier formats. Only supplied fields are reported."""
    provider = resolve_provider(registry, request.jurisdiction)
    rules = provider.rules
    results: Dict[str, object] = {}

    if request.company_registration_number is not None:
        results["company_registration_number"] = provider.validate_company_registration(
            request.company_registration_number, request.org_type
        )
    if request.tax_number is not None:
        results["tax_number"] = provider.validate_tax_number(request.tax_number)
    if request.vat_number is not None:
        results["vat_number"] = provider.validate_vat_number(request.vat_number)
    if request.phone_number is not None:
        results["phone_number"] = rules.validate_phone_number(request.phone_number)
    if request.postal_code is not None:
        results["postal_code"] = rules.validate_postal_code(request.postal_code)
    if request.address is not None:
        is_valid, errors = rules.validate_business_address(request.address.model_dump())
        results["address"] = {"is_valid": is_valid, "errors": errors}

    return {
        "jurisdiction": provider.country_code,
        "results": results,
    }

"""
Core types for the compliance engine.

Provides risk, requirement and organization value types plus Result types
for consistent error handling at the invoice gate.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


class RiskLevel(str, Enum):
    """Overall risk bucket"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    @property
    def requires_advisory(self) -> bool:
        return self in (RiskLevel.HIGH, RiskLevel.CRITICAL)


_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]


@dataclass(frozen=True)
class RiskThresholds:
    """Inclusive upper bounds of the low, medium and high buckets."""
    low: float = 2.5
    medium: float = 5.0
    high: float = 7.5

    def bucket(self, mean_score: float) -> RiskLevel:
        if mean_score <= self.low:
            return RiskLevel.LOW
        if mean_score <= self.medium:
            return RiskLevel.MEDIUM
        if mean_score <= self.high:
            return RiskLevel.HIGH
        return RiskLevel.CRITICAL


@dataclass
class RiskProfile:
    """Structured scoring output"""
    overall_risk: RiskLevel
    dimensions: Dict[str, int]
    reasons: List[str] = field(default_factory=list)
    recommended_actions: List[str] = field(default_factory=list)
    insufficient_data: bool = False

    @property
    def mean_score(self) -> float:
        if not self.dimensions:
            return 0.0
        return sum(self.dimensions.values()) / len(self.dimensions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_risk": self.overall_risk.value,
            "risk_factors": dict(self.dimensions),
            "mean_score": round(self.mean_score, 2),
            "reasons": list(self.reasons),
            "recommended_actions": list(self.recommended_actions),
            "insufficient_data": self.insufficient_data,
        }


class DocumentCategory(str, Enum):
    """Requirement categories, in checklist order"""
    LEGAL = "legal"
    TAX = "tax"
    EMPLOYMENT = "employment"
    FINANCIAL = "financial"
    COMPLIANCE = "compliance"

    @property
    def rank(self) -> int:
        return list(DocumentCategory).index(self)


class OrganizationType(str, Enum):
    CORPORATION = "corporation"
    LLC = "llc"
    SOLE_PROPRIETORSHIP = "sole_proprietorship"
    NONPROFIT = "nonprofit"
    NGO = "ngo"
    TRUST = "trust"
    COOPERATIVE = "cooperative"


@dataclass(frozen=True)
class ComplianceRequirement:
    """One checklist item"""
    doc_type: str
    name: str
    description: str
    mandatory: bool
    category: DocumentCategory
    validity_period_days: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.doc_type,
            "name": self.name,
            "description": self.description,
            "mandatory": self.mandatory,
            "category": self.category.value,
            "validity_period_days": self.validity_period_days,
        }


@dataclass(frozen=True)
class BeneficialOwner:
    name: str
    country: Optional[str] = None
    politically_exposed: bool = False
    sanctions_flagged: bool = False


@dataclass(frozen=True)
class OrganizationDocument:
    doc_type: str
    verified: bool = False


@dataclass(frozen=True)
class OrganizationProfile:
    """Organization facts feeding the scorer and the resolver."""
    org_type: Optional[OrganizationType] = None
    industry_code: Optional[str] = None
    annual_revenue: Optional[Decimal] = None
    employee_count: Optional[int] = None
    region: Optional[str] = None
    beneficial_owners: Optional[List[BeneficialOwner]] = None
    bank_verified: Optional[bool] = None
    bee_compliance_verified: Optional[bool] = None
    documents: List[OrganizationDocument] = field(default_factory=list)
    registration_number: Optional[str] = None
    tax_number: Optional[str] = None

    def has_document(self, doc_type: str, verified_only: bool = False) -> bool:
        return any(
            d.doc_type == doc_type and (d.verified or not verified_only)
            for d in self.documents
        )


@dataclass(frozen=True)
class TaxBreakdown:
    """Result of contractor tax computation"""
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    currency: str
    contractor_responsible: str = ""
    organization_responsible: str = ""
    required_certificates: List[str] = field(default_factory=list)
    compliance_notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": str(self.subtotal),
            "vat_rate": str(self.vat_rate),
            "vat_amount": str(self.vat_amount),
            "total_amount": str(self.total_amount),
            "currency": self.currency,
            "tax_implications": {
                "contractor_responsible": self.contractor_responsible,
                "organization_responsible": self.organization_responsible,
                "required_certificates": list(self.required_certificates),
                "compliance_notes": list(self.compliance_notes),
            },
        }


@dataclass(frozen=True)
class TaxInfo:
    """Contractor tax registration details carried on an invoice"""
    country: str
    tax_number: Optional[str] = None
    vat_registered: bool = False
    vat_number: Optional[str] = None
    company_registration_number: Optional[str] = None
    company_type: Optional[OrganizationType] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "tax_number": self.tax_number,
            "vat_registered": self.vat_registered,
            "vat_number": self.vat_number,
            "company_registration_number": self.company_registration_number,
            "company_type": self.company_type.value if self.company_type else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaxInfo":
        company_type = data.get("company_type")
        return cls(
            country=str(data.get("country") or "").upper(),
            tax_number=data.get("tax_number"),
            vat_registered=bool(data.get("vat_registered", False)),
            vat_number=data.get("vat_number"),
            company_registration_number=data.get("company_registration_number"),
            company_type=OrganizationType(company_type) if company_type else None,
        )


@dataclass(frozen=True)
class ClassificationDescriptor:
    """Static, human-readable description of a worker classification."""
    classification: str
    can_issue_invoices: bool
    is_employee: bool
    payment_method: str
    tax_obligations: str
    benefits: str
    labour_law_coverage: str
    work_arrangement: str
    equipment: str
    exclusivity: str
    documentation: List[str] = field(default_factory=list)
    compliance_risks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "classification": self.classification,
            "can_issue_invoices": self.can_issue_invoices,
            "is_employee": self.is_employee,
            "payment_method": self.payment_method,
            "tax_obligations": self.tax_obligations,
            "benefits": self.benefits,
            "labour_law_coverage": self.labour_law_coverage,
            "work_arrangement": self.work_arrangement,
            "equipment": self.equipment,
            "exclusivity": self.exclusivity,
            "documentation": list(self.documentation),
            "compliance_risks": list(self.compliance_risks),
        }


class TaxComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    PENDING = "pending"
    UNKNOWN = "unknown"


@dataclass
class ComplianceCheckResult:
    """Format-level organization checks (no external registry calls)"""
    company_registration_valid: bool = False
    tax_compliance_status: TaxComplianceStatus = TaxComplianceStatus.UNKNOWN
    additional_checks: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company_registration_valid": self.company_registration_valid,
            "tax_compliance_status": self.tax_compliance_status.value,
            "additional_checks": dict(self.additional_checks),
        }


@dataclass
class OrganizationValidation:
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    compliance_checks: ComplianceCheckResult
    risk_profile: RiskProfile

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "compliance_checks": self.compliance_checks.to_dict(),
            "risk_profile": self.risk_profile.to_dict(),
        }


@dataclass
class Success(Generic[T]):
    """Success result wrapper"""
    value: T
    metadata: dict = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False


@dataclass
class Failure:
    """Failure result wrapper"""
    error: str
    code: str = ""
    details: Optional[dict] = None

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True


Result = Union[Success[T], Failure]

"""
Base Compliance Provider - Abstract interface for jurisdiction providers
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

import structlog

from ..classification import ControlTestFactors, WorkerClassification, parse_classification
from ..documents import DocumentRequirementResolver
from ..exceptions import FormatViolation, LegalViolation
from ..risk import RiskPolicy, RiskScorer
from ..rules import ValidationRules
from ..types import (
    ClassificationDescriptor,
    ComplianceCheckResult,
    ComplianceRequirement,
    OrganizationProfile,
    OrganizationType,
    OrganizationValidation,
    RiskProfile,
    TaxBreakdown,
    TaxInfo,
)

CENTS = Decimal("0.01")


def to_cents(amount: Union[Decimal, int, str]) -> Decimal:
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TaxAdvisory:
    """Descriptive tax guidance attached to a breakdown. Never enforced."""
    contractor_responsible: str
    organization_responsible: str
    required_certificates: Tuple[str, ...] = ()
    compliance_notes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class JurisdictionConfig:
    """Immutable provider settings, shared read-only across calls"""
    country_code: str
    country_name: str
    currency: str
    vat_rate: Decimal
    rule_version: str
    validation_rules: ValidationRules
    risk_policy: RiskPolicy
    invoice_eligible: FrozenSet[WorkerClassification]
    payroll_only: FrozenSet[WorkerClassification]
    supported_organization_types: Tuple[OrganizationType, ...] = ()
    integrations: Tuple[str, ...] = ()
    api_endpoints: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country_code": self.country_code,
            "country_name": self.country_name,
            "currency": self.currency,
            "vat_rate": str(self.vat_rate),
            "rule_version": self.rule_version,
            "invoice_eligible": sorted(c.value for c in self.invoice_eligible),
            "payroll_only": sorted(c.value for c in self.payroll_only),
            "supported_organization_types": [t.value for t in self.supported_organization_types],
            "integrations": list(self.integrations),
        }


class ComplianceProvider(ABC):
    """
    Abstract base class for jurisdiction compliance providers.
    Implement this for each country.

    Holds only immutable configuration; instances are shared by every
    request and by reconciliation runs.
    """

    def __init__(self, config: JurisdictionConfig, documents: DocumentRequirementResolver):
        """
        Initialize provider.

        Args:
            config: Jurisdiction configuration
            documents: Document requirement resolver for the jurisdiction

        Raises:
            ValueError: if the classification partition is not disjoint
                and exhaustive
        """
        overlap = config.invoice_eligible & config.payroll_only
        if overlap:
            raise ValueError(
                f"{config.country_code}: classifications in both sets: "
                f"{sorted(c.value for c in overlap)}"
            )
        missing = set(WorkerClassification) - (config.invoice_eligible | config.payroll_only)
        if missing:
            raise ValueError(
                f"{config.country_code}: classifications not partitioned: "
                f"{sorted(c.value for c in missing)}"
            )

        self.config = config
        self.documents = documents
        self.scorer = RiskScorer(config.risk_policy)
        self.logger = structlog.get_logger().bind(jurisdiction=config.country_code)

    @property
    def country_code(self) -> str:
        return self.config.country_code

    @property
    def currency(self) -> str:
        return self.config.currency

    @property
    def rule_version(self) -> str:
        return self.config.rule_version

    @property
    def rules(self) -> ValidationRules:
        return self.config.validation_rules

    @property
    def invoice_eligible(self) -> FrozenSet[WorkerClassification]:
        return self.config.invoice_eligible

    @property
    def payroll_only(self) -> FrozenSet[WorkerClassification]:
        return self.config.payroll_only

    def is_invoice_eligible(self, classification: WorkerClassification) -> bool:
        return classification in self.config.invoice_eligible

    def is_payroll_only(self, classification: WorkerClassification) -> bool:
        return classification in self.config.payroll_only

    # =========================================================================
    # Format validation
    # =========================================================================

    def validate_tax_number(self, value: Optional[str]) -> bool:
        return self.rules.validate_tax_number(value)

    def validate_vat_number(self, value: Optional[str]) -> bool:
        return self.rules.validate_vat_number(value)

    def validate_company_registration(
        self, value: Optional[str], org_type: Optional[OrganizationType]
    ) -> bool:
        return self.rules.validate_company_registration(value, org_type)

    def require_valid_tax_info(self, tax_info: TaxInfo) -> None:
        """
        Check invoice tax details against the jurisdiction's formats.

        Raises:
            FormatViolation: naming the first offending field
        """
        name = self.config.country_name
        if not self.validate_tax_number(tax_info.tax_number):
            raise FormatViolation(
                "tax_number", f"Invalid {name} tax number format", tax_info.tax_number
            )
        if tax_info.vat_registered and not tax_info.vat_number:
            raise FormatViolation(
                "vat_number", "VAT number is required for VAT registered contractors"
            )
        if tax_info.vat_number and not self.validate_vat_number(tax_info.vat_number):
            raise FormatViolation(
                "vat_number", f"Invalid {name} VAT number format", tax_info.vat_number
            )
        if tax_info.company_registration_number and not self.validate_company_registration(
            tax_info.company_registration_number, tax_info.company_type
        ):
            raise FormatViolation(
                "company_registration_number",
                f"Invalid {name} company registration number format",
                tax_info.company_registration_number,
            )

    # =========================================================================
    # Scoring and documents
    # =========================================================================

    def get_required_documents(
        self,
        org_type: Optional[OrganizationType],
        annual_revenue: Optional[Decimal] = None,
        employee_count: Optional[int] = None,
    ) -> List[ComplianceRequirement]:
        return self.documents.resolve(org_type, annual_revenue, employee_count)

    def calculate_risk_score(self, profile: OrganizationProfile) -> RiskProfile:
        return self.scorer.score_organization(profile)

    def score_relationship(self, factors: ControlTestFactors) -> RiskProfile:
        return self.scorer.score_relationship(factors)

    # =========================================================================
    # Eligibility and tax
    # =========================================================================

    def ensure_invoice_eligible(
        self, classification: Union[str, WorkerClassification, None]
    ) -> WorkerClassification:
        """
        Parse a classification and refuse payroll-only values.

        Raises:
            UnknownClassification: value outside the closed set
            LegalViolation: classification must be paid through payroll
        """
        parsed = parse_classification(classification)
        if not self.is_invoice_eligible(parsed):
            raise LegalViolation(
                classification=parsed.value,
                jurisdiction=self.country_code,
                explanation=self.legal_violation_explanation(parsed),
                remediation=self.payroll_remediation(parsed),
            )
        return parsed

    def calculate_contractor_tax(
        self,
        subtotal: Union[Decimal, int, str],
        classification: Union[str, WorkerClassification],
        vat_registered: bool = False,
    ) -> TaxBreakdown:
        """
        Calculate VAT and total for a contractor invoice.

        Eligibility is checked before anything is computed.

        Args:
            subtotal: Invoice subtotal
            classification: Contractor classification
            vat_registered: Whether the contractor is VAT registered

        Returns:
            TaxBreakdown with amounts quantized to cents

        Raises:
            LegalViolation: payroll-only classification
            UnknownClassification: value outside the closed set
        """
        self.ensure_invoice_eligible(classification)

        amount = to_cents(subtotal)
        if amount < 0:
            raise ValueError("Subtotal cannot be negative")

        if vat_registered:
            rate = self.config.vat_rate
            vat_amount = to_cents(amount * rate / 100)
        else:
            rate = Decimal("0")
            vat_amount = to_cents(0)

        advisory = self.tax_advisory(vat_registered)
        return TaxBreakdown(
            subtotal=amount,
            vat_rate=rate,
            vat_amount=vat_amount,
            total_amount=to_cents(amount + vat_amount),
            currency=self.currency,
            contractor_responsible=advisory.contractor_responsible,
            organization_responsible=advisory.organization_responsible,
            required_certificates=list(advisory.required_certificates),
            compliance_notes=list(advisory.compliance_notes),
        )

    # =========================================================================
    # Jurisdiction-specific content
    # =========================================================================

    @abstractmethod
    def legal_violation_explanation(self, classification: WorkerClassification) -> str:
        """Statute-style explanation of why a classification cannot invoice"""
        pass

    @abstractmethod
    def payroll_remediation(self, classification: WorkerClassification) -> List[str]:
        """Steps to pay a payroll-only worker lawfully"""
        pass

    @abstractmethod
    def tax_advisory(self, vat_registered: bool) -> TaxAdvisory:
        pass

    @abstractmethod
    def describe_classification(self, classification: WorkerClassification) -> ClassificationDescriptor:
        """
        Static descriptor of a classification for UI display.

        Args:
            classification: Worker classification

        Returns:
            ClassificationDescriptor
        """
        pass

    @abstractmethod
    def classification_requirements(
        self, classification: WorkerClassification
    ) -> List[ComplianceRequirement]:
        """Documents a worker of this classification should hold"""
        pass

    @abstractmethod
    def country_specific_requirements(self, classification: WorkerClassification) -> Dict[str, Any]:
        """Labour-law flags stored on employment types for this classification"""
        pass

    @abstractmethod
    def default_employment_types(self) -> List[Dict[str, Any]]:
        """Employment type templates seeded for new tenants"""
        pass

    @abstractmethod
    def perform_compliance_checks(self, profile: OrganizationProfile) -> ComplianceCheckResult:
        pass

    @abstractmethod
    def build_verification_checklist(self, profile: OrganizationProfile) -> List[Dict[str, Any]]:
        """
        Group document requirements into a verification checklist.

        Returns:
            List of {category, items: [{requirement, mandatory, completed}]}
        """
        pass

    @abstractmethod
    def validate_organization(self, profile: OrganizationProfile) -> OrganizationValidation:
        """
        Validate complete organization data.

        Returns:
            OrganizationValidation with errors, warnings, checks and risk
        """
        pass

"""
South Africa Compliance Provider

Labour law context:
- Basic Conditions of Employment Act (BCEA) and Labour Relations Act (LRA)
  govern employees; independent contractors fall outside both
- Employees are paid through payroll with PAYE, UIF and SDL deductions
- VAT registration is compulsory above R1 million turnover (rate 15%)
- Temporary Employment Services (TES) placements are employment
"""
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, List

from ..classification import WorkerClassification as WC
from ..documents import DocumentRequirementResolver, ThresholdRequirement
from ..risk import ControlRule, RiskPolicy
from ..rules import ValidationRules
from ..types import (
    ClassificationDescriptor,
    ComplianceCheckResult,
    ComplianceRequirement,
    DocumentCategory,
    OrganizationProfile,
    OrganizationType,
    OrganizationValidation,
    TaxComplianceStatus,
)
from .base import ComplianceProvider, JurisdictionConfig, TaxAdvisory

RULE_VERSION = "ZA-2024.12"

VAT_REGISTRATION_THRESHOLD = Decimal("1000000")
SDL_THRESHOLD = Decimal("500000")
BEE_THRESHOLD = Decimal("10000000")

INVOICE_ELIGIBLE = frozenset({WC.INDEPENDENT_CONTRACTOR, WC.FREELANCER, WC.CONSULTANT})
PAYROLL_ONLY = frozenset({
    WC.FIXED_TERM_EMPLOYEE,
    WC.TEMPORARY_EMPLOYEE,
    WC.CASUAL_WORKER,
    WC.LABOUR_BROKER_EMPLOYEE,
})

VALIDATION_RULES = ValidationRules.compile(
    tax_number=r"^\d{10}$",
    vat_number=r"^4\d{9}$",
    phone_number=r"^(\+27|0)[1-9]\d{8}$",
    postal_code=r"^\d{4}$",
    company_registration={
        OrganizationType.CORPORATION: r"^\d{4}/\d{6}/\d{2}$",
        OrganizationType.LLC: r"^CK\d{4}/\d{6}/\d{2}$",
        OrganizationType.NONPROFIT: r"^NPO\d{3}-\d{3}$",
        OrganizationType.NGO: r"^(NPO\d{3}-\d{3}|PBO\d{9})$",
        OrganizationType.TRUST: r"^IT\d{4}/\d{6}$",
        OrganizationType.SOLE_PROPRIETORSHIP: r"^\d{13}$",
    },
)

CONTROL_RULES = (
    ControlRule("supervised", "control", 5,
                "Direct supervision is a key indicator of employment",
                "Remove day-to-day supervision and contract for deliverables"),
    ControlRule("receives_training", "control", 2,
                "Worker receives company training"),
    ControlRule("fixed_hours", "schedule", 5,
                "Fixed working hours strongly suggest employment",
                "Allow the worker to set their own hours"),
    ControlRule("fixed_workplace", "integration", 4,
                "Fixed workplace suggests employee relationship"),
    ControlRule("uses_company_equipment", "integration", 4,
                "Using company equipment suggests employee relationship",
                "Contractor should use own tools and equipment"),
    ControlRule("has_other_clients", "exclusivity", 5,
                "Exclusive service suggests employee relationship",
                "Confirm the worker is free to serve other clients"),
    ControlRule("can_substitute", "exclusivity", 2,
                "Worker cannot send a substitute"),
    ControlRule("paid_regular_salary", "remuneration", 5,
                "Regular salary is a strong indicator of employment",
                "Pay against invoices for deliverables, not a fixed salary"),
    ControlRule("has_employee_benefits", "remuneration", 3,
                "Worker receives employee benefits",
                "Consider payroll classification with BCEA benefits"),
)

RISK_POLICY = RiskPolicy(
    organization_baselines=MappingProxyType({
        "industry": 5,
        "geography": 2,
        "ownership": 5,
        "compliance": 5,
        "financial": 5,
    }),
    control_rules=CONTROL_RULES,
    relationship_baseline=1,
    home_country="ZA",
    high_risk_industries=frozenset({"cryptocurrency", "money_transfer", "gambling", "adult_entertainment"}),
    medium_risk_industries=frozenset({"retail", "hospitality", "transport", "construction"}),
    low_risk_industries=frozenset({"education", "healthcare", "government", "nonprofit"}),
    high_risk_regions=frozenset({"limpopo", "eastern cape", "kwazulu-natal", "north west"}),
    medium_risk_regions=frozenset({"free state", "mpumalanga", "northern cape"}),
    low_risk_regions=frozenset({"western cape", "gauteng"}),
    points=MappingProxyType({
        "industry_high": 3,
        "industry_low": 3,
        "region_high": 2,
        "region_medium": 1,
        "region_low": 1,
        "complex_ownership": 1,
        "politically_exposed": 3,
        "foreign_ownership": 2,
        "large_business": 1,
        "very_small_business": 2,
        "unverified_banking": 3,
        "missing_tax_registration": 2,
        "missing_vat_registration": 2,
        "empowerment_unverified": 1,
    }),
    large_revenue=Decimal("50000000"),
    small_revenue=Decimal("100000"),
    unverified_banking_revenue=Decimal("1000000"),
    vat_revenue=VAT_REGISTRATION_THRESHOLD,
    empowerment_revenue=BEE_THRESHOLD,
)


def _req(doc_type, name, description, category, mandatory=True, validity=None):
    return ComplianceRequirement(
        doc_type=doc_type,
        name=name,
        description=description,
        mandatory=mandatory,
        category=category,
        validity_period_days=validity,
    )


LEGAL = DocumentCategory.LEGAL
TAX = DocumentCategory.TAX
EMPLOYMENT = DocumentCategory.EMPLOYMENT
FINANCIAL = DocumentCategory.FINANCIAL
COMPLIANCE = DocumentCategory.COMPLIANCE

DOCUMENTS = DocumentRequirementResolver(
    base=(
        _req("certificate_of_incorporation", "Certificate of Incorporation/Registration",
             "CIPC issued certificate of incorporation", LEGAL),
        _req("tax_registration", "SARS Tax Registration",
             "South African Revenue Service tax registration", TAX),
        _req("bank_statement", "Bank Statement (3 months)",
             "Recent bank statements from South African bank", FINANCIAL, validity=90),
        _req("utility_bill", "Proof of Business Address",
             "Municipal rates or utility bill", LEGAL, validity=90),
    ),
    by_org_type=MappingProxyType({
        OrganizationType.CORPORATION: (
            _req("memorandum_of_association", "Memorandum of Incorporation (MOI)",
                 "CIPC filed Memorandum of Incorporation", LEGAL),
            _req("directors_resolution", "Board Resolution",
                 "Resolution authorizing business operations", LEGAL),
            _req("beneficial_ownership_disclosure", "Beneficial Ownership Declaration",
                 "Declaration of beneficial owners (>25% shareholding)", COMPLIANCE),
        ),
        OrganizationType.LLC: (
            _req("memorandum_of_association", "Founding Statement",
                 "Close Corporation founding statement", LEGAL),
            _req("beneficial_ownership_disclosure", "Member Declaration",
                 "Declaration of CC members and interests", COMPLIANCE),
        ),
        OrganizationType.SOLE_PROPRIETORSHIP: (
            _req("id_document", "Owner Identity Document",
                 "South African ID or passport", LEGAL),
            _req("business_registration", "Municipal Business License",
                 "Municipal trading license or business registration", LEGAL),
        ),
        OrganizationType.NONPROFIT: (
            _req("nonprofit_determination_letter", "NPO Registration Certificate",
                 "Department of Social Development NPO certificate", LEGAL),
            _req("constitution", "NPO Constitution",
                 "Organizational constitution and bylaws", LEGAL),
            _req("board_resolution", "Board Resolution",
                 "Board resolution for business operations", LEGAL),
        ),
        OrganizationType.NGO: (
            _req("nonprofit_determination_letter", "NPO/PBO Registration",
                 "NPO or Public Benefit Organization certificate", LEGAL),
            _req("constitution", "NGO Constitution",
                 "Organizational constitution", LEGAL),
            _req("funding_agreements", "Funding Documentation",
                 "Primary funding source agreements", FINANCIAL, mandatory=False),
        ),
        OrganizationType.TRUST: (
            _req("trust_deed", "Trust Deed",
                 "Master of High Court registered trust deed", LEGAL),
            _req("trustees_resolution", "Trustees Resolution",
                 "Resolution authorizing business activities", LEGAL),
        ),
    }),
    revenue_requirements=(
        ThresholdRequirement(VAT_REGISTRATION_THRESHOLD, _req(
            "vat_registration_certificate", "VAT Registration Certificate",
            "SARS VAT registration certificate", TAX)),
        ThresholdRequirement(BEE_THRESHOLD, _req(
            "bee_certificate", "B-BBEE Certificate",
            "Broad-Based Black Economic Empowerment certificate", COMPLIANCE, validity=365)),
    ),
    employer_requirements=(
        _req("paye_registration", "PAYE Registration",
             "Pay-As-You-Earn tax registration", EMPLOYMENT),
        _req("uif_registration", "UIF Registration",
             "Unemployment Insurance Fund registration", EMPLOYMENT),
        _req("workermens_compensation_certificate", "Workers Compensation Certificate",
             "Compensation Fund certificate of good standing", EMPLOYMENT),
    ),
    employer_revenue_requirements=(
        ThresholdRequirement(SDL_THRESHOLD, _req(
            "sdl_registration", "Skills Development Levy Registration",
            "SDL registration with SETA", EMPLOYMENT)),
    ),
)

DESCRIPTORS = {
    WC.INDEPENDENT_CONTRACTOR: dict(
        payment_method="Must issue invoices only - no salary payments",
        tax_obligations="Self-responsible for income tax, VAT (if applicable)",
        benefits="No BCEA benefits - not entitled to leave, overtime, etc.",
        labour_law_coverage="Not covered by BCEA - commercial relationship",
        work_arrangement="Must work independently without supervision",
        equipment="Must use own tools/equipment where possible",
        exclusivity="Should have multiple clients or ability to work for others",
        compliance_risks=[
            "Deemed employment if too much control exercised",
            "SARS may reclassify as employee for tax purposes",
            "Labour court may find employment relationship exists",
        ],
    ),
    WC.FREELANCER: dict(
        payment_method="Invoice-based payments for specific projects/deliverables",
        tax_obligations="Self-responsible for income tax, VAT (if applicable)",
        benefits="No employee benefits - commercial service provider",
        labour_law_coverage="Commercial service agreement - not employment",
        work_arrangement="Project-based work with delivery deadlines",
        equipment="Uses own equipment and works from own location",
        exclusivity="Typically works for multiple clients",
        compliance_risks=[
            "Regular, ongoing work may suggest employment",
            "Fixed hours/location may indicate employee relationship",
        ],
    ),
    WC.CONSULTANT: dict(
        payment_method="Professional fees via invoices",
        tax_obligations="Self-responsible for income tax, VAT (if applicable)",
        benefits="No employee benefits - professional service provider",
        labour_law_coverage="Professional services agreement - not employment",
        work_arrangement="Advisory/expert services with professional independence",
        equipment="Professional tools and workspace independent of client",
        exclusivity="Should maintain multiple client relationships",
        compliance_risks=[
            "Day-to-day operational work may suggest employment",
            "Long-term exclusive arrangements may indicate employment",
        ],
    ),
    WC.FIXED_TERM_EMPLOYEE: dict(
        payment_method="Salary/wages through payroll with PAYE deduction",
        tax_obligations="Company deducts PAYE, UIF, SDL, and submits to SARS",
        benefits="Full BCEA entitlements: leave, overtime, public holidays",
        labour_law_coverage="Protected under BCEA and Labour Relations Act",
        work_arrangement="Integrated into company operations with supervision",
        equipment="Company provides necessary tools and equipment",
        exclusivity="Exclusive service during working hours",
        compliance_risks=[
            "Cannot exceed 3 months without permanent employment",
            "Automatic conversion to permanent after qualifying period",
            "Must justify fixed-term necessity",
        ],
    ),
    WC.TEMPORARY_EMPLOYEE: dict(
        payment_method="Hourly/daily wages through payroll or TES",
        tax_obligations="PAYE, UIF deductions by company or labour broker",
        benefits="Prorated BCEA benefits based on service period",
        labour_law_coverage="Protected under TES Act and BCEA after qualifying period",
        work_arrangement="Temporary assignment with defined end date",
        equipment="Company/client provides necessary equipment",
        exclusivity="Service exclusively to assigned client",
        compliance_risks=[
            "TES Act compliance required if via labour broker",
            "Client and broker joint liability",
            "May acquire permanent rights after 3 months",
        ],
    ),
    WC.CASUAL_WORKER: dict(
        payment_method="Irregular wage payments when work is available",
        tax_obligations="PAYE deductions if earnings exceed threshold",
        benefits="Limited BCEA benefits after 4 months continuous service",
        labour_law_coverage="Protected under BCEA after qualifying period",
        work_arrangement="Irregular, as-needed work availability",
        equipment="Company provides equipment when working",
        exclusivity="Not exclusive - can work elsewhere when available",
        compliance_risks=[
            "Regular pattern may create permanent employment",
            "BCEA benefits kick in after qualifying period",
            "Must genuinely be irregular work",
        ],
    ),
    WC.LABOUR_BROKER_EMPLOYEE: dict(
        payment_method="Wages through labour broker payroll system",
        tax_obligations="Labour broker handles all tax deductions and submissions",
        benefits="Full BCEA benefits through broker arrangement",
        labour_law_coverage="Protected under TES Act - client and broker jointly liable",
        work_arrangement="Placed at client but employed by broker",
        equipment="Client provides equipment, broker manages employment",
        exclusivity="Service to assigned client during placement",
        compliance_risks=[
            "TES Act strict compliance requirements",
            "Joint and several liability with client",
            "Equal treatment requirements",
            "Prohibited for certain occupations",
        ],
    ),
}

WORKER_DOCUMENTS = {
    WC.INDEPENDENT_CONTRACTOR: (
        _req("contractor_agreement", "Signed independent contractor agreement",
             "Commercial agreement excluding an employment relationship", LEGAL),
        _req("tax_clearance_certificate", "Tax clearance certificate",
             "SARS tax compliance status PIN or certificate", TAX),
        _req("vat_registration_certificate", "VAT registration (if turnover > R1 million)",
             "SARS VAT registration certificate", TAX, mandatory=False),
        _req("professional_indemnity_insurance", "Professional indemnity insurance (recommended)",
             "Cover for professional liability", FINANCIAL, mandatory=False),
    ),
    WC.FREELANCER: (
        _req("service_agreement", "Service agreement for each project",
             "Project scope and deliverables", LEGAL),
        _req("tax_clearance_certificate", "Tax clearance certificate",
             "SARS tax compliance status PIN or certificate", TAX),
        _req("portfolio", "Portfolio of work/credentials",
             "Evidence of independent trade", COMPLIANCE, mandatory=False),
    ),
    WC.CONSULTANT: (
        _req("professional_services_agreement", "Professional services agreement",
             "Advisory engagement terms", LEGAL),
        _req("professional_qualifications", "Professional qualifications/certifications",
             "Proof of professional standing", COMPLIANCE),
        _req("professional_indemnity_insurance", "Professional indemnity insurance",
             "Cover for professional liability", FINANCIAL),
        _req("tax_clearance_certificate", "Tax clearance certificate",
             "SARS tax compliance status PIN or certificate", TAX),
    ),
    WC.FIXED_TERM_EMPLOYEE: (
        _req("employment_contract", "Fixed-term employment contract",
             "BCEA compliant contract with end date and justification", LEGAL),
        _req("irp5_certificate", "IRP5 tax certificate",
             "Employee tax certificate issued by the employer", TAX),
        _req("uif_registration", "UIF registration",
             "Unemployment Insurance Fund registration", EMPLOYMENT),
        _req("skills_development_plan", "Skills development plan",
             "Workplace skills plan", EMPLOYMENT, mandatory=False),
    ),
    WC.TEMPORARY_EMPLOYEE: (
        _req("employment_contract", "Temporary employment contract",
             "Contract with defined assignment period", LEGAL),
        _req("tes_registration", "TES registration (if via labour broker)",
             "Temporary Employment Services registration", COMPLIANCE, mandatory=False),
        _req("assignment_letter", "Assignment letter",
             "Client assignment details", EMPLOYMENT),
        _req("irp5_certificate", "IRP5 tax certificate",
             "Employee tax certificate issued by the employer", TAX),
    ),
    WC.CASUAL_WORKER: (
        _req("casual_work_agreement", "Casual work agreement",
             "Terms for irregular work", LEGAL),
        _req("attendance_records", "Attendance records",
             "Record of days worked", EMPLOYMENT),
        _req("payment_records", "Payment records",
             "Record of wages paid", FINANCIAL),
        _req("irp5_certificate", "IRP5 (if PAYE applicable)",
             "Employee tax certificate issued by the employer", TAX, mandatory=False),
    ),
    WC.LABOUR_BROKER_EMPLOYEE: (
        _req("tes_registration", "TES (labour broker) registration certificate",
             "Temporary Employment Services registration", COMPLIANCE),
        _req("employment_contract", "Tripartite employment contract",
             "Contract between worker, broker and client", LEGAL),
        _req("placement_agreement", "Placement agreement",
             "Broker and client placement terms", LEGAL),
        _req("joint_liability_acknowledgment", "Joint liability acknowledgment",
             "Client acknowledgment of joint and several liability", COMPLIANCE),
    ),
}

CONTRACTOR_REQUIREMENTS = MappingProxyType({
    "must_pass_control_test": True,
    "cannot_be_supervised": True,
    "must_use_own_equipment": True,
    "can_work_multiple_clients": True,
    "excluded_from_bcea": True,
    "no_employee_benefits": True,
})

EMPLOYEE_REQUIREMENTS = MappingProxyType({
    "covered_by_bcea": True,
    "entitled_to_leave": True,
    "entitled_to_overtime": True,
    "paye_withholding": True,
    "uif_contributions": True,
})


class SouthAfricaComplianceProvider(ComplianceProvider):
    """South African labour law and SARS compliance rules"""

    def __init__(self, config: JurisdictionConfig = None):
        super().__init__(config or self.default_config(), DOCUMENTS)

    @staticmethod
    def default_config() -> JurisdictionConfig:
        return JurisdictionConfig(
            country_code="ZA",
            country_name="South Africa",
            currency="ZAR",
            vat_rate=Decimal("15"),
            rule_version=RULE_VERSION,
            validation_rules=VALIDATION_RULES,
            risk_policy=RISK_POLICY,
            invoice_eligible=INVOICE_ELIGIBLE,
            payroll_only=PAYROLL_ONLY,
            supported_organization_types=tuple(OrganizationType),
            integrations=("SARS", "CIPC", "CIFA"),
            api_endpoints=MappingProxyType({
                "sars": "https://api.sars.gov.za/v1",
                "cipc": "https://api.cipc.co.za/v1",
                "cifa": "https://api.cifa.co.za/v1",
            }),
        )

    def legal_violation_explanation(self, classification: WC) -> str:
        return (
            f"South African Labor Law Violation: {classification.value} cannot issue invoices. "
            "This is an EMPLOYEE relationship requiring salary payments with PAYE/UIF "
            "deductions and BCEA benefits. Use payroll system, not invoicing."
        )

    def payroll_remediation(self, classification: WC) -> List[str]:
        steps = [
            "Pay this worker through the payroll system, not invoicing",
            "Deduct PAYE and UIF contributions and submit to SARS",
            "Apply BCEA entitlements (leave, overtime, public holidays)",
        ]
        if classification == WC.LABOUR_BROKER_EMPLOYEE:
            steps.append("Route wages through the registered labour broker (TES)")
        elif classification == WC.TEMPORARY_EMPLOYEE:
            steps.append("Confirm TES Act obligations if placed via a labour broker")
        return steps

    def tax_advisory(self, vat_registered: bool) -> TaxAdvisory:
        if vat_registered:
            contractor = (
                "VAT registration and returns (15%), Income tax, "
                "Independent contractor status verification"
            )
        else:
            contractor = "Income tax, Independent contractor status verification"

        certificates = ["Tax clearance certificate", "Independent contractor declaration"]
        if vat_registered:
            certificates.append("VAT registration certificate")
        certificates.append("Proof of separate business registration (if applicable)")

        return TaxAdvisory(
            contractor_responsible=contractor,
            organization_responsible=(
                "Verify true contractor status to avoid deemed employment. "
                "Withholding tax may apply for non-residents. "
                "Ensure no control/supervision that would create employment relationship."
            ),
            required_certificates=tuple(certificates),
            compliance_notes=(
                'Must pass "control test" under SA Labour Relations Act',
                "No fixed working hours or workplace supervision",
                "Contractor uses own tools/equipment",
                "Can work for multiple clients simultaneously",
                "No employee benefits (leave, UIF, medical aid, etc.)",
            ),
        )

    def describe_classification(self, classification: WC) -> ClassificationDescriptor:
        eligible = self.is_invoice_eligible(classification)
        return ClassificationDescriptor(
            classification=classification.value,
            can_issue_invoices=eligible,
            is_employee=not eligible,
            documentation=[r.name for r in WORKER_DOCUMENTS[classification]],
            **DESCRIPTORS[classification],
        )

    def classification_requirements(self, classification: WC) -> List[ComplianceRequirement]:
        return sorted(WORKER_DOCUMENTS[classification], key=lambda r: r.category.rank)

    def country_specific_requirements(self, classification: WC) -> Dict[str, Any]:
        if self.is_invoice_eligible(classification):
            return dict(CONTRACTOR_REQUIREMENTS)
        return dict(EMPLOYEE_REQUIREMENTS)

    def default_employment_types(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": "Permanent Employee (South African Labour Relations Act)",
                "code": "SA_PERM_EMP",
                "category": "permanent",
                "classification": "full_time",
                "work_hour_rules": {
                    "standard_hours_per_week": 45,
                    "max_hours_per_day": 9,
                    "max_hours_per_week": 45,
                    "overtime_threshold": {"daily": 9, "weekly": 45},
                    "overtime_rates": {"standard_overtime": 1.5, "weekend_rate": 1.5, "holiday_rate": 2.0},
                },
                "payroll_settings": {"invoice_required": False, "tax_withholding": True},
                "compliance": {
                    "jurisdiction": self.country_code,
                    "labour_laws": [
                        "Basic Conditions of Employment Act",
                        "Labour Relations Act",
                        "Employment Equity Act",
                    ],
                    "country_specific_requirements": dict(EMPLOYEE_REQUIREMENTS),
                },
                "entitlements": {
                    "paid_time_off": {"annual_leave_days": 21, "sick_leave_days": 30, "parental_leave_days": 10},
                },
                "is_default": True,
            },
            {
                "name": "Independent Contractor (True Contractor - Not Employee)",
                "code": "SA_INDEP_CONTRACT",
                "category": "contract",
                "classification": WC.INDEPENDENT_CONTRACTOR.value,
                "work_hour_rules": {
                    "standard_hours_per_week": 40,
                    "max_hours_per_day": 12,
                    "max_hours_per_week": 60,
                    "overtime_rates": {"standard_overtime": 1.0},
                },
                "payroll_settings": {"invoice_required": True, "tax_withholding": False},
                "compliance": {
                    "jurisdiction": self.country_code,
                    "labour_laws": ["Income Tax Act", "VAT Act", "Labour Relations Act (exclusion)"],
                    "certification_required": ["Tax Clearance Certificate", "Independent Contractor Declaration"],
                    "country_specific_requirements": dict(CONTRACTOR_REQUIREMENTS),
                },
                "entitlements": {
                    "paid_time_off": {"annual_leave_days": 0, "sick_leave_days": 0, "parental_leave_days": 0},
                },
                "is_default": True,
            },
        ]

    def perform_compliance_checks(self, profile: OrganizationProfile) -> ComplianceCheckResult:
        checks = ComplianceCheckResult(
            company_registration_valid=self.validate_company_registration(
                profile.registration_number, profile.org_type
            ),
        )

        # Format check only; SARS status lookups are out of process
        if self.validate_tax_number(profile.tax_number):
            checks.tax_compliance_status = TaxComplianceStatus.COMPLIANT

        revenue = profile.annual_revenue
        if revenue is not None and revenue > VAT_REGISTRATION_THRESHOLD:
            vat_verified = profile.has_document("vat_registration_certificate", verified_only=True)
            checks.additional_checks["vat_registration_valid"] = vat_verified
            if not vat_verified:
                checks.tax_compliance_status = TaxComplianceStatus.NON_COMPLIANT

        if revenue is not None and revenue > BEE_THRESHOLD:
            checks.additional_checks["bee_status"] = (
                "verified" if profile.bee_compliance_verified else "not_applicable"
            )

        flagged = [o.name for o in profile.beneficial_owners or [] if o.sanctions_flagged]
        checks.additional_checks["directors_check"] = {
            "all_directors_verified": not flagged,
            "flagged_directors": flagged,
        }
        checks.additional_checks["cifa_status"] = "pending"
        return checks

    def build_verification_checklist(self, profile: OrganizationProfile) -> List[Dict[str, Any]]:
        revenue = profile.annual_revenue or Decimal("0")
        employees = profile.employee_count or 0

        def item(requirement: str, doc_type: str, mandatory: bool) -> Dict[str, Any]:
            return {
                "requirement": requirement,
                "document_type": doc_type,
                "mandatory": mandatory,
                "completed": profile.has_document(doc_type, verified_only=True),
            }

        checklist = [
            {
                "category": "Legal Documentation",
                "items": [
                    item("CIPC Certificate of Incorporation", "certificate_of_incorporation", True),
                    item(
                        "Memorandum of Incorporation (if applicable)",
                        "memorandum_of_association",
                        profile.org_type in (OrganizationType.CORPORATION, OrganizationType.LLC),
                    ),
                ],
            },
            {
                "category": "SARS Tax Compliance",
                "items": [
                    item("SARS Tax Registration", "tax_registration", True),
                    item("VAT Registration Certificate", "vat_registration_certificate",
                         revenue > VAT_REGISTRATION_THRESHOLD),
                    item("PAYE Registration", "paye_registration", employees > 0),
                ],
            },
        ]

        if employees > 0:
            checklist.append({
                "category": "Employment Compliance",
                "items": [
                    item("UIF Registration", "uif_registration", True),
                    item("Workers Compensation Certificate", "workermens_compensation_certificate", True),
                    item("Skills Development Levy Registration", "sdl_registration", revenue > SDL_THRESHOLD),
                ],
            })

        if revenue > BEE_THRESHOLD:
            checklist.append({
                "category": "B-BBEE Compliance",
                "items": [item("B-BBEE Certificate", "bee_certificate", True)],
            })

        return checklist

    def validate_organization(self, profile: OrganizationProfile) -> OrganizationValidation:
        errors: List[str] = []
        warnings: List[str] = []

        if not self.validate_company_registration(profile.registration_number, profile.org_type):
            errors.append("Invalid South African company registration number format")
        if not self.validate_tax_number(profile.tax_number):
            errors.append("Invalid South African tax number format")

        revenue = profile.annual_revenue
        if revenue is not None and revenue > VAT_REGISTRATION_THRESHOLD:
            if not profile.has_document("vat_registration_certificate"):
                errors.append("VAT registration required for businesses with revenue > R1,000,000")

        if profile.employee_count and profile.employee_count > 0:
            if not profile.has_document("paye_registration"):
                errors.append("PAYE registration required when employing staff")
            if not profile.has_document("uif_registration"):
                errors.append("UIF registration required when employing staff")

        checks = self.perform_compliance_checks(profile)
        risk = self.calculate_risk_score(profile)

        if risk.overall_risk.requires_advisory:
            warnings.append("Organization flagged as high risk - enhanced due diligence required")
        if risk.insufficient_data:
            warnings.append("Risk assessment incomplete - insufficient data provided")

        self.logger.info(
            "organization_validated",
            is_valid=not errors,
            error_count=len(errors),
            overall_risk=risk.overall_risk.value,
        )

        return OrganizationValidation(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            compliance_checks=checks,
            risk_profile=risk,
        )

"""
Contractor Invoice Models - Pydantic request/response models
"""
from datetime import date
from typing import Optional, List, Dict, Any
from decimal import Decimal
from pydantic import BaseModel, Field

from src.compliance import ControlTestFactors, InvoiceDraft, LineItem, TaxInfo
from src.compliance.invoices import LineUnit
from src.compliance.types import OrganizationType
from src.compliance.classification import WorkDuration, WorkType


class ControlFactorsModel(BaseModel):
    """Control-test facts; omitted facts stay unknown"""
    fixed_workplace: Optional[bool] = None
    fixed_hours: Optional[bool] = None
    supervised: Optional[bool] = None
    uses_company_equipment: Optional[bool] = None
    has_other_clients: Optional[bool] = None
    paid_regular_salary: Optional[bool] = None
    receives_training: Optional[bool] = None
    has_employee_benefits: Optional[bool] = None
    can_substitute: Optional[bool] = None

    def to_factors(self) -> ControlTestFactors:
        return ControlTestFactors(**self.model_dump())


class TaxInfoModel(BaseModel):
    country: str = "ZA"
    tax_number: Optional[str] = None
    vat_registered: bool = False
    vat_number: Optional[str] = None
    company_registration_number: Optional[str] = None
    company_type: Optional[OrganizationType] = None

    def to_tax_info(self) -> TaxInfo:
        return TaxInfo(
            country=self.country.strip().upper(),
            tax_number=self.tax_number,
            vat_registered=self.vat_registered,
            vat_number=self.vat_number,
            company_registration_number=self.company_registration_number,
            company_type=self.company_type,
        )


class LineItemModel(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: Decimal
    unit_rate: Decimal
    units: LineUnit = LineUnit.HOURS

    def to_line_item(self) -> LineItem:
        return LineItem(
            description=self.description,
            quantity=self.quantity,
            unit_rate=self.unit_rate,
            units=self.units,
        )


class EligibilityRequest(BaseModel):
    """Check whether a classification may invoice"""
    classification: str
    factors: ControlFactorsModel = Field(default_factory=ControlFactorsModel)
    jurisdiction: Optional[str] = None


class RecommendationRequest(BaseModel):
    factors: ControlFactorsModel = Field(default_factory=ControlFactorsModel)
    work_type: Optional[WorkType] = None
    work_duration: Optional[WorkDuration] = None
    jurisdiction: Optional[str] = None


class ContractorInvoiceCreate(BaseModel):
    """Create contractor invoice request"""
    organization_id: str
    contractor_id: str
    contractor_classification: str
    tax_info: TaxInfoModel
    currency: str = "ZAR"
    line_items: List[LineItemModel] = Field(default_factory=list)
    control_factors: ControlFactorsModel = Field(default_factory=ControlFactorsModel)
    invoice_number: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    notes: Optional[str] = None

    def to_draft(self, invoice_number: Optional[str] = None) -> InvoiceDraft:
        return InvoiceDraft(
            organization_id=self.organization_id,
            contractor_id=self.contractor_id,
            contractor_classification=self.contractor_classification,
            tax_info=self.tax_info.to_tax_info(),
            currency=self.currency.strip().upper(),
            line_items=tuple(item.to_line_item() for item in self.line_items),
            control_factors=self.control_factors.to_factors(),
            invoice_number=invoice_number or self.invoice_number,
            period_start=self.period_start,
            period_end=self.period_end,
            notes=self.notes,
        )


class ReclassifyRequest(BaseModel):
    classification: str
    control_factors: Optional[ControlFactorsModel] = None
    reason: Optional[str] = None


class ContractorInvoiceResponse(BaseModel):
    """Stored contractor invoice"""
    id: str
    organization_id: str
    contractor_id: str
    invoice_number: Optional[str]
    contractor_classification: str
    tax_info: Dict[str, Any]
    currency: str
    line_items: List[Dict[str, Any]]
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    status: str
    control_factors: Dict[str, Any]
    verification: Dict[str, Any]
    compliance_checks: Dict[str, Any]
    supersedes: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    annotations: List[Dict[str, Any]] = Field(default_factory=list)


class ContractorInvoicePage(BaseModel):
    items: List[ContractorInvoiceResponse]
    next_after_id: Optional[str] = None

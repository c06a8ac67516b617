"""
Invoice data shapes.

InvoiceDraft is caller input and is never persisted. StoredInvoice is the
raw row view returned by storage; it may describe legacy data that current
rules reject, which is exactly what reconciliation looks for.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .classification import ControlTestFactors
from .types import TaxInfo


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    SUPERSEDED = "superseded"


class LineUnit(str, Enum):
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    FIXED = "fixed"


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: Decimal
    unit_rate: Decimal
    units: LineUnit = LineUnit.HOURS

    @property
    def amount(self) -> Decimal:
        return Decimal(self.quantity) * Decimal(self.unit_rate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "quantity": str(self.quantity),
            "unit_rate": str(self.unit_rate),
            "units": self.units.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        return cls(
            description=data["description"],
            quantity=Decimal(str(data["quantity"])),
            unit_rate=Decimal(str(data["unit_rate"])),
            units=LineUnit(data.get("units", LineUnit.HOURS.value)),
        )


@dataclass(frozen=True)
class InvoiceDraft:
    """Unvalidated invoice input"""
    organization_id: str
    contractor_id: str
    contractor_classification: str
    tax_info: TaxInfo
    currency: str
    line_items: Tuple[LineItem, ...]
    control_factors: ControlTestFactors = field(default_factory=ControlTestFactors)
    invoice_number: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    notes: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return sum((item.amount for item in self.line_items), Decimal("0"))


@dataclass(frozen=True)
class ComplianceAnnotation:
    """Append-only compliance note attached to a stored invoice"""
    kind: str
    classification: str
    rule_version: str
    message: str
    recommendation: str
    detected_at: datetime
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "classification": self.classification,
            "rule_version": self.rule_version,
            "message": self.message,
            "recommendation": self.recommendation,
            "detected_at": self.detected_at.isoformat(),
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComplianceAnnotation":
        return cls(
            kind=data["kind"],
            classification=data["classification"],
            rule_version=data["rule_version"],
            message=data["message"],
            recommendation=data.get("recommendation", ""),
            detected_at=datetime.fromisoformat(data["detected_at"]),
            details=data.get("details") or {},
        )


@dataclass
class StoredInvoice:
    """Invoice row as read back from storage"""
    id: str
    organization_id: str
    contractor_id: str
    invoice_number: Optional[str]
    classification: str
    tax_info: Dict[str, Any]
    currency: str
    line_items: List[Dict[str, Any]]
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    status: str
    control_factors: Dict[str, Any] = field(default_factory=dict)
    verification: Dict[str, Any] = field(default_factory=dict)
    compliance_checks: Dict[str, Any] = field(default_factory=dict)
    supersedes: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    annotations: List[ComplianceAnnotation] = field(default_factory=list)

    @property
    def tax_country(self) -> str:
        return str(self.tax_info.get("country") or "").upper()

    def has_annotation(self, classification: str, rule_version: str) -> bool:
        return any(
            a.classification == classification and a.rule_version == rule_version
            for a in self.annotations
        )

    def to_draft(self) -> InvoiceDraft:
        """
        Rebuild caller input from a stored row.

        Raises:
            KeyError, ValueError: if the row is malformed
        """
        return InvoiceDraft(
            organization_id=self.organization_id,
            contractor_id=self.contractor_id,
            contractor_classification=self.classification,
            tax_info=TaxInfo.from_dict(self.tax_info),
            currency=self.currency,
            line_items=tuple(LineItem.from_dict(item) for item in self.line_items),
            control_factors=ControlTestFactors.from_dict(self.control_factors),
            invoice_number=self.invoice_number,
            period_start=self.period_start,
            period_end=self.period_end,
            notes=self.notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "contractor_id": self.contractor_id,
            "invoice_number": self.invoice_number,
            "contractor_classification": self.classification,
            "tax_info": dict(self.tax_info),
            "currency": self.currency,
            "line_items": list(self.line_items),
            "subtotal": str(self.subtotal),
            "vat_rate": str(self.vat_rate),
            "vat_amount": str(self.vat_amount),
            "total_amount": str(self.total_amount),
            "status": self.status,
            "control_factors": dict(self.control_factors),
            "verification": dict(self.verification),
            "compliance_checks": dict(self.compliance_checks),
            "supersedes": self.supersedes,
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "annotations": [a.to_dict() for a in self.annotations],
        }

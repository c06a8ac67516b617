"""
Invoice Eligibility Gate - The only way to produce an InvoiceRecord.

The gate is pure: it reads the provider registry and returns values, it
never touches storage. Every create and every change to classification,
tax info or currency goes through the same decision. A Blocked decision
produces a Failure and nothing else.
"""
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .classification import ControlTestFactors
from .exceptions import ComplianceError, FormatViolation, InvalidAmendment, InvoiceImmutable
from .invoices import InvoiceDraft, InvoiceStatus, LineItem, StoredInvoice
from .providers import ComplianceProvider
from .providers.base import to_cents
from .registry import ProviderRegistry
from .types import Failure, Result, Success, TaxBreakdown, TaxInfo
from .validator import Approved, ClassificationValidator, Decision

logger = structlog.get_logger()

_ISSUED_BY_GATE = object()

AMENDABLE_FIELDS = (
    "contractor_classification",
    "tax_info",
    "currency",
    "line_items",
    "control_factors",
    "invoice_number",
    "period_start",
    "period_end",
    "notes",
)


@dataclass(frozen=True)
class ComplianceChecks:
    contractor_status_verified: bool
    vat_calculation_verified: bool

    def to_dict(self) -> Dict[str, bool]:
        return {
            "contractor_status_verified": self.contractor_status_verified,
            "vat_calculation_verified": self.vat_calculation_verified,
        }


@dataclass(frozen=True)
class Verification:
    """Inputs and outcome of the decision, kept for reconciliation"""
    rule_version: str
    jurisdiction: str
    evaluated_factors: Dict[str, Optional[bool]]
    risk_level: str
    high_risk: bool
    advisories: Tuple[str, ...]
    verified_at: datetime
    verified_by: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_version": self.rule_version,
            "jurisdiction": self.jurisdiction,
            "evaluated_factors": dict(self.evaluated_factors),
            "risk_level": self.risk_level,
            "high_risk": self.high_risk,
            "advisories": list(self.advisories),
            "verified_at": self.verified_at.isoformat(),
            "verified_by": self.verified_by,
        }


@dataclass(frozen=True)
class InvoiceRecord:
    """
    A validated, billable invoice.

    Only InvoiceEligibilityGate can construct one. Its classification was
    invoice-eligible in its jurisdiction at issue time.
    """
    id: str
    organization_id: str
    contractor_id: str
    invoice_number: Optional[str]
    contractor_classification: str
    tax_info: TaxInfo
    currency: str
    line_items: Tuple[LineItem, ...]
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    status: InvoiceStatus
    compliance_checks: ComplianceChecks
    verification: Verification
    control_factors: ControlTestFactors
    supersedes: Optional[str] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    notes: Optional[str] = None
    _token: object = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self._token is not _ISSUED_BY_GATE:
            raise TypeError("InvoiceRecord can only be issued by InvoiceEligibilityGate")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "contractor_id": self.contractor_id,
            "invoice_number": self.invoice_number,
            "contractor_classification": self.contractor_classification,
            "tax_info": self.tax_info.to_dict(),
            "currency": self.currency,
            "line_items": [item.to_dict() for item in self.line_items],
            "subtotal": str(self.subtotal),
            "vat_rate": str(self.vat_rate),
            "vat_amount": str(self.vat_amount),
            "total_amount": str(self.total_amount),
            "status": self.status.value,
            "compliance_checks": self.compliance_checks.to_dict(),
            "verification": self.verification.to_dict(),
            "control_factors": self.control_factors.to_dict(),
            "supersedes": self.supersedes,
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
            "notes": self.notes,
        }


@dataclass
class GateEvaluation:
    """Dry-run outcome: the decision plus format problems"""
    decision: Decision
    format_errors: List[Dict[str, Any]] = field(default_factory=list)
    tax: Optional[TaxBreakdown] = None

    @property
    def can_issue(self) -> bool:
        return self.decision.approved and not self.format_errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "can_issue": self.can_issue,
            "decision": self.decision.to_dict(),
            "format_errors": list(self.format_errors),
            "tax_calculation": self.tax.to_dict() if self.tax else None,
        }


def _failure(error: ComplianceError) -> Failure:
    return Failure(error=error.message, code=error.code, details=dict(error.details))


class InvoiceEligibilityGate:
    """
    Enforces the eligibility decision at every invoice create and mutate.
    """

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    def _provider(self, tax_info: TaxInfo) -> ComplianceProvider:
        return self.registry.get(tax_info.country)

    def _format_errors(self, provider: ComplianceProvider, draft: InvoiceDraft) -> List[FormatViolation]:
        errors: List[FormatViolation] = []
        if (draft.currency or "").upper() != provider.currency:
            errors.append(FormatViolation(
                "currency",
                f"Currency must be {provider.currency} for {provider.country_code} invoices",
                draft.currency,
            ))
        if not draft.line_items:
            errors.append(FormatViolation("line_items", "At least one line item is required"))
        elif any(item.quantity < 0 or item.unit_rate < 0 for item in draft.line_items):
            errors.append(FormatViolation("line_items", "Quantity and unit rate cannot be negative"))
        if draft.period_start and draft.period_end and draft.period_end < draft.period_start:
            errors.append(FormatViolation("period_end", "Period end is before period start"))
        try:
            provider.require_valid_tax_info(draft.tax_info)
        except FormatViolation as e:
            errors.append(e)
        return errors

    def evaluate(self, draft: InvoiceDraft) -> GateEvaluation:
        """
        Dry run: the same decision as issue, without producing a record.

        Raises:
            UnsupportedJurisdiction: no provider for the tax country
            ComplianceSystemError: provider failed unexpectedly
        """
        provider = self._provider(draft.tax_info)
        decision = ClassificationValidator(provider).decide(
            draft.contractor_classification, draft.control_factors
        )
        format_errors = self._format_errors(provider, draft)

        tax = None
        if decision.approved and draft.line_items and draft.subtotal >= 0:
            tax = provider.calculate_contractor_tax(
                draft.subtotal, decision.classification, vat_registered=draft.tax_info.vat_registered
            )

        return GateEvaluation(
            decision=decision,
            format_errors=[e.to_dict() for e in format_errors],
            tax=tax,
        )

    def issue(
        self,
        draft: InvoiceDraft,
        actor: str,
        supersedes: Optional[str] = None,
    ) -> Result[InvoiceRecord]:
        """
        Validate a draft and produce a new InvoiceRecord.

        Args:
            draft: Invoice input
            actor: Identity of the user issuing the invoice
            supersedes: ID of the record this one replaces

        Returns:
            Success(InvoiceRecord) or Failure(code, error, details)
        """
        return self._build(
            draft, actor,
            record_id=str(uuid.uuid4()),
            status=InvoiceStatus.DRAFT,
            supersedes=supersedes,
        )

    def _build(
        self,
        draft: InvoiceDraft,
        actor: str,
        record_id: str,
        status: InvoiceStatus,
        supersedes: Optional[str] = None,
        expected_totals: Optional[Tuple[Decimal, Decimal]] = None,
    ) -> Result[InvoiceRecord]:
        try:
            provider = self._provider(draft.tax_info)
            decision = ClassificationValidator(provider).decide(
                draft.contractor_classification, draft.control_factors
            )
            if not decision.approved:
                logger.warning(
                    "invoice_blocked",
                    kind=decision.kind.value,
                    classification=decision.classification,
                    jurisdiction=decision.jurisdiction,
                    actor=actor,
                )
                return _failure(decision.to_error())

            format_errors = self._format_errors(provider, draft)
            if format_errors:
                failure = _failure(format_errors[0])
                failure.details["errors"] = [e.to_dict() for e in format_errors]
                return failure

            tax = provider.calculate_contractor_tax(
                draft.subtotal, decision.classification, vat_registered=draft.tax_info.vat_registered
            )
        except ComplianceError as e:
            return _failure(e)

        vat_verified = tax.total_amount == to_cents(tax.subtotal + tax.vat_amount)
        if expected_totals is not None:
            vat_verified = vat_verified and expected_totals == (tax.vat_amount, tax.total_amount)
            if not vat_verified:
                return _failure(FormatViolation(
                    "total_amount", "Stored totals do not match the recalculated tax breakdown"
                ))

        record = InvoiceRecord(
            id=record_id,
            organization_id=draft.organization_id,
            contractor_id=draft.contractor_id,
            invoice_number=draft.invoice_number,
            contractor_classification=decision.classification.value,
            tax_info=replace(draft.tax_info, country=provider.country_code),
            currency=provider.currency,
            line_items=tuple(draft.line_items),
            subtotal=tax.subtotal,
            vat_rate=tax.vat_rate,
            vat_amount=tax.vat_amount,
            total_amount=tax.total_amount,
            status=status,
            compliance_checks=ComplianceChecks(
                contractor_status_verified=True,
                vat_calculation_verified=vat_verified,
            ),
            verification=self._verification(decision, draft, actor),
            control_factors=draft.control_factors,
            supersedes=supersedes,
            period_start=draft.period_start,
            period_end=draft.period_end,
            notes=draft.notes,
            _token=_ISSUED_BY_GATE,
        )

        logger.info(
            "invoice_issued",
            invoice_id=record.id,
            classification=record.contractor_classification,
            status=record.status.value,
            high_risk=decision.high_risk,
            supersedes=supersedes,
            actor=actor,
        )
        return Success(record, metadata={"decision": decision.to_dict(), "tax": tax.to_dict()})

    @staticmethod
    def _verification(decision: Approved, draft: InvoiceDraft, actor: str) -> Verification:
        return Verification(
            rule_version=decision.rule_version,
            jurisdiction=decision.jurisdiction,
            evaluated_factors=draft.control_factors.to_dict(),
            risk_level=decision.risk_profile.overall_risk.value,
            high_risk=decision.high_risk,
            advisories=tuple(decision.advisories),
            verified_at=datetime.now(timezone.utc),
            verified_by=actor,
        )

    @staticmethod
    def _require_draft(stored: StoredInvoice) -> Optional[Failure]:
        if stored.status != InvoiceStatus.DRAFT.value:
            return _failure(InvoiceImmutable(stored.id, stored.status))
        return None

    def amend(self, stored: StoredInvoice, changes: Dict[str, Any], actor: str) -> Result[InvoiceRecord]:
        """
        Produce a new record superseding ``stored`` with ``changes`` applied.

        The full decision runs again. Approved and superseded invoices are
        refused.
        """
        refused = self._require_draft(stored)
        if refused:
            return refused

        unknown = set(changes) - set(AMENDABLE_FIELDS)
        if unknown:
            return _failure(InvalidAmendment(sorted(unknown)))

        try:
            draft = stored.to_draft()
        except (KeyError, TypeError, ValueError) as e:
            logger.error("stored_invoice_malformed", invoice_id=stored.id, error=str(e))
            return Failure(error="Stored invoice is malformed", code="MALFORMED_INVOICE")

        return self.issue(replace(draft, **changes), actor, supersedes=stored.id)

    def reclassify(
        self,
        stored: StoredInvoice,
        classification: str,
        actor: str,
        factors: Optional[ControlTestFactors] = None,
        invoice_number: Optional[str] = None,
    ) -> Result[InvoiceRecord]:
        changes: Dict[str, Any] = {"contractor_classification": classification}
        if factors is not None:
            changes["control_factors"] = factors
        if invoice_number is not None:
            changes["invoice_number"] = invoice_number
        return self.amend(stored, changes, actor)

    def approve(self, stored: StoredInvoice, actor: str) -> Result[InvoiceRecord]:
        """
        Approve a draft invoice after re-running the decision on its data.

        The approved record keeps the stored ID and is immutable thereafter.
        """
        refused = self._require_draft(stored)
        if refused:
            return refused

        try:
            draft = stored.to_draft()
        except (KeyError, TypeError, ValueError) as e:
            logger.error("stored_invoice_malformed", invoice_id=stored.id, error=str(e))
            return Failure(error="Stored invoice is malformed", code="MALFORMED_INVOICE")

        return self._build(
            draft, actor,
            record_id=stored.id,
            status=InvoiceStatus.APPROVED,
            supersedes=stored.supersedes,
            expected_totals=(to_cents(stored.vat_amount), to_cents(stored.total_amount)),
        )

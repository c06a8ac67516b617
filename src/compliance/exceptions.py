"""
Compliance Exceptions - Typed error hierarchy for the classification engine.

Every error carries a machine-readable ``code`` so the HTTP layer and the
reconciliation summary can report it without parsing messages.

    ComplianceError
    +-- LegalViolation            payroll-only classification on an invoice path
    +-- UnknownClassification     value outside the closed classification set
    +-- UnsupportedJurisdiction   no provider registered for a country code
    +-- FormatViolation           tax / VAT / registration / currency format
    +-- InvoiceImmutable          mutation of an approved invoice
    +-- InvalidAmendment          change to a field the gate does not amend
    +-- DuplicateInvoiceNumber    number already used by a live invoice of the organization
    +-- ComplianceSystemError     provider failed unexpectedly
"""
from typing import Any, Dict, List, Optional


class ComplianceError(Exception):
    """Base exception for all compliance engine errors."""

    code: str = "COMPLIANCE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }


class LegalViolation(ComplianceError):
    """Classification is payroll-only in the jurisdiction and cannot invoice."""

    code = "LEGAL_VIOLATION"

    def __init__(
        self,
        classification: str,
        jurisdiction: str,
        explanation: str,
        remediation: Optional[List[str]] = None,
    ):
        self.classification = classification
        self.jurisdiction = jurisdiction
        self.remediation = remediation or []
        super().__init__(
            explanation,
            details={
                "classification": classification,
                "jurisdiction": jurisdiction,
                "remediation": self.remediation,
            },
        )


class UnknownClassification(ComplianceError):
    """Requested classification is not part of the closed set."""

    code = "UNKNOWN_CLASSIFICATION"

    def __init__(self, value: Any, allowed: Optional[List[str]] = None):
        self.value = value
        super().__init__(
            f"Unknown worker classification: {value!r}",
            details={"value": str(value), "allowed": allowed or []},
        )


class UnsupportedJurisdiction(ComplianceError):
    """No compliance provider is registered for the country code."""

    code = "UNSUPPORTED_JURISDICTION"

    def __init__(self, country_code: str, supported: Optional[List[str]] = None):
        self.country_code = country_code
        super().__init__(
            f"No compliance provider available for country: {country_code}",
            details={"country_code": country_code, "supported": supported or []},
        )


class FormatViolation(ComplianceError):
    """A supplied identifier does not match the jurisdiction's format rules."""

    code = "FORMAT_VIOLATION"

    def __init__(self, field: str, message: str, value: Optional[str] = None):
        self.field = field
        super().__init__(message, details={"field": field, "value": value})


class InvoiceImmutable(ComplianceError):
    """Approved invoices are never edited; a superseding record is required."""

    code = "INVOICE_IMMUTABLE"

    def __init__(self, invoice_id: str, status: str):
        self.invoice_id = invoice_id
        super().__init__(
            f"Invoice {invoice_id} is {status} and cannot be modified",
            details={"invoice_id": invoice_id, "status": status},
        )


class DuplicateInvoiceNumber(ComplianceError):
    """Invoice numbers are unique per organization among live invoices."""

    code = "DUPLICATE_INVOICE_NUMBER"

    def __init__(self, organization_id: str, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice number {invoice_number} is already used",
            details={"organization_id": organization_id, "invoice_number": invoice_number},
        )


class InvalidAmendment(ComplianceError):
    """Requested change touches fields that are derived or fixed at issue."""

    code = "INVALID_AMENDMENT"

    def __init__(self, fields: List[str]):
        self.fields = fields
        super().__init__(
            f"Fields cannot be amended: {fields}",
            details={"fields": fields},
        )


class ComplianceSystemError(ComplianceError):
    """Provider raised unexpectedly. The message never carries internals."""

    code = "COMPLIANCE_SYSTEM_ERROR"

    def __init__(self, message: str = "Compliance evaluation failed"):
        super().__init__(message)

"""
Worker Classification & Compliance Engine

Decides whether a worker may be paid via invoice or must be paid via
payroll in a jurisdiction, scores deemed-employment and organization risk,
resolves required documents and gates invoice creation.
"""
from .classification import ControlTestFactors, WorkDuration, WorkerClassification, WorkType
from .exceptions import (
    ComplianceError,
    ComplianceSystemError,
    DuplicateInvoiceNumber,
    FormatViolation,
    InvalidAmendment,
    InvoiceImmutable,
    LegalViolation,
    UnknownClassification,
    UnsupportedJurisdiction,
)
from .gate import GateEvaluation, InvoiceEligibilityGate, InvoiceRecord
from .invoices import ComplianceAnnotation, InvoiceDraft, InvoiceStatus, LineItem, StoredInvoice
from .providers import ComplianceProvider, JurisdictionConfig, SouthAfricaComplianceProvider
from .reconciliation import ReconciliationJob, ReconciliationSummary
from .registry import ProviderRegistry, build_default_registry
from .repository import InMemoryInvoiceRepository, InvoiceRepository, SqlInvoiceRepository
from .types import OrganizationProfile, RiskLevel, RiskProfile, TaxInfo
from .validator import Approved, Blocked, BlockKind, ClassificationValidator

__all__ = [
    "WorkerClassification",
    "ControlTestFactors",
    "WorkType",
    "WorkDuration",
    "ComplianceError",
    "LegalViolation",
    "UnknownClassification",
    "UnsupportedJurisdiction",
    "FormatViolation",
    "DuplicateInvoiceNumber",
    "InvalidAmendment",
    "InvoiceImmutable",
    "ComplianceSystemError",
    "ComplianceProvider",
    "JurisdictionConfig",
    "SouthAfricaComplianceProvider",
    "ProviderRegistry",
    "build_default_registry",
    "ClassificationValidator",
    "Approved",
    "Blocked",
    "BlockKind",
    "InvoiceEligibilityGate",
    "GateEvaluation",
    "InvoiceRecord",
    "InvoiceDraft",
    "InvoiceStatus",
    "LineItem",
    "StoredInvoice",
    "ComplianceAnnotation",
    "InvoiceRepository",
    "InMemoryInvoiceRepository",
    "SqlInvoiceRepository",
    "ReconciliationJob",
    "ReconciliationSummary",
    "OrganizationProfile",
    "RiskLevel",
    "RiskProfile",
    "TaxInfo",
]

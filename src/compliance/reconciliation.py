"""
Reconciliation Job - Re-validate stored invoices against current rules.

Pages through storage by keyset, re-runs the eligibility decision on each
record's stored classification and factors, and appends a compliance
annotation when a record would now be blocked. Financial fields are never
touched and nothing is deleted.

A failing record (unknown jurisdiction, malformed row, timeout) is recorded
in the summary and the run moves on.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .classification import ControlTestFactors
from .exceptions import ComplianceError
from .invoices import ComplianceAnnotation, StoredInvoice
from .providers import ComplianceProvider
from .registry import ProviderRegistry
from .repository import InvoiceRepository
from .validator import BlockKind, Blocked, ClassificationValidator, Decision

logger = structlog.get_logger()

ANNOTATION_KINDS = {
    BlockKind.LEGAL_VIOLATION: "LABOR_LAW_VIOLATION",
    BlockKind.UNKNOWN_CLASSIFICATION: "UNKNOWN_CLASSIFICATION",
}

DEFAULT_RECOMMENDATION = "Use payroll system for employee payments, not invoicing system"


@dataclass
class RecordError:
    invoice_id: str
    code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"invoice_id": self.invoice_id, "code": self.code, "message": self.message}


@dataclass
class ReconciliationSummary:
    started_at: datetime
    finished_at: Optional[datetime] = None
    reviewed: int = 0
    violations: int = 0
    updated: int = 0
    skipped_duplicates: int = 0
    errors: List[RecordError] = field(default_factory=list)
    cancelled: bool = False
    rule_versions: Dict[str, str] = field(default_factory=dict)

    @property
    def violation_rate(self) -> float:
        """Percentage of reviewed invoices that violate current rules"""
        if not self.reviewed:
            return 0.0
        return round(self.violations / self.reviewed * 100, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "reviewed": self.reviewed,
            "violations": self.violations,
            "updated": self.updated,
            "skipped_duplicates": self.skipped_duplicates,
            "error_count": len(self.errors),
            "errors": [e.to_dict() for e in self.errors],
            "cancelled": self.cancelled,
            "rule_versions": dict(self.rule_versions),
            "violation_rate": self.violation_rate,
        }


class ReconciliationJob:
    """
    Batch re-validation of stored invoices.

    Args:
        registry: Provider registry used for decisions
        repository: Invoice storage
        batch_size: Page size for keyset pagination
        record_timeout: Seconds allowed per record. The decision runs in a
            worker thread so a stuck provider is abandoned, not interrupted.
        organization_id: Restrict the run to one organization
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        repository: InvoiceRepository,
        batch_size: int = 100,
        record_timeout: float = 5.0,
        organization_id: Optional[str] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.registry = registry
        self.repository = repository
        self.batch_size = batch_size
        self.record_timeout = record_timeout
        self.organization_id = organization_id

    async def run(self, cancel_event: Optional[asyncio.Event] = None) -> ReconciliationSummary:
        summary = ReconciliationSummary(started_at=datetime.now(timezone.utc))
        logger.info(
            "reconciliation_started",
            batch_size=self.batch_size,
            organization_id=self.organization_id,
        )

        after_id: Optional[str] = None
        while not summary.cancelled:
            page = await self.repository.fetch_page(
                after_id=after_id,
                limit=self.batch_size,
                organization_id=self.organization_id,
            )
            for invoice in page:
                if cancel_event is not None and cancel_event.is_set():
                    summary.cancelled = True
                    break
                await self._reconcile_guarded(invoice, summary)

            if len(page) < self.batch_size:
                break
            after_id = page[-1].id

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            "reconciliation_completed",
            reviewed=summary.reviewed,
            violations=summary.violations,
            updated=summary.updated,
            skipped_duplicates=summary.skipped_duplicates,
            errors=len(summary.errors),
            cancelled=summary.cancelled,
            violation_rate=summary.violation_rate,
            rule_versions=summary.rule_versions,
        )
        return summary

    async def _reconcile_guarded(self, invoice: StoredInvoice, summary: ReconciliationSummary):
        summary.reviewed += 1
        try:
            await asyncio.wait_for(self._reconcile(invoice, summary), timeout=self.record_timeout)
        except asyncio.TimeoutError:
            logger.warning("reconciliation_record_timeout", invoice_id=invoice.id)
            summary.errors.append(RecordError(
                invoice.id, "TIMEOUT", f"Record exceeded {self.record_timeout}s"
            ))
        except ComplianceError as e:
            logger.warning("reconciliation_record_failed", invoice_id=invoice.id, code=e.code)
            summary.errors.append(RecordError(invoice.id, e.code, e.message))
        except Exception as e:
            logger.error(
                "reconciliation_record_error",
                invoice_id=invoice.id,
                error=str(e),
                exc_info=True,
            )
            summary.errors.append(RecordError(invoice.id, "MALFORMED_RECORD", str(e)))

    def _decide(self, invoice: StoredInvoice) -> Tuple[ComplianceProvider, Decision]:
        provider = self.registry.get(invoice.tax_country)
        if not isinstance(invoice.control_factors, dict):
            raise ValueError("Stored control factors are not a mapping")
        factors = ControlTestFactors.from_dict(invoice.control_factors)
        return provider, ClassificationValidator(provider).decide(invoice.classification, factors)

    async def _reconcile(self, invoice: StoredInvoice, summary: ReconciliationSummary):
        provider, decision = await asyncio.to_thread(self._decide, invoice)
        summary.rule_versions[provider.country_code] = provider.rule_version

        if not isinstance(decision, Blocked):
            return

        summary.violations += 1
        if invoice.has_annotation(invoice.classification, provider.rule_version):
            summary.skipped_duplicates += 1
            return

        annotation = ComplianceAnnotation(
            kind=ANNOTATION_KINDS[decision.kind],
            classification=invoice.classification,
            rule_version=provider.rule_version,
            message=decision.reason,
            recommendation="; ".join(decision.remediation) or DEFAULT_RECOMMENDATION,
            detected_at=datetime.now(timezone.utc),
            details={
                "jurisdiction": provider.country_code,
                "invoice_number": invoice.invoice_number,
                "status": invoice.status,
            },
        )
        if await self.repository.append_annotation(invoice.id, annotation):
            summary.updated += 1
            logger.info(
                "reconciliation_violation_flagged",
                invoice_id=invoice.id,
                classification=invoice.classification,
                rule_version=provider.rule_version,
            )
        else:
            summary.skipped_duplicates += 1

"""
Invoice storage behind an async repository interface.

Writes accept only gate-issued InvoiceRecord values; reads return the raw
StoredInvoice view. Compliance annotations are append-only and unique per
(invoice, classification, rule_version).
"""
import asyncio
import json
import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .exceptions import DuplicateInvoiceNumber, InvoiceImmutable
from .gate import InvoiceRecord
from .invoices import ComplianceAnnotation, InvoiceStatus, StoredInvoice

logger = structlog.get_logger()


def _stored_from_record(record: InvoiceRecord, created_at: datetime) -> StoredInvoice:
    data = record.to_dict()
    return StoredInvoice(
        id=record.id,
        organization_id=record.organization_id,
        contractor_id=record.contractor_id,
        invoice_number=record.invoice_number,
        classification=record.contractor_classification,
        tax_info=data["tax_info"],
        currency=record.currency,
        line_items=data["line_items"],
        subtotal=record.subtotal,
        vat_rate=record.vat_rate,
        vat_amount=record.vat_amount,
        total_amount=record.total_amount,
        status=record.status.value,
        control_factors=data["control_factors"],
        verification=data["verification"],
        compliance_checks=data["compliance_checks"],
        supersedes=record.supersedes,
        period_start=record.period_start,
        period_end=record.period_end,
        notes=record.notes,
        created_at=created_at,
    )


def _require_record(record: Any) -> InvoiceRecord:
    if not isinstance(record, InvoiceRecord):
        raise TypeError("Only gate-issued InvoiceRecord values can be stored")
    return record


class InvoiceRepository(ABC):
    """Abstract invoice storage"""

    async def ensure_schema(self) -> None:
        """Create storage structures if missing"""
        return None

    @abstractmethod
    async def add(self, record: InvoiceRecord) -> StoredInvoice:
        """
        Store a new record. When it supersedes another record, the old one
        is marked superseded in the same unit of work.
        """
        pass

    @abstractmethod
    async def save_approval(self, record: InvoiceRecord) -> StoredInvoice:
        """
        Persist an approved record over its draft.

        Raises:
            InvoiceImmutable: if the stored invoice is no longer a draft
        """
        pass

    @abstractmethod
    async def get(self, invoice_id: str) -> Optional[StoredInvoice]:
        pass

    @abstractmethod
    async def fetch_page(
        self,
        after_id: Optional[str] = None,
        limit: int = 100,
        organization_id: Optional[str] = None,
    ) -> List[StoredInvoice]:
        """Keyset page ordered by id, starting after ``after_id``"""
        pass

    @abstractmethod
    async def append_annotation(self, invoice_id: str, annotation: ComplianceAnnotation) -> bool:
        """
        Append an annotation.

        Returns:
            False if one with the same classification and rule version exists
        """
        pass

    @abstractmethod
    async def next_invoice_number(self, organization_id: str, year: int) -> str:
        """One past the highest number in the organization's INV-YYYY-000001 sequence"""
        pass

    @abstractmethod
    async def import_legacy(self, invoice: StoredInvoice) -> None:
        """
        Load a row from a legacy system as-is, without validation.

        Such rows are what reconciliation re-checks.
        """
        pass


def format_invoice_number(year: int, sequence: int) -> str:
    return f"INV-{year}-{sequence:06d}"


def next_in_sequence(numbers: Iterable[Optional[str]], year: int) -> str:
    """Highest parsed sequence for the year plus one; foreign formats are ignored"""
    prefix = f"INV-{year}-"
    highest = 0
    for number in numbers:
        if number and number.startswith(prefix) and number[len(prefix):].isdigit():
            highest = max(highest, int(number[len(prefix):]))
    return format_invoice_number(year, highest + 1)


class InMemoryInvoiceRepository(InvoiceRepository):
    """Process-local storage for development and tests"""

    def __init__(self):
        self._rows: Dict[str, StoredInvoice] = {}
        self._lock = asyncio.Lock()

    async def add(self, record: InvoiceRecord) -> StoredInvoice:
        _require_record(record)
        async with self._lock:
            if record.id in self._rows:
                raise ValueError(f"Invoice {record.id} already exists")
            if record.supersedes:
                previous = self._rows.get(record.supersedes)
                if previous is None:
                    raise ValueError(f"Superseded invoice {record.supersedes} not found")
                if previous.status != InvoiceStatus.DRAFT.value:
                    raise InvoiceImmutable(previous.id, previous.status)
                self._require_unique_number(record.organization_id, record.invoice_number, replacing=previous.id)
                previous.status = InvoiceStatus.SUPERSEDED.value
            else:
                self._require_unique_number(record.organization_id, record.invoice_number)
            stored = _stored_from_record(record, datetime.now(timezone.utc))
            self._rows[record.id] = stored
            return stored

    def _require_unique_number(
        self, organization_id: str, invoice_number: Optional[str], replacing: Optional[str] = None
    ) -> None:
        if invoice_number is None:
            return
        for row in self._rows.values():
            if (
                row.id != replacing
                and row.organization_id == organization_id
                and row.invoice_number == invoice_number
                and row.status != InvoiceStatus.SUPERSEDED.value
            ):
                raise DuplicateInvoiceNumber(organization_id, invoice_number)

    async def save_approval(self, record: InvoiceRecord) -> StoredInvoice:
        _require_record(record)
        async with self._lock:
            current = self._rows.get(record.id)
            if current is None:
                raise ValueError(f"Invoice {record.id} not found")
            if current.status != InvoiceStatus.DRAFT.value:
                raise InvoiceImmutable(current.id, current.status)
            stored = _stored_from_record(record, current.created_at)
            stored.annotations = list(current.annotations)
            self._rows[record.id] = stored
            return stored

    async def get(self, invoice_id: str) -> Optional[StoredInvoice]:
        return self._rows.get(invoice_id)

    async def fetch_page(
        self,
        after_id: Optional[str] = None,
        limit: int = 100,
        organization_id: Optional[str] = None,
    ) -> List[StoredInvoice]:
        ids = sorted(
            i for i, row in self._rows.items()
            if (after_id is None or i > after_id)
            and (organization_id is None or row.organization_id == organization_id)
        )
        return [self._rows[i] for i in ids[:limit]]

    async def append_annotation(self, invoice_id: str, annotation: ComplianceAnnotation) -> bool:
        async with self._lock:
            row = self._rows[invoice_id]
            if row.has_annotation(annotation.classification, annotation.rule_version):
                return False
            row.annotations.append(annotation)
            return True

    async def next_invoice_number(self, organization_id: str, year: int) -> str:
        return next_in_sequence(
            (row.invoice_number for row in self._rows.values() if row.organization_id == organization_id),
            year,
        )

    async def import_legacy(self, invoice: StoredInvoice) -> None:
        async with self._lock:
            if invoice.status != InvoiceStatus.SUPERSEDED.value:
                self._require_unique_number(invoice.organization_id, invoice.invoice_number)
            self._rows[invoice.id] = invoice
        logger.warning("legacy_invoice_imported", invoice_id=invoice.id)


# =============================================================================
# SQL storage
# =============================================================================

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS contractor_invoices (
        id VARCHAR(64) PRIMARY KEY,
        organization_id VARCHAR(64) NOT NULL,
        contractor_id VARCHAR(64) NOT NULL,
        invoice_number VARCHAR(32),
        contractor_classification VARCHAR(64) NOT NULL,
        tax_info TEXT NOT NULL,
        currency VARCHAR(3) NOT NULL,
        line_items TEXT NOT NULL,
        subtotal VARCHAR(32) NOT NULL,
        vat_rate VARCHAR(16) NOT NULL,
        vat_amount VARCHAR(32) NOT NULL,
        total_amount VARCHAR(32) NOT NULL,
        status VARCHAR(16) NOT NULL,
        control_factors TEXT,
        verification TEXT,
        compliance_checks TEXT,
        supersedes VARCHAR(64),
        period_start VARCHAR(10),
        period_end VARCHAR(10),
        notes TEXT,
        created_at VARCHAR(40) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS invoice_compliance_annotations (
        id VARCHAR(64) PRIMARY KEY,
        invoice_id VARCHAR(64) NOT NULL,
        kind VARCHAR(64) NOT NULL,
        classification VARCHAR(64) NOT NULL,
        rule_version VARCHAR(32) NOT NULL,
        message TEXT NOT NULL,
        recommendation TEXT,
        details TEXT,
        detected_at VARCHAR(40) NOT NULL,
        UNIQUE (invoice_id, classification, rule_version)
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_contractor_invoices_live_number
    ON contractor_invoices (organization_id, invoice_number)
    WHERE status <> 'superseded'
    """,
)

INVOICE_COLUMNS = (
    "id, organization_id, contractor_id, invoice_number, contractor_classification, "
    "tax_info, currency, line_items, subtotal, vat_rate, vat_amount, total_amount, "
    "status, control_factors, verification, compliance_checks, supersedes, "
    "period_start, period_end, notes, created_at"
)


def _json_load(value: Optional[str], default):
    if not value:
        return default
    return json.loads(value)


def _date_or_none(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


class SqlInvoiceRepository(InvoiceRepository):
    """
    SQL storage using raw text() queries.

    JSON payloads are stored as TEXT and amounts as decimal strings so the
    same schema works on PostgreSQL and SQLite.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def ensure_schema(self) -> None:
        async with self.session_factory() as session:
            for statement in SCHEMA_STATEMENTS:
                await session.execute(text(statement))
            await session.commit()
        logger.info("invoice_tables_ensured")

    @staticmethod
    def _params(stored: StoredInvoice) -> Dict[str, Any]:
        return {
            "id": stored.id,
            "organization_id": stored.organization_id,
            "contractor_id": stored.contractor_id,
            "invoice_number": stored.invoice_number,
            "contractor_classification": stored.classification,
            "tax_info": json.dumps(stored.tax_info),
            "currency": stored.currency,
            "line_items": json.dumps(stored.line_items),
            "subtotal": str(stored.subtotal),
            "vat_rate": str(stored.vat_rate),
            "vat_amount": str(stored.vat_amount),
            "total_amount": str(stored.total_amount),
            "status": stored.status,
            "control_factors": json.dumps(stored.control_factors),
            "verification": json.dumps(stored.verification),
            "compliance_checks": json.dumps(stored.compliance_checks),
            "supersedes": stored.supersedes,
            "period_start": stored.period_start.isoformat() if stored.period_start else None,
            "period_end": stored.period_end.isoformat() if stored.period_end else None,
            "notes": stored.notes,
            "created_at": (stored.created_at or datetime.now(timezone.utc)).isoformat(),
        }

    @staticmethod
    def _row_to_stored(row) -> StoredInvoice:
        m = row._mapping
        return StoredInvoice(
            id=m["id"],
            organization_id=m["organization_id"],
            contractor_id=m["contractor_id"],
            invoice_number=m["invoice_number"],
            classification=m["contractor_classification"],
            tax_info=_json_load(m["tax_info"], {}),
            currency=m["currency"],
            line_items=_json_load(m["line_items"], []),
            subtotal=Decimal(m["subtotal"]),
            vat_rate=Decimal(m["vat_rate"]),
            vat_amount=Decimal(m["vat_amount"]),
            total_amount=Decimal(m["total_amount"]),
            status=m["status"],
            control_factors=_json_load(m["control_factors"], {}),
            verification=_json_load(m["verification"], {}),
            compliance_checks=_json_load(m["compliance_checks"], {}),
            supersedes=m["supersedes"],
            period_start=_date_or_none(m["period_start"]),
            period_end=_date_or_none(m["period_end"]),
            notes=m["notes"],
            created_at=datetime.fromisoformat(m["created_at"]) if m["created_at"] else None,
        )

    async def _insert(self, session: AsyncSession, stored: StoredInvoice) -> None:
        placeholders = ", ".join(":" + c.strip() for c in INVOICE_COLUMNS.split(","))
        try:
            await session.execute(
                text(f"INSERT INTO contractor_invoices ({INVOICE_COLUMNS}) VALUES ({placeholders})"),
                self._params(stored),
            )
        except IntegrityError as e:
            # Only the live-number index can collide; ids are fresh uuids
            if stored.invoice_number is None:
                raise
            raise DuplicateInvoiceNumber(stored.organization_id, stored.invoice_number) from e

    async def _load_annotations(self, session: AsyncSession, invoices: List[StoredInvoice]) -> None:
        if not invoices:
            return
        by_id = {inv.id: inv for inv in invoices}
        names = [f":id{i}" for i in range(len(invoices))]
        params = {f"id{i}": inv.id for i, inv in enumerate(invoices)}
        result = await session.execute(
            text(f"""
                SELECT invoice_id, kind, classification, rule_version, message,
                       recommendation, details, detected_at
                FROM invoice_compliance_annotations
                WHERE invoice_id IN ({", ".join(names)})
                ORDER BY detected_at, id
            """),
            params,
        )
        for row in result.fetchall():
            m = row._mapping
            by_id[m["invoice_id"]].annotations.append(ComplianceAnnotation(
                kind=m["kind"],
                classification=m["classification"],
                rule_version=m["rule_version"],
                message=m["message"],
                recommendation=m["recommendation"] or "",
                detected_at=datetime.fromisoformat(m["detected_at"]),
                details=_json_load(m["details"], {}),
            ))

    async def add(self, record: InvoiceRecord) -> StoredInvoice:
        _require_record(record)
        stored = _stored_from_record(record, datetime.now(timezone.utc))
        async with self.session_factory() as session:
            try:
                if record.supersedes:
                    result = await session.execute(
                        text("""
                            UPDATE contractor_invoices SET status = :superseded
                            WHERE id = :id AND status = :draft
                        """),
                        {
                            "id": record.supersedes,
                            "superseded": InvoiceStatus.SUPERSEDED.value,
                            "draft": InvoiceStatus.DRAFT.value,
                        },
                    )
                    if result.rowcount != 1:
                        raise InvoiceImmutable(record.supersedes, "not a draft")
                await self._insert(session, stored)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        return stored

    async def save_approval(self, record: InvoiceRecord) -> StoredInvoice:
        _require_record(record)
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    text("""
                        UPDATE contractor_invoices
                        SET status = :status, verification = :verification,
                            compliance_checks = :compliance_checks
                        WHERE id = :id AND status = :draft
                    """),
                    {
                        "id": record.id,
                        "status": record.status.value,
                        "verification": json.dumps(record.verification.to_dict()),
                        "compliance_checks": json.dumps(record.compliance_checks.to_dict()),
                        "draft": InvoiceStatus.DRAFT.value,
                    },
                )
                if result.rowcount != 1:
                    raise InvoiceImmutable(record.id, "not a draft")
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        return await self.get(record.id)

    async def get(self, invoice_id: str) -> Optional[StoredInvoice]:
        async with self.session_factory() as session:
            result = await session.execute(
                text(f"SELECT {INVOICE_COLUMNS} FROM contractor_invoices WHERE id = :id"),
                {"id": invoice_id},
            )
            row = result.fetchone()
            if row is None:
                return None
            stored = self._row_to_stored(row)
            await self._load_annotations(session, [stored])
            return stored

    async def fetch_page(
        self,
        after_id: Optional[str] = None,
        limit: int = 100,
        organization_id: Optional[str] = None,
    ) -> List[StoredInvoice]:
        conditions = []
        params: Dict[str, Any] = {"limit": limit}
        if after_id is not None:
            conditions.append("id > :after_id")
            params["after_id"] = after_id
        if organization_id is not None:
            conditions.append("organization_id = :organization_id")
            params["organization_id"] = organization_id
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        async with self.session_factory() as session:
            result = await session.execute(
                text(f"""
                    SELECT {INVOICE_COLUMNS} FROM contractor_invoices
                    {where}
                    ORDER BY id
                    LIMIT :limit
                """),
                params,
            )
            invoices = [self._row_to_stored(row) for row in result.fetchall()]
            await self._load_annotations(session, invoices)
            return invoices

    async def append_annotation(self, invoice_id: str, annotation: ComplianceAnnotation) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                text("""
                    INSERT INTO invoice_compliance_annotations
                        (id, invoice_id, kind, classification, rule_version, message,
                         recommendation, details, detected_at)
                    SELECT :id, :invoice_id, :kind, :classification, :rule_version, :message,
                           :recommendation, :details, :detected_at
                    WHERE NOT EXISTS (
                        SELECT 1 FROM invoice_compliance_annotations
                        WHERE invoice_id = :invoice_id
                          AND classification = :classification
                          AND rule_version = :rule_version
                    )
                """),
                {
                    "id": str(uuid.uuid4()),
                    "invoice_id": invoice_id,
                    "kind": annotation.kind,
                    "classification": annotation.classification,
                    "rule_version": annotation.rule_version,
                    "message": annotation.message,
                    "recommendation": annotation.recommendation,
                    "details": json.dumps(annotation.details),
                    "detected_at": annotation.detected_at.isoformat(),
                },
            )
            await session.commit()
            return result.rowcount == 1

    async def next_invoice_number(self, organization_id: str, year: int) -> str:
        async with self.session_factory() as session:
            result = await session.execute(
                text("""
                    SELECT invoice_number FROM contractor_invoices
                    WHERE organization_id = :organization_id
                      AND invoice_number LIKE :prefix
                """),
                {"organization_id": organization_id, "prefix": f"INV-{year}-%"},
            )
            numbers = [row[0] for row in result.fetchall()]
        return next_in_sequence(numbers, year)

    async def import_legacy(self, invoice: StoredInvoice) -> None:
        async with self.session_factory() as session:
            try:
                await self._insert(session, invoice)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        logger.warning("legacy_invoice_imported", invoice_id=invoice.id)

"""
Unit Tests - SQL invoice repository (SQLite in memory)
"""
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.compliance import (
    ComplianceAnnotation,
    DuplicateInvoiceNumber,
    InvoiceImmutable,
    ReconciliationJob,
    SqlInvoiceRepository,
)


@pytest_asyncio.fixture(scope="function")
async def sql_repository():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    repository = SqlInvoiceRepository(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await repository.ensure_schema()
    yield repository
    await engine.dispose()


def _annotation(rule_version="ZA-2024.12", month=1):
    return ComplianceAnnotation(
        kind="LABOR_LAW_VIOLATION",
        classification="casual_worker",
        rule_version=rule_version,
        message="casual_worker cannot issue invoices",
        recommendation="Use payroll",
        detected_at=datetime(2025, month, 1, tzinfo=timezone.utc),
    )


class TestSqlInvoiceRepository:
    """Tests for the text() SQL repository"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_add_and_get(self, sql_repository, gate, make_draft):
        record = gate.issue(make_draft(), actor="user-1").value
        await sql_repository.add(record)

        stored = await sql_repository.get(record.id)

        assert stored.classification == "independent_contractor"
        assert stored.total_amount == record.total_amount
        assert stored.tax_info["vat_number"] == "4123456789"
        assert stored.verification["rule_version"] == "ZA-2024.12"
        assert stored.period_start == record.period_start
        assert stored.to_draft().subtotal == record.subtotal

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_missing(self, sql_repository):
        assert await sql_repository.get("missing") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rejects_unvalidated_values(self, sql_repository, make_legacy_invoice):
        with pytest.raises(TypeError):
            await sql_repository.add(make_legacy_invoice())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_supersede_marks_previous(self, sql_repository, gate, make_draft):
        original = await sql_repository.add(gate.issue(make_draft(), actor="user-1").value)
        replacement = gate.reclassify(original, "freelancer", actor="user-1").value
        await sql_repository.add(replacement)

        assert (await sql_repository.get(original.id)).status == "superseded"
        assert (await sql_repository.get(replacement.id)).supersedes == original.id

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_approval_is_final(self, sql_repository, gate, make_draft):
        stored = await sql_repository.add(gate.issue(make_draft(), actor="user-1").value)
        approval = gate.approve(stored, actor="manager-1").value

        approved = await sql_repository.save_approval(approval)
        assert approved.status == "approved"

        with pytest.raises(InvoiceImmutable):
            await sql_repository.save_approval(approval)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_annotation_unique_per_rule_version(self, sql_repository, make_legacy_invoice):
        legacy = make_legacy_invoice("casual_worker")
        await sql_repository.import_legacy(legacy)

        assert await sql_repository.append_annotation(legacy.id, _annotation())
        assert not await sql_repository.append_annotation(legacy.id, _annotation())
        assert await sql_repository.append_annotation(legacy.id, _annotation("ZA-2025.06", month=6))

        stored = await sql_repository.get(legacy.id)
        assert [a.rule_version for a in stored.annotations] == ["ZA-2024.12", "ZA-2025.06"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_keyset_pages(self, sql_repository, make_legacy_invoice):
        ids = sorted(f"inv-{i:03d}" for i in range(5))
        for invoice_id in ids:
            await sql_repository.import_legacy(make_legacy_invoice(id=invoice_id))

        first = await sql_repository.fetch_page(limit=2)
        second = await sql_repository.fetch_page(after_id=first[-1].id, limit=2)
        third = await sql_repository.fetch_page(after_id=second[-1].id, limit=2)

        assert [i.id for i in first + second + third] == ids
        assert len(third) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invoice_numbers(self, sql_repository, gate, make_draft):
        assert await sql_repository.next_invoice_number("org-1", 2025) == "INV-2025-000001"
        await sql_repository.add(gate.issue(make_draft(invoice_number="INV-2025-000001"), actor="u").value)
        assert await sql_repository.next_invoice_number("org-1", 2025) == "INV-2025-000002"
        assert await sql_repository.next_invoice_number("org-2", 2025) == "INV-2025-000001"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invoice_number_follows_highest(self, sql_repository, gate, make_draft):
        """Explicit numbers leave gaps; the sequence continues after the highest"""
        await sql_repository.add(gate.issue(make_draft(invoice_number="INV-2025-000007"), actor="u").value)
        await sql_repository.add(gate.issue(make_draft(invoice_number="INV-2025-000002"), actor="u").value)
        await sql_repository.add(gate.issue(make_draft(invoice_number="LEGACY-99"), actor="u").value)

        assert await sql_repository.next_invoice_number("org-1", 2025) == "INV-2025-000008"
        assert await sql_repository.next_invoice_number("org-1", 2026) == "INV-2026-000001"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_invoice_number_rejected(self, sql_repository, gate, make_draft):
        first = await sql_repository.add(gate.issue(make_draft(), actor="u").value)

        with pytest.raises(DuplicateInvoiceNumber):
            await sql_repository.add(gate.issue(make_draft(), actor="u").value)
        await sql_repository.add(gate.issue(make_draft(organization_id="org-2"), actor="u").value)

        replacement = gate.reclassify(first, "consultant", actor="u").value
        stored = await sql_repository.add(replacement)
        assert stored.invoice_number == first.invoice_number
        page = await sql_repository.fetch_page(organization_id="org-1")
        assert len(page) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reconciliation_against_sql(self, sql_repository, registry, make_legacy_invoice):
        await sql_repository.import_legacy(make_legacy_invoice("temporary_employee"))

        first = await ReconciliationJob(registry, sql_repository).run()
        second = await ReconciliationJob(registry, sql_repository).run()

        assert first.updated == 1
        assert second.updated == 0
        assert second.skipped_duplicates == 1

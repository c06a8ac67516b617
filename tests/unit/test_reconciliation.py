"""
Unit Tests - Reconciliation of stored invoices
"""
import asyncio
import time
from dataclasses import replace
from decimal import Decimal

import pytest

from src.compliance import ProviderRegistry, ReconciliationJob, SouthAfricaComplianceProvider
from src.compliance.providers.south_africa import PAYROLL_ONLY


async def _seed(repository, make_legacy_invoice, gate, make_draft):
    """Two valid contractor invoices and two legacy payroll-only rows"""
    for sequence in (1, 2):
        draft = make_draft(invoice_number=f"INV-2025-{sequence:06d}")
        await repository.add(gate.issue(draft, actor="seed").value)
    legacy = [
        make_legacy_invoice("fixed_term_employee"),
        make_legacy_invoice("casual_worker"),
    ]
    for row in legacy:
        await repository.import_legacy(row)
    return legacy


class TestReconciliationJob:
    """Tests for batch re-validation"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_flags_payroll_only_invoices(self, registry, repository, gate, make_draft, make_legacy_invoice):
        legacy = await _seed(repository, make_legacy_invoice, gate, make_draft)

        summary = await ReconciliationJob(registry, repository, batch_size=3).run()

        assert summary.reviewed == 4
        assert summary.violations == 2
        assert summary.updated == 2
        assert summary.errors == []
        assert summary.violation_rate == 50.0
        assert summary.rule_versions == {"ZA": "ZA-2024.12"}

        flagged = await repository.get(legacy[0].id)
        assert len(flagged.annotations) == 1
        annotation = flagged.annotations[0]
        assert annotation.kind == "LABOR_LAW_VIOLATION"
        assert annotation.rule_version == "ZA-2024.12"
        assert "payroll" in annotation.recommendation.lower()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_second_run_adds_nothing(self, registry, repository, gate, make_draft, make_legacy_invoice):
        await _seed(repository, make_legacy_invoice, gate, make_draft)

        await ReconciliationJob(registry, repository).run()
        second = await ReconciliationJob(registry, repository).run()

        assert second.violations == 2
        assert second.updated == 0
        assert second.skipped_duplicates == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_new_rule_version_annotates_again(self, repository, make_legacy_invoice):
        legacy = make_legacy_invoice("casual_worker")
        await repository.import_legacy(legacy)

        registry = ProviderRegistry()
        registry.register("ZA", SouthAfricaComplianceProvider())
        await ReconciliationJob(registry, repository).run()

        updated_config = replace(SouthAfricaComplianceProvider.default_config(), rule_version="ZA-2025.06")
        registry.register("ZA", SouthAfricaComplianceProvider(updated_config))
        summary = await ReconciliationJob(registry, repository).run()

        assert summary.updated == 1
        assert len((await repository.get(legacy.id)).annotations) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_financial_fields_untouched(self, registry, repository, make_legacy_invoice):
        legacy = make_legacy_invoice("labour_broker_employee")
        await repository.import_legacy(legacy)
        before = (legacy.subtotal, legacy.vat_amount, legacy.total_amount, legacy.status)

        await ReconciliationJob(registry, repository).run()

        after = await repository.get(legacy.id)
        assert (after.subtotal, after.vat_amount, after.total_amount, after.status) == before
        assert after.total_amount == Decimal("15000.00")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_record_errors_collected(self, registry, repository, make_legacy_invoice):
        await repository.import_legacy(make_legacy_invoice(tax_info={"country": "KE"}))
        await repository.import_legacy(make_legacy_invoice(control_factors="not a mapping"))
        await repository.import_legacy(make_legacy_invoice("casual_worker"))

        summary = await ReconciliationJob(registry, repository).run()

        assert summary.reviewed == 3
        assert sorted(e.code for e in summary.errors) == ["MALFORMED_RECORD", "UNSUPPORTED_JURISDICTION"]
        assert summary.updated == 1
        assert summary.to_dict()["error_count"] == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_record_timeout(self, registry, repository, make_legacy_invoice, monkeypatch):
        await repository.import_legacy(make_legacy_invoice("casual_worker"))
        job = ReconciliationJob(registry, repository, record_timeout=0.01)

        async def slow(invoice, summary):
            await asyncio.sleep(1)

        monkeypatch.setattr(job, "_reconcile", slow)
        summary = await job.run()

        assert summary.errors[0].code == "TIMEOUT"
        assert summary.updated == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blocking_decision_times_out(self, registry, repository, make_legacy_invoice, monkeypatch):
        """A provider stuck in synchronous code still hits the per-record timeout"""
        await repository.import_legacy(make_legacy_invoice("casual_worker"))
        job = ReconciliationJob(registry, repository, record_timeout=0.05)
        decide = job._decide

        def stuck(invoice):
            time.sleep(0.5)
            return decide(invoice)

        monkeypatch.setattr(job, "_decide", stuck)
        summary = await job.run()

        assert summary.errors[0].code == "TIMEOUT"
        assert summary.violations == 0
        assert summary.updated == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancellation_between_records(self, registry, repository, make_legacy_invoice):
        for _ in range(3):
            await repository.import_legacy(make_legacy_invoice("casual_worker"))
        cancel = asyncio.Event()
        cancel.set()

        summary = await ReconciliationJob(registry, repository).run(cancel_event=cancel)

        assert summary.cancelled
        assert summary.reviewed == 0
        assert summary.finished_at is not None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_organization_filter(self, registry, repository, make_legacy_invoice):
        await repository.import_legacy(make_legacy_invoice("casual_worker", organization_id="org-1"))
        await repository.import_legacy(make_legacy_invoice("casual_worker", organization_id="org-2"))

        summary = await ReconciliationJob(registry, repository, organization_id="org-2").run()
        assert summary.reviewed == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_every_payroll_only_classification_flagged(self, registry, repository, make_legacy_invoice):
        for classification in PAYROLL_ONLY:
            await repository.import_legacy(make_legacy_invoice(classification.value))

        summary = await ReconciliationJob(registry, repository, batch_size=1).run()
        assert summary.violations == len(PAYROLL_ONLY)

    @pytest.mark.unit
    def test_batch_size_must_be_positive(self, registry, repository):
        with pytest.raises(ValueError):
            ReconciliationJob(registry, repository, batch_size=0)

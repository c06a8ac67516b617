"""
Unit Tests - In-memory invoice repository and numbering
"""
import pytest

from src.compliance import DuplicateInvoiceNumber
from src.compliance.repository import next_in_sequence


class TestNextInSequence:
    """Tests for invoice number sequencing"""

    @pytest.mark.unit
    def test_empty(self):
        assert next_in_sequence([], 2025) == "INV-2025-000001"

    @pytest.mark.unit
    def test_highest_plus_one(self):
        numbers = ["INV-2025-000003", None, "INV-2025-000010", "INV-2024-000050", "INV-2025-abc", "CUSTOM-7"]
        assert next_in_sequence(numbers, 2025) == "INV-2025-000011"


class TestInMemoryInvoiceRepository:
    """Tests for live invoice number uniqueness"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_explicit_number_not_reissued(self, repository, gate, make_draft):
        await repository.add(gate.issue(make_draft(invoice_number="INV-2025-000002"), actor="u").value)

        number = await repository.next_invoice_number("org-1", 2025)
        assert number == "INV-2025-000003"

        stored = await repository.add(gate.issue(make_draft(invoice_number=number), actor="u").value)
        assert stored.invoice_number == "INV-2025-000003"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_duplicate_number_rejected(self, repository, gate, make_draft):
        await repository.add(gate.issue(make_draft(), actor="u").value)

        with pytest.raises(DuplicateInvoiceNumber) as exc:
            await repository.add(gate.issue(make_draft(), actor="u").value)
        assert exc.value.details["invoice_number"] == "INV-2025-000001"
        assert len(await repository.fetch_page()) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_same_number_other_organization(self, repository, gate, make_draft):
        await repository.add(gate.issue(make_draft(), actor="u").value)
        await repository.add(gate.issue(make_draft(organization_id="org-2"), actor="u").value)

        assert len(await repository.fetch_page()) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_replacement_keeps_number(self, repository, gate, make_draft):
        original = await repository.add(gate.issue(make_draft(), actor="u").value)

        replacement = await repository.add(gate.reclassify(original, "freelancer", actor="u").value)

        assert replacement.invoice_number == original.invoice_number
        assert (await repository.get(original.id)).status == "superseded"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_legacy_import_checked(self, repository, make_legacy_invoice):
        await repository.import_legacy(make_legacy_invoice(invoice_number="OLD-1"))

        with pytest.raises(DuplicateInvoiceNumber):
            await repository.import_legacy(make_legacy_invoice(invoice_number="OLD-1"))

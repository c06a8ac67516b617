"""
Pytest Fixtures for Worker Compliance Tests
"""
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator
import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["INVOICE_STORE"] = "memory"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://redis:6379/15")
os.environ["SECRET_KEY"] = "test-secret-key"

from src.api.main import app
from src.api.services.audit_trail import AuditTrailService
from src.compliance import (
    ControlTestFactors,
    InMemoryInvoiceRepository,
    InvoiceDraft,
    InvoiceEligibilityGate,
    LineItem,
    SouthAfricaComplianceProvider,
    StoredInvoice,
    TaxInfo,
    build_default_registry,
)


# =============================================================================
# Engine Fixtures
# =============================================================================

@pytest.fixture
def provider():
    """South African compliance provider"""
    return SouthAfricaComplianceProvider()


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def gate(registry):
    return InvoiceEligibilityGate(registry)


@pytest.fixture
def repository():
    return InMemoryInvoiceRepository()


@pytest.fixture
def audit_service():
    return AuditTrailService()


# =============================================================================
# API Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def client(registry, repository, audit_service) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API tests"""
    app.state.registry = registry
    app.state.repository = repository
    app.state.gate = InvoiceEligibilityGate(registry)
    app.state.audit = audit_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def sample_tax_info():
    """VAT registered South African contractor"""
    return TaxInfo(
        country="ZA",
        tax_number="1234567890",
        vat_registered=True,
        vat_number="4123456789",
    )


@pytest.fixture
def make_draft(sample_tax_info):
    """Build an invoice draft; keyword arguments override the defaults"""
    def _make(**overrides) -> InvoiceDraft:
        values = dict(
            organization_id="org-1",
            contractor_id="contractor-1",
            contractor_classification="independent_contractor",
            tax_info=sample_tax_info,
            currency="ZAR",
            line_items=(
                LineItem("Backend development", Decimal("40"), Decimal("500")),
            ),
            control_factors=ControlTestFactors.independent(),
            invoice_number="INV-2025-000001",
            period_start=date(2025, 3, 1),
            period_end=date(2025, 3, 31),
        )
        values.update(overrides)
        return InvoiceDraft(**values)
    return _make


@pytest.fixture
def make_legacy_invoice():
    """Stored row as imported from a system without the eligibility gate"""
    def _make(classification="fixed_term_employee", **overrides) -> StoredInvoice:
        values = dict(
            id=str(uuid.uuid4()),
            organization_id="org-1",
            contractor_id="worker-1",
            classification=classification,
            tax_info={"country": "ZA", "tax_number": "1234567890", "vat_registered": False},
            currency="ZAR",
            line_items=[{"description": "Monthly work", "quantity": "1", "unit_rate": "15000", "units": "months"}],
            subtotal=Decimal("15000.00"),
            vat_rate=Decimal("0"),
            vat_amount=Decimal("0.00"),
            total_amount=Decimal("15000.00"),
            status="draft",
            control_factors={},
            created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )
        values.update(overrides)
        values.setdefault("invoice_number", f"LEGACY-{values['id'][:8]}")
        return StoredInvoice(**values)
    return _make


@pytest.fixture
def sample_invoice_payload():
    """Contractor invoice create request body"""
    return {
        "organization_id": "org-1",
        "contractor_id": "contractor-1",
        "contractor_classification": "independent_contractor",
        "tax_info": {
            "country": "ZA",
            "tax_number": "1234567890",
            "vat_registered": True,
            "vat_number": "4123456789",
        },
        "currency": "ZAR",
        "line_items": [
            {"description": "Backend development", "quantity": "40", "unit_rate": "500", "units": "hours"},
        ],
        "control_factors": {
            "fixed_workplace": False,
            "fixed_hours": False,
            "supervised": False,
            "uses_company_equipment": False,
            "has_other_clients": True,
            "paid_regular_salary": False,
            "receives_training": False,
            "has_employee_benefits": False,
            "can_substitute": True,
        },
        "period_start": "2025-03-01",
        "period_end": "2025-03-31",
    }


@pytest.fixture
def sample_organization_payload():
    """Organization profile request body"""
    return {
        "organization_id": "org-1",
        "org_type": "corporation",
        "industry_code": "education",
        "annual_revenue": "2000000",
        "employee_count": 5,
        "region": "western cape",
        "beneficial_owners": [{"name": "Thandi Nkosi", "country": "ZA"}],
        "bank_verified": True,
        "bee_compliance_verified": False,
        "documents": [
            {"doc_type": "tax_registration", "verified": True},
            {"doc_type": "vat_registration_certificate", "verified": True},
        ],
        "registration_number": "2015/123456/07",
        "tax_number": "9876543210",
    }

"""
Unit Tests - Compliance audit trail
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.api.services.audit_trail import AuditEventType, AuditTrailService


class TestAuditTrailService:
    """Tests for audit event recording"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_buffered_history(self, audit_service):
        await audit_service.record(AuditEventType.INVOICE_ISSUED, "inv-1", {"total": "23000.00"}, actor="user-1")
        await audit_service.record(AuditEventType.INVOICE_APPROVED, "inv-1", {}, actor="manager-1")
        await audit_service.record(AuditEventType.INVOICE_ISSUED, "inv-2", {}, actor="user-1")

        history = await audit_service.get_history("inv-1")
        assert [e.event_type for e in history] == [AuditEventType.INVOICE_ISSUED, AuditEventType.INVOICE_APPROVED]
        assert history[1].actor == "manager-1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_filter_by_type(self, audit_service):
        await audit_service.record(AuditEventType.INVOICE_ISSUED, "inv-1", {})
        await audit_service.record(AuditEventType.INVOICE_BLOCKED, "inv-1", {"code": "LEGAL_VIOLATION"})

        history = await audit_service.get_history("inv-1", event_types=[AuditEventType.INVOICE_BLOCKED])
        assert len(history) == 1
        assert history[0].data["code"] == "LEGAL_VIOLATION"
        assert history[0].actor == "system"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_persisted_history(self):
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        service = AuditTrailService(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
        await service.ensure_schema()

        await service.record(
            AuditEventType.RECONCILIATION_COMPLETED, "all", {"updated": 2},
            aggregate_type="reconciliation",
        )
        history = await service.get_history("all")
        await engine.dispose()

        assert len(history) == 1
        assert history[0].data == {"updated": 2}
        assert history[0].to_dict()["event_type"] == "reconciliation.completed"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_database_mode_keeps_no_memory_copy(self):
        """Events written to the database are not also held in process memory"""
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        service = AuditTrailService(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
        await service.ensure_schema()

        for i in range(50):
            await service.record(AuditEventType.INVOICE_ISSUED, f"inv-{i}", {})
        stored = await service.get_history("inv-49")
        await engine.dispose()

        assert len(stored) == 1
        assert service._events_buffer == []

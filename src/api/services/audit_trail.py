"""
Audit Trail Service - Compliance event log.

Records classification decisions, invoice issuance, approvals,
reclassifications and reconciliation runs with the acting user, so that a
deemed-employment finding can be traced back to the decision that allowed
the invoice.
"""

from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass
import json
import uuid
import structlog
from sqlalchemy import text

logger = structlog.get_logger()


class AuditEventType(str, Enum):
    """Types of audit events."""
    ELIGIBILITY_CHECKED = "classification.eligibility_checked"
    INVOICE_BLOCKED = "invoice.blocked"
    INVOICE_ISSUED = "invoice.issued"
    INVOICE_RECLASSIFIED = "invoice.reclassified"
    INVOICE_APPROVED = "invoice.approved"
    ORGANIZATION_ASSESSED = "organization.risk_assessed"
    RECONCILIATION_COMPLETED = "reconciliation.completed"


@dataclass
class AuditEvent:
    """Single audit event."""
    event_id: str
    event_type: AuditEventType
    aggregate_id: str
    aggregate_type: str  # "invoice", "organization", "reconciliation"
    timestamp: datetime
    actor: str
    data: Dict[str, Any]
    metadata: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "timestamp": self.timestamp.isoformat(),
            "actor": self.actor,
            "data": self.data,
            "metadata": self.metadata
        }


AUDIT_TABLE = """
    CREATE TABLE IF NOT EXISTS compliance_audit_events (
        id VARCHAR(64) PRIMARY KEY,
        aggregate_id VARCHAR(64) NOT NULL,
        aggregate_type VARCHAR(32) NOT NULL,
        event_type VARCHAR(64) NOT NULL,
        actor VARCHAR(128) NOT NULL,
        event_data TEXT,
        metadata TEXT,
        created_at VARCHAR(40) NOT NULL
    )
"""


class AuditTrailService:
    """
    Service for recording and querying compliance audit events.

    Without a session factory events are kept in memory; with one they are
    written to the database only.
    """

    def __init__(self, session_factory=None):
        self.session_factory = session_factory
        self._events_buffer: List[AuditEvent] = []

    async def ensure_schema(self):
        if self.session_factory is None:
            return
        async with self.session_factory() as session:
            await session.execute(text(AUDIT_TABLE))
            await session.commit()

    async def record(
        self,
        event_type: AuditEventType,
        aggregate_id: str,
        data: Dict[str, Any],
        actor: str = "system",
        aggregate_type: str = "invoice",
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """
        Record an audit event.

        Args:
            event_type: Type of event
            aggregate_id: ID of the entity (e.g., invoice_id)
            data: Event data (decision, classification, totals, etc.)
            actor: Who performed the action
            aggregate_type: Kind of entity
            metadata: Additional context

        Returns:
            Created AuditEvent
        """
        event = AuditEvent(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            aggregate_id=aggregate_id,
            aggregate_type=aggregate_type,
            timestamp=datetime.now(timezone.utc),
            actor=actor,
            data=data,
            metadata=metadata or {}
        )

        if self.session_factory is None:
            self._events_buffer.append(event)

        logger.info(
            "audit_event_recorded",
            event_type=event_type.value,
            aggregate_id=aggregate_id,
            actor=actor
        )

        if self.session_factory is not None:
            await self._persist_event(event)

        return event

    async def _persist_event(self, event: AuditEvent):
        """Persist event to database."""
        try:
            async with self.session_factory() as session:
                await session.execute(
                    text("""
                        INSERT INTO compliance_audit_events
                        (id, aggregate_id, aggregate_type, event_type, actor, event_data, metadata, created_at)
                        VALUES (:id, :aggregate_id, :aggregate_type, :event_type, :actor, :event_data, :metadata, :created_at)
                    """),
                    {
                        "id": event.event_id,
                        "aggregate_id": event.aggregate_id,
                        "aggregate_type": event.aggregate_type,
                        "event_type": event.event_type.value,
                        "actor": event.actor,
                        "event_data": json.dumps(event.data, default=str),
                        "metadata": json.dumps(event.metadata, default=str),
                        "created_at": event.timestamp.isoformat()
                    }
                )
                await session.commit()
        except Exception as e:
            logger.warning("audit_event_persist_failed", event_id=event.event_id, error=str(e))

    async def get_history(
        self,
        aggregate_id: str,
        event_types: Optional[List[AuditEventType]] = None
    ) -> List[AuditEvent]:
        """
        Get audit history for an entity in chronological order.
        """
        if self.session_factory is None:
            events = [e for e in self._events_buffer if e.aggregate_id == aggregate_id]
            if event_types:
                events = [e for e in events if e.event_type in event_types]
            return sorted(events, key=lambda e: e.timestamp)

        async with self.session_factory() as session:
            result = await session.execute(
                text("""
                    SELECT id, aggregate_id, aggregate_type, event_type, actor,
                           event_data, metadata, created_at
                    FROM compliance_audit_events
                    WHERE aggregate_id = :aggregate_id
                    ORDER BY created_at ASC
                """),
                {"aggregate_id": aggregate_id}
            )
            rows = result.fetchall()

        events = [
            AuditEvent(
                event_id=row[0],
                event_type=AuditEventType(row[3]),
                aggregate_id=row[1],
                aggregate_type=row[2],
                timestamp=datetime.fromisoformat(row[7]),
                actor=row[4],
                data=json.loads(row[5] or "{}"),
                metadata=json.loads(row[6] or "{}")
            )
            for row in rows
        ]
        if event_types:
            events = [e for e in events if e.event_type in event_types]
        return events

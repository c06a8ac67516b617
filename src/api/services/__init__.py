"""
Services module - Cross-cutting services for the API layer.

Contains:
- Audit trail of compliance decisions
"""

from .audit_trail import AuditTrailService, AuditEvent, AuditEventType

__all__ = [
    "AuditTrailService",
    "AuditEvent",
    "AuditEventType",
]

"""
Request dependencies - services built at startup and kept on app.state.
"""
from typing import Optional

from fastapi import Header, HTTPException, Request

from src.compliance import InvoiceEligibilityGate, InvoiceRepository, ProviderRegistry
from src.compliance.providers import ComplianceProvider
from src.compliance.types import Failure

from .config import settings
from .services.audit_trail import AuditTrailService

# HTTP status for gate failure codes
FAILURE_STATUS = {
    "LEGAL_VIOLATION": 422,
    "FORMAT_VIOLATION": 422,
    "UNKNOWN_CLASSIFICATION": 422,
    "UNSUPPORTED_JURISDICTION": 400,
    "INVOICE_IMMUTABLE": 409,
    "INVALID_AMENDMENT": 422,
    "DUPLICATE_INVOICE_NUMBER": 409,
    "MALFORMED_INVOICE": 422,
    "COMPLIANCE_SYSTEM_ERROR": 500,
}


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def get_repository(request: Request) -> InvoiceRepository:
    return request.app.state.repository


def get_gate(request: Request) -> InvoiceEligibilityGate:
    return request.app.state.gate


def get_audit_service(request: Request) -> AuditTrailService:
    return request.app.state.audit


def get_actor(x_actor_id: Optional[str] = Header(default=None)) -> str:
    """Acting user as forwarded by the authentication middleware"""
    return (x_actor_id or "").strip() or "system"


def resolve_provider(registry: ProviderRegistry, jurisdiction: Optional[str]) -> ComplianceProvider:
    """Provider for the requested jurisdiction, or the configured default"""
    return registry.get(jurisdiction or settings.DEFAULT_JURISDICTION)


def raise_for_failure(failure: Failure):
    """Turn a gate Failure into an HTTPException"""
    status_code = FAILURE_STATUS.get(failure.code, 422)
    if status_code >= 500:
        raise HTTPException(status_code=status_code, detail={
            "code": failure.code, "message": "Compliance check could not be completed"
        })
    raise HTTPException(status_code=status_code, detail={
        "code": failure.code,
        "message": failure.error,
        "details": failure.details,
    })

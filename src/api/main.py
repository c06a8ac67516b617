"""
API Backend - Main Application
Worker classification and contractor invoice compliance service
"""
from datetime import datetime, timezone
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.compliance import (
    ComplianceError,
    ComplianceSystemError,
    DuplicateInvoiceNumber,
    InMemoryInvoiceRepository,
    InvoiceEligibilityGate,
    InvoiceImmutable,
    SqlInvoiceRepository,
    UnsupportedJurisdiction,
    build_default_registry,
)

from .routers import contractor_invoices, organizations, compliance, reconciliation
from .database import init_database, close_database, get_session_factory
from .config import settings
from .services.audit_trail import AuditTrailService

# Configure logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ]
)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting API Backend",
                environment=settings.ENVIRONMENT,
                invoice_store=settings.INVOICE_STORE,
                default_jurisdiction=settings.DEFAULT_JURISDICTION)

    registry = build_default_registry()
    use_sql = settings.INVOICE_STORE == "sql"

    if use_sql:
        await init_database()
        session_factory = get_session_factory()
        repository = SqlInvoiceRepository(session_factory)
        audit = AuditTrailService(session_factory)
    else:
        repository = InMemoryInvoiceRepository()
        audit = AuditTrailService()

    await repository.ensure_schema()
    await audit.ensure_schema()

    app.state.registry = registry
    app.state.repository = repository
    app.state.gate = InvoiceEligibilityGate(registry)
    app.state.audit = audit

    logger.info("API Backend started successfully", jurisdictions=registry.supported_countries())

    yield

    # Shutdown
    logger.info("Shutting down API Backend")
    if use_sql:
        await close_database()


# OpenAPI Tags
openapi_tags = [
    {"name": "Contractor Invoices", "description": "Classification eligibility and invoice creation through the compliance gate"},
    {"name": "Organizations", "description": "Organization risk assessment and document requirements"},
    {"name": "Compliance", "description": "Supported jurisdictions and employment types"},
    {"name": "Reconciliation", "description": "Re-validation of stored invoices against current rules"},
]

# Create FastAPI app
app = FastAPI(
    title="Worker Compliance - API",
    description="""
## Worker classification and contractor invoice compliance

Employees and other payroll-only workers cannot be paid via invoice. Every
contractor invoice is created through an eligibility gate that applies the
labour law of the contractor's tax jurisdiction.

| Module | Description |
|--------|-------------|
| **Contractor Invoices** | Eligibility checks, dry runs, creation, reclassification, approval |
| **Organizations** | Risk scoring, required documents, verification checklists |
| **Compliance** | Jurisdictions and default employment types |
| **Reconciliation** | Flags stored invoices that current rules would block |
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=openapi_tags,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(ComplianceError)
async def compliance_exception_handler(request: Request, exc: ComplianceError):
    if isinstance(exc, ComplianceSystemError):
        logger.error("Compliance system error", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=500, content={"detail": exc.to_dict()})

    if isinstance(exc, UnsupportedJurisdiction):
        status_code = 400
    elif isinstance(exc, (InvoiceImmutable, DuplicateInvoiceNumber)):
        status_code = 409
    else:
        status_code = 422

    logger.warning("Compliance error",
                   path=request.url.path,
                   code=exc.code,
                   status_code=status_code)
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception",
                 path=request.url.path,
                 method=request.method,
                 error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error_id": str(datetime.now(timezone.utc).timestamp())}
    )


# Include routers
app.include_router(contractor_invoices.router, prefix="/contractor-invoices", tags=["Contractor Invoices"])
app.include_router(organizations.router, prefix="/organizations", tags=["Organizations"])
app.include_router(compliance.router, prefix="/compliance", tags=["Compliance"])
app.include_router(reconciliation.router, prefix="/reconciliation", tags=["Reconciliation"])


# Health check
@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    registry = getattr(request.app.state, "registry", None)
    return {
        "status": "healthy",
        "service": "api",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
        "invoice_store": settings.INVOICE_STORE,
        "jurisdictions": registry.supported_countries() if registry else []
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API info"""
    return {
        "name": "Worker Compliance API",
        "version": "1.0.0",
        "default_jurisdiction": settings.DEFAULT_JURISDICTION,
        "docs": "/docs",
        "health": "/health"
    }

"""
Contractor Invoices Router Package

- models.py: Pydantic request/response models
- eligibility.py: Classification types, eligibility checks, dry-run validation
- invoices.py: Create, list, reclassify and approve through the eligibility gate
"""

from fastapi import APIRouter

from .eligibility import router as eligibility_router
from .invoices import router as invoices_router

router = APIRouter(tags=["Contractor Invoices"])

# Fixed paths before /{invoice_id}
router.include_router(eligibility_router)
router.include_router(invoices_router)

__all__ = ["router"]

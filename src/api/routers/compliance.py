"""
Compliance Router - Supported jurisdictions and employment type templates
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.compliance import ProviderRegistry

from ..dependencies import get_registry, resolve_provider

router = APIRouter()


@router.get("/jurisdictions")
async def list_jurisdictions(registry: ProviderRegistry = Depends(get_registry)):
    """Registered jurisdictions with currency, VAT rate and rule version"""
    return {"jurisdictions": registry.list_jurisdictions()}


@router.get("/employment-types")
async def list_default_employment_types(
    jurisdiction: Optional[str] = Query(default=None),
    registry: ProviderRegistry = Depends(get_registry),
):
    """Default employment types seeded for new tenants in a jurisdiction"""
    provider = resolve_provider(registry, jurisdiction)
    return {
        "jurisdiction": provider.country_code,
        "employment_types": provider.default_employment_types(),
    }

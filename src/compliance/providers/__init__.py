"""
Jurisdiction compliance providers
"""
from .base import ComplianceProvider, JurisdictionConfig, TaxAdvisory
from .south_africa import SouthAfricaComplianceProvider

__all__ = [
    "ComplianceProvider",
    "JurisdictionConfig",
    "TaxAdvisory",
    "SouthAfricaComplianceProvider",
]

"""
API Routers
"""
from . import contractor_invoices, organizations, compliance, reconciliation

__all__ = ['contractor_invoices', 'organizations', 'compliance', 'reconciliation']

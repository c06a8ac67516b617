"""
Document Requirement Resolver - Organization facts to document checklist.

Checklist assembly order:
1. Base documents (always)
2. Organization-type documents
3. Revenue-threshold documents (e.g. VAT above the registration threshold)
4. Employer documents when employee_count > 0, with their own revenue gates

Output is stable-sorted by category rank, then insertion order, so callers
can diff it across runs.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Mapping, Optional, Tuple

from .types import ComplianceRequirement, OrganizationType


@dataclass(frozen=True)
class ThresholdRequirement:
    """Requirement added once revenue is strictly above ``revenue_above``."""
    revenue_above: Decimal
    requirement: ComplianceRequirement


@dataclass(frozen=True)
class DocumentRequirementResolver:
    base: Tuple[ComplianceRequirement, ...]
    by_org_type: Mapping[OrganizationType, Tuple[ComplianceRequirement, ...]] = field(
        default_factory=dict
    )
    revenue_requirements: Tuple[ThresholdRequirement, ...] = ()
    employer_requirements: Tuple[ComplianceRequirement, ...] = ()
    employer_revenue_requirements: Tuple[ThresholdRequirement, ...] = ()

    def resolve(
        self,
        org_type: Optional[OrganizationType],
        annual_revenue: Optional[Decimal] = None,
        employee_count: Optional[int] = None,
    ) -> List[ComplianceRequirement]:
        """
        Resolve the checklist for an organization.

        Unknown revenue or employee count adds no conditional documents.

        Args:
            org_type: Organization type, or None for base documents only
            annual_revenue: Estimated annual revenue
            employee_count: Number of employees

        Returns:
            Ordered list of ComplianceRequirement
        """
        items: List[ComplianceRequirement] = list(self.base)
        if org_type is not None:
            items.extend(self.by_org_type.get(org_type, ()))

        revenue = Decimal(annual_revenue) if annual_revenue is not None else None

        if revenue is not None:
            items.extend(
                rule.requirement for rule in self.revenue_requirements
                if revenue > rule.revenue_above
            )

        if employee_count and employee_count > 0:
            items.extend(self.employer_requirements)
            if revenue is not None:
                items.extend(
                    rule.requirement for rule in self.employer_revenue_requirements
                    if revenue > rule.revenue_above
                )

        # sorted() is stable, so insertion order holds within a category
        return sorted(items, key=lambda r: r.category.rank)


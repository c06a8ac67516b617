"""
Organization risk assessment with review scheduling.

An assessment is produced at onboarding and again on every risk-relevant
change (new owner, new document, revenue change).
"""
import calendar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .providers import ComplianceProvider
from .types import OrganizationProfile, RiskLevel, RiskProfile

REVIEW_INTERVAL_MONTHS = {
    RiskLevel.LOW: 12,
    RiskLevel.MEDIUM: 6,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 3,
}


def add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass
class RiskAssessment:
    jurisdiction: str
    rule_version: str
    risk_profile: RiskProfile
    assessed_at: datetime
    review_required_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        data = self.risk_profile.to_dict()
        data.update({
            "jurisdiction": self.jurisdiction,
            "rule_version": self.rule_version,
            "assessed_at": self.assessed_at.isoformat(),
            "review_required_at": self.review_required_at.isoformat(),
        })
        return data


def assess_organization(
    provider: ComplianceProvider,
    profile: OrganizationProfile,
    now: Optional[datetime] = None,
) -> RiskAssessment:
    """
    Score an organization and schedule its next review.

    Args:
        provider: Jurisdiction provider
        profile: Organization facts
        now: Assessment time (defaults to current UTC time)

    Returns:
        RiskAssessment
    """
    assessed_at = now or datetime.now(timezone.utc)
    risk = provider.calculate_risk_score(profile)
    return RiskAssessment(
        jurisdiction=provider.country_code,
        rule_version=provider.rule_version,
        risk_profile=risk,
        assessed_at=assessed_at,
        review_required_at=add_months(assessed_at, REVIEW_INTERVAL_MONTHS[risk.overall_risk]),
    )


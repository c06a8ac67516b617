"""
Risk Scorer - Deterministic, additive risk scoring.

Two scorecards share one mechanism:

- organization risk: industry, geography, ownership, compliance, financial
- deemed-employment risk of a work relationship: control, schedule,
  integration, exclusivity, remuneration

Each dimension starts at a jurisdiction baseline and receives named
additive adjustments. Dimensions are clamped to [1, 10] and the overall
level is the bucket of their mean. Every adjustment appends a reason;
missing input leaves the dimension at baseline and appends an explicit
"Insufficient data" reason. The scorer does not raise on incomplete input.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

import structlog

from .classification import FACTOR_LABELS, ControlTestFactors
from .types import OrganizationProfile, RiskProfile, RiskThresholds

logger = structlog.get_logger()

MIN_SCORE = 1
MAX_SCORE = 10

ORGANIZATION_DIMENSIONS = ("industry", "geography", "ownership", "compliance", "financial")
RELATIONSHIP_DIMENSIONS = ("control", "schedule", "integration", "exclusivity", "remuneration")


@dataclass(frozen=True)
class ControlRule:
    """One row of the control-test rule table"""
    fact: str
    dimension: str
    points: int
    reason: str
    action: Optional[str] = None


@dataclass(frozen=True)
class RiskPolicy:
    """
    Jurisdiction policy constants for scoring.

    Point values and bucket thresholds are policy, not derived from a
    statutory formula.
    """
    organization_baselines: Mapping[str, int]
    control_rules: Tuple[ControlRule, ...]
    relationship_baseline: int = 1
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    home_country: str = ""
    high_risk_industries: FrozenSet[str] = frozenset()
    medium_risk_industries: FrozenSet[str] = frozenset()
    low_risk_industries: FrozenSet[str] = frozenset()
    high_risk_regions: FrozenSet[str] = frozenset()
    medium_risk_regions: FrozenSet[str] = frozenset()
    low_risk_regions: FrozenSet[str] = frozenset()
    points: Mapping[str, int] = field(default_factory=dict)
    complex_ownership_owners: int = 5
    large_revenue: Decimal = Decimal("50000000")
    small_revenue: Decimal = Decimal("100000")
    unverified_banking_revenue: Decimal = Decimal("1000000")
    vat_revenue: Decimal = Decimal("1000000")
    empowerment_revenue: Optional[Decimal] = None
    tax_registration_document: str = "tax_registration"
    vat_registration_document: str = "vat_registration_certificate"

    def point(self, name: str) -> int:
        return self.points.get(name, 0)


class _Scorecard:
    """Mutable accumulator used while scoring a single profile."""

    def __init__(self, baselines: Mapping[str, int]):
        self.scores: Dict[str, int] = dict(baselines)
        self.reasons: List[str] = []
        self.actions: List[str] = []
        self.insufficient = False

    def adjust(self, dimension: str, points: int, reason: str, action: Optional[str] = None):
        self.scores[dimension] += points
        self.reasons.append(f"{reason} ({dimension} {points:+d})")
        if action and action not in self.actions:
            self.actions.append(action)

    def advise(self, action: str):
        if action not in self.actions:
            self.actions.append(action)

    def missing(self, label: str):
        self.insufficient = True
        self.reasons.append(f"Insufficient data: {label} not provided")
        self.advise(f"Capture {label} to complete the assessment")

    def finalize(self, thresholds: RiskThresholds) -> RiskProfile:
        dimensions = {
            name: max(MIN_SCORE, min(MAX_SCORE, score))
            for name, score in self.scores.items()
        }
        mean_score = sum(dimensions.values()) / len(dimensions)
        return RiskProfile(
            overall_risk=thresholds.bucket(mean_score),
            dimensions=dimensions,
            reasons=self.reasons,
            recommended_actions=self.actions,
            insufficient_data=self.insufficient,
        )


class RiskScorer:
    """
    Pure risk scoring over a jurisdiction policy.

    Stateless apart from the immutable policy; safe to share across threads.
    """

    def __init__(self, policy: RiskPolicy):
        self.policy = policy

    def score_relationship(self, factors: ControlTestFactors) -> RiskProfile:
        """Deemed-employment risk from control-test facts."""
        card = _Scorecard({d: self.policy.relationship_baseline for d in RELATIONSHIP_DIMENSIONS})
        reported_missing = set()

        for rule in self.policy.control_rules:
            employee_like = factors.is_employee_like(rule.fact)
            if employee_like is None:
                if rule.fact not in reported_missing:
                    reported_missing.add(rule.fact)
                    card.missing(FACTOR_LABELS.get(rule.fact, rule.fact))
                continue
            if employee_like:
                card.adjust(rule.dimension, rule.points, rule.reason, rule.action)

        return card.finalize(self.policy.thresholds)

    def score_organization(self, profile: OrganizationProfile) -> RiskProfile:
        """Organization risk from onboarding facts."""
        policy = self.policy
        card = _Scorecard({d: policy.organization_baselines.get(d, 5) for d in ORGANIZATION_DIMENSIONS})

        self._score_industry(card, profile)
        self._score_geography(card, profile)
        self._score_ownership(card, profile)
        self._score_financial(card, profile)
        self._score_compliance(card, profile)

        result = card.finalize(policy.thresholds)
        logger.debug(
            "organization_risk_scored",
            overall_risk=result.overall_risk.value,
            insufficient_data=result.insufficient_data,
        )
        return result

    def _score_industry(self, card: _Scorecard, profile: OrganizationProfile):
        if not profile.industry_code:
            card.missing("industry classification")
            return
        code = profile.industry_code.strip().lower()
        if code in self.policy.high_risk_industries:
            card.adjust("industry", self.policy.point("industry_high"),
                        "High-risk industry classification",
                        "Enhanced due diligence required")
        elif code in self.policy.low_risk_industries:
            card.adjust("industry", -self.policy.point("industry_low"),
                        "Low-risk industry classification")

    def _score_geography(self, card: _Scorecard, profile: OrganizationProfile):
        if not profile.region:
            card.missing("business region")
            return
        region = profile.region.strip().lower()
        if region in self.policy.high_risk_regions:
            card.adjust("geography", self.policy.point("region_high"),
                        "Higher-risk province location")
        elif region in self.policy.medium_risk_regions:
            card.adjust("geography", self.policy.point("region_medium"),
                        "Moderate-risk province location")
        elif region in self.policy.low_risk_regions:
            card.adjust("geography", -self.policy.point("region_low"),
                        "Lower-risk province location")

    def _score_ownership(self, card: _Scorecard, profile: OrganizationProfile):
        owners = profile.beneficial_owners
        if owners is None:
            card.missing("beneficial ownership")
            return
        if len(owners) > self.policy.complex_ownership_owners:
            card.adjust("ownership", self.policy.point("complex_ownership"),
                        "Complex ownership structure",
                        "Map the full beneficial ownership structure")
        if any(o.politically_exposed for o in owners):
            card.adjust("ownership", self.policy.point("politically_exposed"),
                        "Politically Exposed Person (PEP) identified",
                        "Enhanced PEP due diligence required")
        home = self.policy.home_country.upper()
        if any(o.country and o.country.upper() != home for o in owners):
            card.adjust("ownership", self.policy.point("foreign_ownership"),
                        "Foreign ownership identified",
                        "Verify foreign exchange compliance")

    def _score_financial(self, card: _Scorecard, profile: OrganizationProfile):
        revenue = profile.annual_revenue
        if revenue is None:
            card.missing("annual revenue")
            return
        if revenue > self.policy.large_revenue:
            card.adjust("financial", self.policy.point("large_business"),
                        "Large business turnover",
                        "Large business - enhanced monitoring")
        elif revenue < self.policy.small_revenue:
            card.adjust("financial", self.policy.point("very_small_business"),
                        "Very small business - verify legitimacy")

        if revenue > self.policy.unverified_banking_revenue:
            if profile.bank_verified is None:
                card.missing("bank account verification")
            elif not profile.bank_verified:
                card.adjust("financial", self.policy.point("unverified_banking"),
                            "Large cash business without verified banking",
                            "Verify all banking relationships")

    def _score_compliance(self, card: _Scorecard, profile: OrganizationProfile):
        policy = self.policy
        if not profile.has_document(policy.tax_registration_document):
            card.adjust("compliance", policy.point("missing_tax_registration"),
                        "Tax registration not provided",
                        "Submit tax registration document")

        revenue = profile.annual_revenue
        if revenue is None:
            return
        if revenue > policy.vat_revenue and not profile.has_document(policy.vat_registration_document):
            card.adjust("compliance", policy.point("missing_vat_registration"),
                        "VAT registration required but not provided",
                        "Submit VAT registration certificate")
        if (
            policy.empowerment_revenue is not None
            and revenue > policy.empowerment_revenue
            and not profile.bee_compliance_verified
        ):
            card.adjust("compliance", policy.point("empowerment_unverified"),
                        "Empowerment compliance not verified",
                        "Verify B-BBEE compliance status")

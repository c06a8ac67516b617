"""
Unit Tests - Risk scoring
"""
from decimal import Decimal

import pytest

from src.compliance import ControlTestFactors, OrganizationProfile, RiskLevel
from src.compliance.classification import EMPLOYEE_LIKE_VALUE
from src.compliance.risk import MAX_SCORE, MIN_SCORE, RiskScorer
from src.compliance.providers.south_africa import RISK_POLICY
from src.compliance.types import BeneficialOwner, OrganizationDocument, RiskThresholds


@pytest.fixture
def scorer():
    return RiskScorer(RISK_POLICY)


class TestRelationshipRisk:
    """Tests for deemed-employment scoring"""

    @pytest.mark.unit
    def test_independent_contractor_is_low(self, scorer):
        profile = scorer.score_relationship(ControlTestFactors.independent())
        assert profile.overall_risk == RiskLevel.LOW
        assert profile.reasons == []
        assert not profile.insufficient_data

    @pytest.mark.unit
    def test_employee_like_is_critical(self, scorer):
        profile = scorer.score_relationship(ControlTestFactors.employee_like())
        assert profile.overall_risk == RiskLevel.CRITICAL
        assert profile.dimensions["control"] == 8
        assert "Remove day-to-day supervision and contract for deliverables" in profile.recommended_actions

    @pytest.mark.unit
    def test_reasons_name_dimension_and_points(self, scorer):
        factors = ControlTestFactors.independent().with_fact("supervised", True)
        profile = scorer.score_relationship(factors)
        assert profile.reasons == ["Direct supervision is a key indicator of employment (control +5)"]

    @pytest.mark.unit
    def test_missing_facts_reported(self, scorer):
        profile = scorer.score_relationship(ControlTestFactors())
        assert profile.insufficient_data
        assert "Insufficient data: supervision not provided" in profile.reasons
        assert profile.overall_risk == RiskLevel.LOW

    @pytest.mark.unit
    def test_dimensions_are_clamped(self, scorer):
        profile = scorer.score_relationship(ControlTestFactors.employee_like())
        assert all(MIN_SCORE <= v <= MAX_SCORE for v in profile.dimensions.values())

    @pytest.mark.unit
    @pytest.mark.parametrize("fact", sorted(EMPLOYEE_LIKE_VALUE))
    def test_flipping_one_fact_never_lowers_risk(self, scorer, fact):
        """Monotonicity: any single fact towards employment cannot decrease risk"""
        for base in (ControlTestFactors.independent(), ControlTestFactors.employee_like().with_fact(fact, not EMPLOYEE_LIKE_VALUE[fact])):
            before = scorer.score_relationship(base)
            after = scorer.score_relationship(base.with_fact(fact, EMPLOYEE_LIKE_VALUE[fact]))
            assert after.overall_risk.rank >= before.overall_risk.rank
            assert after.mean_score >= before.mean_score

    @pytest.mark.unit
    def test_scoring_is_deterministic(self, scorer):
        factors = ControlTestFactors(supervised=True, fixed_hours=True)
        assert scorer.score_relationship(factors) == scorer.score_relationship(factors)


class TestOrganizationRisk:
    """Tests for organization scoring"""

    @pytest.mark.unit
    def test_empty_profile_reports_insufficient_data(self, scorer):
        profile = scorer.score_organization(OrganizationProfile())
        assert profile.insufficient_data
        assert "Insufficient data: industry classification not provided" in profile.reasons
        assert "Insufficient data: annual revenue not provided" in profile.reasons
        assert set(profile.dimensions) == {"industry", "geography", "ownership", "compliance", "financial"}

    @pytest.mark.unit
    def test_high_risk_organization(self, scorer):
        profile = scorer.score_organization(OrganizationProfile(
            industry_code="gambling",
            region="limpopo",
            annual_revenue=Decimal("60000000"),
            bank_verified=False,
            beneficial_owners=[
                BeneficialOwner("A", country="NG", politically_exposed=True),
            ],
        ))
        assert profile.dimensions["industry"] == 8
        assert profile.dimensions["ownership"] == 10
        assert profile.overall_risk in (RiskLevel.HIGH, RiskLevel.CRITICAL)
        assert "Enhanced PEP due diligence required" in profile.recommended_actions

    @pytest.mark.unit
    def test_low_risk_organization(self, scorer):
        profile = scorer.score_organization(OrganizationProfile(
            industry_code="education",
            region="western cape",
            annual_revenue=Decimal("500000"),
            beneficial_owners=[BeneficialOwner("B", country="ZA")],
            documents=[OrganizationDocument("tax_registration", verified=True)],
        ))
        assert profile.dimensions["industry"] == 2
        assert profile.dimensions["geography"] == 1
        assert not profile.insufficient_data

    @pytest.mark.unit
    def test_vat_registration_expected_above_threshold(self, scorer):
        profile = scorer.score_organization(OrganizationProfile(
            annual_revenue=Decimal("2000000"),
            bank_verified=True,
            documents=[OrganizationDocument("tax_registration")],
        ))
        assert profile.dimensions["compliance"] == 7
        assert "Submit VAT registration certificate" in profile.recommended_actions


class TestRiskThresholds:
    """Tests for bucket boundaries"""

    @pytest.mark.unit
    @pytest.mark.parametrize("mean,level", [
        (1.0, RiskLevel.LOW),
        (2.5, RiskLevel.LOW),
        (2.6, RiskLevel.MEDIUM),
        (5.0, RiskLevel.MEDIUM),
        (7.5, RiskLevel.HIGH),
        (7.6, RiskLevel.CRITICAL),
    ])
    def test_bucket(self, mean, level):
        assert RiskThresholds().bucket(mean) == level

"""
Classification Validator - Core eligibility decision.

decide(requested, factors):
1. Not a known classification -> Blocked(UNKNOWN_CLASSIFICATION)
2. Payroll-only in the jurisdiction -> Blocked(LEGAL_VIOLATION); nothing
   supplied by the caller overrides this
3. Invoice-eligible -> Approved with the deemed-employment risk profile;
   high and critical risk carry the high-risk advisory flag but still pass
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import structlog

from .classification import (
    ControlTestFactors,
    WorkDuration,
    WorkerClassification,
    WorkType,
    parse_classification,
)
from .exceptions import (
    ComplianceError,
    ComplianceSystemError,
    LegalViolation,
    UnknownClassification,
)
from .providers import ComplianceProvider
from .types import RiskLevel, RiskProfile

logger = structlog.get_logger()


class BlockKind(str, Enum):
    UNKNOWN_CLASSIFICATION = "UNKNOWN_CLASSIFICATION"
    LEGAL_VIOLATION = "LEGAL_VIOLATION"


@dataclass
class Approved:
    """Classification may be paid via invoice"""
    classification: WorkerClassification
    jurisdiction: str
    rule_version: str
    risk_profile: RiskProfile
    advisories: List[str] = field(default_factory=list)
    high_risk: bool = False

    @property
    def approved(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": "approved",
            "classification": self.classification.value,
            "jurisdiction": self.jurisdiction,
            "rule_version": self.rule_version,
            "high_risk": self.high_risk,
            "advisories": list(self.advisories),
            "risk_profile": self.risk_profile.to_dict(),
        }


@dataclass
class Blocked:
    """Classification must not be paid via invoice"""
    kind: BlockKind
    reason: str
    remediation: List[str]
    classification: Optional[str]
    jurisdiction: str
    rule_version: str

    @property
    def approved(self) -> bool:
        return False

    def to_error(self) -> ComplianceError:
        if self.kind == BlockKind.LEGAL_VIOLATION:
            return LegalViolation(
                classification=self.classification,
                jurisdiction=self.jurisdiction,
                explanation=self.reason,
                remediation=self.remediation,
            )
        return UnknownClassification(self.classification, allowed=WorkerClassification.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": "blocked",
            "kind": self.kind.value,
            "classification": self.classification,
            "jurisdiction": self.jurisdiction,
            "rule_version": self.rule_version,
            "reason": self.reason,
            "remediation": list(self.remediation),
        }


Decision = Union[Approved, Blocked]


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class ClassificationRecommendation:
    recommended_classification: WorkerClassification
    confidence: Confidence
    reasoning: List[str]
    contractor_score: int
    employee_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommended_classification": self.recommended_classification.value,
            "confidence": self.confidence.value,
            "reasoning": list(self.reasoning),
            "contractor_score": self.contractor_score,
            "employee_score": self.employee_score,
        }


# (fact, employee points, contractor points, employee-like reason, contractor-like reason)
RECOMMENDATION_FACTORS = (
    ("fixed_workplace", 2, 2,
     "Fixed workplace suggests employee relationship",
     "Flexible workplace supports contractor classification"),
    ("fixed_hours", 3, 3,
     "Fixed working hours strongly suggest employment",
     "Flexible hours support contractor independence"),
    ("supervised", 4, 4,
     "Direct supervision is key indicator of employment",
     "Independent work arrangement supports contractor status"),
    ("uses_company_equipment", 2, 2,
     "Using company equipment suggests employee relationship",
     "Own equipment supports contractor independence"),
    ("has_other_clients", 2, 3,
     "Exclusive service suggests employee relationship",
     "Multiple clients strongly support contractor status"),
    ("paid_regular_salary", 4, 3,
     "Regular salary is strong indicator of employment",
     "Project/invoice-based payment supports contractor status"),
)

# Margin one side's score must exceed the other's for a confident call
CLEAR_MARGIN = 3


class ClassificationValidator:
    """Eligibility decisions for one jurisdiction"""

    def __init__(self, provider: ComplianceProvider):
        self.provider = provider

    def decide(
        self,
        requested: Union[str, WorkerClassification, None],
        factors: Optional[ControlTestFactors] = None,
    ) -> Decision:
        """
        Decide whether a worker may invoice under the requested classification.

        Args:
            requested: Requested classification (raw user input accepted)
            factors: Control-test facts; unknown facts are reported, not assumed

        Returns:
            Approved or Blocked

        Raises:
            ComplianceSystemError: if the provider fails unexpectedly
        """
        provider = self.provider
        factors = factors or ControlTestFactors()

        try:
            classification = parse_classification(requested)
        except UnknownClassification as e:
            return Blocked(
                kind=BlockKind.UNKNOWN_CLASSIFICATION,
                reason=e.message,
                remediation=[
                    "Choose one of: " + ", ".join(WorkerClassification.values()),
                ],
                classification=None if requested is None else str(requested),
                jurisdiction=provider.country_code,
                rule_version=provider.rule_version,
            )

        try:
            if provider.is_payroll_only(classification):
                return Blocked(
                    kind=BlockKind.LEGAL_VIOLATION,
                    reason=provider.legal_violation_explanation(classification),
                    remediation=provider.payroll_remediation(classification),
                    classification=classification.value,
                    jurisdiction=provider.country_code,
                    rule_version=provider.rule_version,
                )
            risk = provider.score_relationship(factors)
        except Exception as e:
            logger.error(
                "classification_decision_failed",
                jurisdiction=provider.country_code,
                classification=classification.value,
                error=str(e),
                exc_info=True,
            )
            raise ComplianceSystemError() from e

        return Approved(
            classification=classification,
            jurisdiction=provider.country_code,
            rule_version=provider.rule_version,
            risk_profile=risk,
            advisories=self._advisories(classification, factors, risk),
            high_risk=risk.overall_risk.requires_advisory,
        )

    def _advisories(
        self,
        classification: WorkerClassification,
        factors: ControlTestFactors,
        risk: RiskProfile,
    ) -> List[str]:
        advisories: List[str] = []
        if risk.overall_risk.requires_advisory:
            advisories.append(
                "HIGH RISK: Worker shows strong employee characteristics. "
                "This classification may result in deemed employment."
            )
            advisories.extend(risk.recommended_actions)
        elif risk.overall_risk == RiskLevel.MEDIUM:
            advisories.append(
                "MEDIUM RISK: Worker shows some employee characteristics. "
                "Review arrangement to ensure true contractor relationship."
            )

        if classification == WorkerClassification.INDEPENDENT_CONTRACTOR:
            if factors.has_other_clients is False:
                advisories.append("Independent contractors should typically have multiple clients")
            if factors.can_substitute is False:
                advisories.append("Independent contractors should be able to send substitutes")

        if risk.insufficient_data:
            advisories.append(
                "Assessment incomplete: " + ", ".join(factors.unknown) + " not provided"
            )
        return advisories

    def recommend(
        self,
        factors: ControlTestFactors,
        work_type: Optional[WorkType] = None,
        work_duration: Optional[WorkDuration] = None,
    ) -> ClassificationRecommendation:
        """
        Suggest a classification from the work arrangement.

        Mixed indicators default to employment.
        """
        reasoning: List[str] = []
        contractor_score = 0
        employee_score = 0

        for fact, employee_points, contractor_points, employee_reason, contractor_reason in RECOMMENDATION_FACTORS:
            employee_like = factors.is_employee_like(fact)
            if employee_like is None:
                reasoning.append(f"{fact.replace('_', ' ').capitalize()} not provided")
            elif employee_like:
                employee_score += employee_points
                reasoning.append(employee_reason)
            else:
                contractor_score += contractor_points
                reasoning.append(contractor_reason)

        if contractor_score > employee_score + CLEAR_MARGIN:
            if work_type == WorkType.SPECIALIZED:
                suggested = WorkerClassification.CONSULTANT
                reasoning.append("Specialized work best suited to consultant arrangement")
            elif work_type == WorkType.PROJECT:
                suggested = WorkerClassification.FREELANCER
                reasoning.append("Project-based work suits freelancer classification")
            else:
                suggested = WorkerClassification.INDEPENDENT_CONTRACTOR
                reasoning.append("Work arrangement suits independent contractor status")
            confidence = Confidence.HIGH
        elif employee_score > contractor_score + CLEAR_MARGIN:
            if work_duration == WorkDuration.SHORT_TERM and work_type == WorkType.TEMPORARY:
                suggested = WorkerClassification.TEMPORARY_EMPLOYEE
                reasoning.append("Short-term temporary work suggests temporary employee")
            elif work_duration == WorkDuration.SHORT_TERM:
                suggested = WorkerClassification.FIXED_TERM_EMPLOYEE
                reasoning.append("Short-term but structured work suggests fixed-term employee")
            else:
                suggested = WorkerClassification.FIXED_TERM_EMPLOYEE
                reasoning.append("Employee-like arrangement suggests fixed-term employment")
            confidence = Confidence.HIGH
        else:
            suggested = WorkerClassification.FIXED_TERM_EMPLOYEE
            reasoning.append("Mixed indicators - defaulting to employee classification for legal safety")
            confidence = Confidence.LOW

        return ClassificationRecommendation(
            recommended_classification=suggested,
            confidence=confidence,
            reasoning=reasoning,
            contractor_score=contractor_score,
            employee_score=employee_score,
        )

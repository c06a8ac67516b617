"""
Worker Classification - Closed set of worker types and control-test facts.

Classification is defined once here. Providers partition it into an
invoice-eligible set and a payroll-only set for their jurisdiction.
"""
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import structlog

from .exceptions import UnknownClassification


logger = structlog.get_logger()


class WorkerClassification(str, Enum):
    """Worker types recognised by the platform."""
    INDEPENDENT_CONTRACTOR = "independent_contractor"
    FREELANCER = "freelancer"
    CONSULTANT = "consultant"
    FIXED_TERM_EMPLOYEE = "fixed_term_employee"
    TEMPORARY_EMPLOYEE = "temporary_employee"
    CASUAL_WORKER = "casual_worker"
    LABOUR_BROKER_EMPLOYEE = "labour_broker_employee"

    @classmethod
    def values(cls) -> List[str]:
        return [c.value for c in cls]


def parse_classification(
    value: Union[str, WorkerClassification, None],
) -> WorkerClassification:
    """
    Parse a classification from user input.

    Raises:
        UnknownClassification: if the value is not part of the closed set
    """
    if isinstance(value, WorkerClassification):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        try:
            return WorkerClassification(normalized)
        except ValueError:
            pass
    raise UnknownClassification(value, allowed=WorkerClassification.values())


class WorkType(str, Enum):
    CORE_BUSINESS = "core_business"
    SPECIALIZED = "specialized"
    TEMPORARY = "temporary"
    PROJECT = "project"


class WorkDuration(str, Enum):
    SHORT_TERM = "short_term"
    MEDIUM_TERM = "medium_term"
    LONG_TERM = "long_term"


# Value of each fact that points towards an employment relationship
EMPLOYEE_LIKE_VALUE: Dict[str, bool] = {
    "fixed_workplace": True,
    "fixed_hours": True,
    "supervised": True,
    "uses_company_equipment": True,
    "has_other_clients": False,
    "paid_regular_salary": True,
    "receives_training": True,
    "has_employee_benefits": True,
    "can_substitute": False,
}

FACTOR_LABELS: Dict[str, str] = {
    "fixed_workplace": "fixed workplace",
    "fixed_hours": "fixed working hours",
    "supervised": "supervision",
    "uses_company_equipment": "company equipment",
    "has_other_clients": "other clients",
    "paid_regular_salary": "regular salary",
    "receives_training": "company training",
    "has_employee_benefits": "employee benefits",
    "can_substitute": "right of substitution",
}


@dataclass(frozen=True)
class ControlTestFactors:
    """
    Facts about a work relationship used by the control test.

    ``None`` means the fact is unknown. Unknown facts are reported by the
    scorer as insufficient data; they are never read as ``False``. A value
    that is not a bool is unknown too.
    """
    fixed_workplace: Optional[bool] = None
    fixed_hours: Optional[bool] = None
    supervised: Optional[bool] = None
    uses_company_equipment: Optional[bool] = None
    has_other_clients: Optional[bool] = None
    paid_regular_salary: Optional[bool] = None
    receives_training: Optional[bool] = None
    has_employee_benefits: Optional[bool] = None
    can_substitute: Optional[bool] = None

    def __post_init__(self):
        for name in self.names():
            if not isinstance(getattr(self, name), (bool, type(None))):
                object.__setattr__(self, name, None)

    @classmethod
    def names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def independent(cls) -> "ControlTestFactors":
        """Every fact set to its contractor-like value."""
        return cls(**{name: not value for name, value in EMPLOYEE_LIKE_VALUE.items()})

    @classmethod
    def employee_like(cls) -> "ControlTestFactors":
        """Every fact set to its employee-like value."""
        return cls(**dict(EMPLOYEE_LIKE_VALUE))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ControlTestFactors":
        if not data:
            return cls()
        known = set(cls.names())
        invalid = sorted(k for k, v in data.items() if k in known and not isinstance(v, (bool, type(None))))
        if invalid:
            logger.warning("control_factors_not_boolean", facts=invalid)
        return cls(**{k: v for k, v in data.items() if k in known and isinstance(v, bool)})

    def to_dict(self) -> Dict[str, Optional[bool]]:
        return {name: getattr(self, name) for name in self.names()}

    def with_fact(self, name: str, value: Optional[bool]) -> "ControlTestFactors":
        return replace(self, **{name: value})

    def is_employee_like(self, name: str) -> Optional[bool]:
        value = getattr(self, name)
        if value is None:
            return None
        return value == EMPLOYEE_LIKE_VALUE[name]

    @property
    def unknown(self) -> List[str]:
        return [name for name in self.names() if getattr(self, name) is None]

    @property
    def is_complete(self) -> bool:
        return not self.unknown

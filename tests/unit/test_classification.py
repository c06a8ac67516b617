"""
Unit Tests - Worker classifications and control-test facts
"""
import pytest

from src.compliance import ControlTestFactors, UnknownClassification, WorkerClassification
from src.compliance.classification import parse_classification


class TestParseClassification:
    """Tests for the closed classification set"""

    @pytest.mark.unit
    def test_all_seven_values(self):
        assert len(WorkerClassification.values()) == 7
        assert "labour_broker_employee" in WorkerClassification.values()

    @pytest.mark.unit
    def test_parse_normalizes_case_and_whitespace(self):
        assert parse_classification("  Independent_Contractor ") == WorkerClassification.INDEPENDENT_CONTRACTOR

    @pytest.mark.unit
    def test_parse_accepts_enum(self):
        assert parse_classification(WorkerClassification.CONSULTANT) is WorkerClassification.CONSULTANT

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["employee", "", None, 42])
    def test_parse_rejects_unknown(self, value):
        with pytest.raises(UnknownClassification) as exc_info:
            parse_classification(value)
        assert exc_info.value.code == "UNKNOWN_CLASSIFICATION"
        assert "freelancer" in exc_info.value.details["allowed"]


class TestControlTestFactors:
    """Tests for control-test fact handling"""

    @pytest.mark.unit
    def test_default_facts_are_unknown(self):
        factors = ControlTestFactors()
        assert factors.unknown == ControlTestFactors.names()
        assert not factors.is_complete

    @pytest.mark.unit
    def test_independent_profile_has_no_employee_like_facts(self):
        factors = ControlTestFactors.independent()
        assert factors.is_complete
        assert not any(factors.is_employee_like(name) for name in factors.names())

    @pytest.mark.unit
    def test_employee_like_profile(self):
        factors = ControlTestFactors.employee_like()
        assert all(factors.is_employee_like(name) for name in factors.names())
        # Inverted facts
        assert factors.has_other_clients is False
        assert factors.can_substitute is False

    @pytest.mark.unit
    def test_unknown_fact_is_not_read_as_false(self):
        factors = ControlTestFactors(supervised=None)
        assert factors.is_employee_like("supervised") is None

    @pytest.mark.unit
    def test_from_dict_ignores_unknown_keys_and_nulls(self):
        factors = ControlTestFactors.from_dict({"supervised": True, "colour": "blue", "fixed_hours": None})
        assert factors.supervised is True
        assert factors.fixed_hours is None

    @pytest.mark.unit
    def test_from_dict_non_boolean_values_are_unknown(self):
        """Strings and ints from stored rows never count as answered facts"""
        factors = ControlTestFactors.from_dict({
            "supervised": "yes",
            "paid_regular_salary": "true",
            "fixed_hours": 1,
            "has_other_clients": 0,
            "can_substitute": True,
        })

        for name in ("supervised", "paid_regular_salary", "fixed_hours", "has_other_clients"):
            assert name in factors.unknown
            assert factors.is_employee_like(name) is None
        assert factors.can_substitute is True

    @pytest.mark.unit
    def test_non_boolean_constructor_value_is_unknown(self, provider):
        factors = ControlTestFactors.independent().with_fact("supervised", "no")

        assert factors.supervised is None
        assert provider.score_relationship(factors).insufficient_data

    @pytest.mark.unit
    def test_from_dict_empty(self):
        assert ControlTestFactors.from_dict(None) == ControlTestFactors()

    @pytest.mark.unit
    def test_with_fact_returns_copy(self):
        base = ControlTestFactors.independent()
        changed = base.with_fact("supervised", True)
        assert base.supervised is False
        assert changed.supervised is True

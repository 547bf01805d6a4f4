"""
Tests for violation response normalization.

Each controller response shape must reduce to the same flat list of
Violations, with the first matching shape winning.
"""

import pytest

from appd_bridge.appd.normalize import (
    extract_raw_violations,
    is_health_rule_problem,
    normalize_violation_response,
)


@pytest.fixture
def raw_violation():
    return {
        "id": 100,
        "incidentStatus": "OPEN",
        "severity": "CRITICAL",
        "affectedEntityDefinition": {"name": "/checkout", "entityId": 7},
        "triggeredEntityDefinition": {"name": "Response time too high"},
        "description": "<b>AppDynamics</b> detected slow calls",
        "deepLinkUrl": "https://controller/#/incident=100",
    }


class TestShapes:
    def test_direct_array(self, raw_violation):
        assert [v.id for v in normalize_violation_response([raw_violation])] == ["100"]

    @pytest.mark.parametrize("field", ["healthRuleViolations", "violations", "data"])
    def test_wrapped_array(self, raw_violation, field):
        result = normalize_violation_response({field: [raw_violation]})
        assert [v.id for v in result] == ["100"]

    def test_named_field_wins_over_data(self, raw_violation):
        other = {**raw_violation, "id": 999}
        result = normalize_violation_response(
            {"healthRuleViolations": [raw_violation], "data": [other]}
        )
        assert [v.id for v in result] == ["100"]

    def test_problems_are_filtered_to_health_rules(self):
        body = {
            "problems": [
                {"id": 1, "type": "HEALTH_RULE_VIOLATION"},
                {"id": 2, "triggeredEntityType": "HEALTH_RULE"},
                {"id": 3, "name": "Business Health degraded"},
                {"id": 4, "type": "ERROR", "name": "NullPointerException"},
            ]
        }
        assert [v.id for v in normalize_violation_response(body)] == ["1", "2", "3"]

    def test_single_object(self, raw_violation):
        assert [v.id for v in normalize_violation_response(raw_violation)] == ["100"]

    @pytest.mark.parametrize("body", [None, {}, [], "unexpected", 42])
    def test_empty_or_unknown_is_empty(self, body):
        assert normalize_violation_response(body) == []

    def test_empty_wrapped_list_is_empty(self):
        assert extract_raw_violations({"healthRuleViolations": []}) == []

    def test_entries_without_id_are_dropped(self, raw_violation):
        result = normalize_violation_response([raw_violation, {"severity": "WARNING"}])
        assert [v.id for v in result] == ["100"]


class TestViolationFields:
    def test_fields_are_mapped(self, raw_violation):
        (violation,) = normalize_violation_response([raw_violation])

        assert violation.id == "100"
        assert violation.incident_status == "OPEN"
        assert violation.severity == "CRITICAL"
        assert violation.affected_entity_name == "/checkout"
        assert violation.affected_entity_id == "7"
        assert violation.policy_name == "Response time too high"
        assert violation.deep_link_url == "https://controller/#/incident=100"
        assert violation.raw is raw_violation

    def test_missing_definitions_are_tolerated(self):
        (violation,) = normalize_violation_response([{"id": "abc"}])

        assert violation.id == "abc"
        assert violation.incident_status == ""
        assert violation.affected_entity_name is None


def test_is_health_rule_problem_handles_missing_name():
    assert not is_health_rule_problem({"id": 1, "name": None})

"""
Normalization of controller violation responses.

The healthrule-violations and problems endpoints return violations in
several shapes depending on controller version:
- a bare JSON array
- an object wrapping the array under "healthRuleViolations"
- an object wrapping the array under "violations"
- an object wrapping the array under "data"
- an object with a generic "problems" array that must be filtered down to
  health rule entries
- a single violation object

Each shape has its own matcher. Matchers run in SHAPE_MATCHERS order and the
first one that returns a list wins. New shapes are added by appending a
matcher.
"""

import logging
from collections.abc import Callable
from typing import Any

from appd_bridge.types import Violation

logger = logging.getLogger(__name__)

RawViolations = list[dict[str, Any]]
ShapeMatcher = Callable[[Any], RawViolations | None]


def _match_array(raw: Any) -> RawViolations | None:
    if isinstance(raw, list):
        return raw
    return None


def _wrapped(field_name: str) -> ShapeMatcher:
    def matcher(raw: Any) -> RawViolations | None:
        if isinstance(raw, dict) and raw.get(field_name) is not None:
            value = raw[field_name]
            return value if isinstance(value, list) else [value]
        return None

    matcher.__name__ = f"_match_{field_name}"
    return matcher


def is_health_rule_problem(problem: dict[str, Any]) -> bool:
    """True if a generic problem entry is a health rule violation."""
    name = problem.get("name")
    return (
        problem.get("type") == "HEALTH_RULE_VIOLATION"
        or problem.get("triggeredEntityType") == "HEALTH_RULE"
        or (isinstance(name, str) and "health" in name.lower())
    )


def _match_problems(raw: Any) -> RawViolations | None:
    if isinstance(raw, dict) and isinstance(raw.get("problems"), list):
        return [
            p for p in raw["problems"] if isinstance(p, dict) and is_health_rule_problem(p)
        ]
    return None


def _match_single_object(raw: Any) -> RawViolations | None:
    if isinstance(raw, dict) and raw:
        return [raw]
    return None


SHAPE_MATCHERS: tuple[ShapeMatcher, ...] = (
    _match_array,
    _wrapped("healthRuleViolations"),
    _wrapped("violations"),
    _wrapped("data"),
    _match_problems,
    _match_single_object,
)


def extract_raw_violations(raw: Any) -> RawViolations:
    """
    Reduce any known response shape to a flat list of raw violation dicts.

    Args:
        raw: Decoded JSON body from a violations/problems endpoint

    Returns:
        List of raw violation objects (possibly empty)
    """
    for matcher in SHAPE_MATCHERS:
        matched = matcher(raw)
        if matched is not None:
            return [item for item in matched if isinstance(item, dict)]
    return []


def normalize_violation_response(raw: Any) -> list[Violation]:
    """
    Convert a violations/problems response body into Violations.

    Entries without an "id" cannot be tracked and are dropped.

    Args:
        raw: Decoded JSON body

    Returns:
        Violations in response order
    """
    violations = []
    for item in extract_raw_violations(raw):
        if item.get("id") is None:
            logger.warning("Dropping violation without id: %s", item)
            continue
        violations.append(Violation.from_raw(item))
    return violations

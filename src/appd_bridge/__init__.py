"""
appd-bridge: AppDynamics health rule violations to Jira tickets.

Exports:
    Settings: Environment-based configuration
    Violation: Upstream health rule violation
    TrackedViolation: Local record of a ticketed incident
    IncidentStatus: Known incident status values
"""

from appd_bridge.config import Settings
from appd_bridge.types import IncidentStatus, TrackedViolation, Violation

__all__ = ["Settings", "Violation", "TrackedViolation", "IncidentStatus"]

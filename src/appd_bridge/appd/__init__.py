"""
AppDynamics controller access.

Exports:
    ControllerClient: Authenticated async client for the controller REST API
    normalize_violation_response: Flatten any violation response shape
"""

from appd_bridge.appd.client import ControllerClient
from appd_bridge.appd.normalize import normalize_violation_response

__all__ = ["ControllerClient", "normalize_violation_response"]

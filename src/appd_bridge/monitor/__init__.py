"""
Monitor module for violation tracking and ticket reconciliation.

Exports:
    MonitorLoop: Daemon reconciling violations with Jira tickets
    StateStore: JSON file persistence for tracked violations
    TickSummary: Counters describing one reconciliation tick
"""

from appd_bridge.monitor.loop import MonitorLoop
from appd_bridge.monitor.state import StateStore
from appd_bridge.monitor.types import TickSummary

__all__ = ["MonitorLoop", "StateStore", "TickSummary"]

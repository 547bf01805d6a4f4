"""
Jira integration.

Exports:
    TicketGateway: Creates issues for violations and closes them
"""

from appd_bridge.jira.gateway import TicketGateway

__all__ = ["TicketGateway"]

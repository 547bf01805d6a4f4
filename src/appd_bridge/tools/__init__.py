"""
Agent tool surface.

Exports:
    TOOLS: Registered tool specs
    dispatch: Run a tool by name against a ControllerClient
"""

from appd_bridge.tools.handlers import TOOLS, ToolResult, dispatch

__all__ = ["TOOLS", "ToolResult", "dispatch"]

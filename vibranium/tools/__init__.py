"""Tool framework: registry plus the thread lookup and answer-gate tools."""

from vibranium.tools.registry import ToolRegistry

__all__ = ["ToolRegistry"]

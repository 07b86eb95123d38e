"""Tool catalog exposed to AI hosts."""

from .registry import ToolDefinition, ToolRegistry, ToolResult

__all__ = ["ToolDefinition", "ToolRegistry", "ToolResult"]

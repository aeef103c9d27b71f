"""Tool implementations."""

from .base import BaseTool, ExecutionResult, ToolRiskLevel
from .command_tool import CommandTool
from .file_tool import FileTool
from .git_tool import GitTool
from .registry import default_tools, get_tool_manifest_text

__all__ = [
    "BaseTool",
    "ExecutionResult",
    "ToolRiskLevel",
    "CommandTool",
    "FileTool",
    "GitTool",
    "default_tools",
    "get_tool_manifest_text",
]

"""
Parameter hints and validation package for Canvas Agent MCP tools.

The package is organized into focused modules:
- data_structures.py: Core data classes (ParameterInfo, ActionInfo, ToolInfo)
- definitions.py: Tool definitions and metadata
- validator.py: Parameter validation and help generation
"""

from .data_structures import ParameterInfo, ActionInfo, ToolInfo
from .validator import ParameterHints

# Global instance for use across the application
parameter_hints = ParameterHints()

def get_parameter_help(tool_name: str, action: str = ""):
    """Get parameter help for a tool and action."""
    return parameter_hints.get_parameter_suggestions(tool_name, action)

def validate_tool_parameters(tool_name: str, action: str, parameters: dict):
    """Validate tool parameters."""
    return parameter_hints.validate_parameters(tool_name, action, parameters)

def get_quick_help(tool_name: str):
    """Get quick help summary for a tool."""
    return parameter_hints.get_quick_help(tool_name)

__all__ = [
    "ParameterInfo",
    "ActionInfo",
    "ToolInfo",
    "ParameterHints",
    "parameter_hints",
    "get_parameter_help",
    "validate_tool_parameters",
    "get_quick_help"
]

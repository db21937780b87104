"""
Core data structures for parameter hints and tool definitions.

This module defines the data classes used to represent tool parameters,
actions, and complete tool information for the MCP system.
"""
from typing import Dict, Any, List, Optional
from dataclasses import dataclass

@dataclass
class ParameterInfo:
    """Information about a tool parameter."""
    name: str
    type: str
    required: bool
    description: str
    examples: List[str]
    allowed_values: Optional[List[str]] = None
    default_value: Any = None

@dataclass
class ActionInfo:
    """Information about a tool action."""
    name: str
    description: str
    parameters: List[ParameterInfo]
    examples: List[str]
    mutates_document: bool = False
    next_steps: List[str] = None

@dataclass
class ToolInfo:
    """Complete information about an MCP tool."""
    name: str
    description: str
    actions: Dict[str, ActionInfo]
    common_workflows: List[str] = None

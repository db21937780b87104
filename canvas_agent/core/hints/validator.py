"""
Parameter validation and help generation for Canvas Agent MCP tools.
"""
import logging
from typing import Dict, Any, List, Optional, Tuple

from .data_structures import ActionInfo, ToolInfo
from .definitions import get_tool_definitions

logger = logging.getLogger(__name__)

# Python types accepted for each declared parameter type
_TYPE_CHECKS = {
    "string": (str,),
    "integer": (int,),
    "boolean": (bool,),
    "list": (list, tuple),
    "object": (dict,),
}

class ParameterHints:
    """Provides parameter hints and validation for MCP tools."""

    def __init__(self):
        self.tools = get_tool_definitions()

    def get_tool_info(self, tool_name: str) -> Optional[ToolInfo]:
        """Get complete information about a tool."""
        return self.tools.get(tool_name)

    def get_action_info(self, tool_name: str, action: str) -> Optional[ActionInfo]:
        """Get information about a specific tool action."""
        tool = self.get_tool_info(tool_name)
        if tool:
            return tool.actions.get(action)
        return None

    def validate_parameters(self, tool_name: str, action: str, parameters: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate parameters for a tool action. None values count as absent.

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        action_info = self.get_action_info(tool_name, action)
        if not action_info:
            return False, [f"Unknown action '{action}' for tool '{tool_name}'"]

        present = {name: value for name, value in parameters.items() if value is not None}
        errors = []

        for param_info in action_info.parameters:
            if param_info.required and param_info.name not in present:
                errors.append(f"Missing required parameter: {param_info.name}")

        for param_name, param_value in present.items():
            param_info = next((p for p in action_info.parameters if p.name == param_name), None)
            if not param_info:
                continue

            expected = _TYPE_CHECKS.get(param_info.type)
            # bool is an int subclass; keep integer parameters honest
            is_bool_as_int = param_info.type == "integer" and isinstance(param_value, bool)
            if expected and (not isinstance(param_value, expected) or is_bool_as_int):
                errors.append(f"Parameter '{param_name}' must be of type {param_info.type}")
                continue

            if param_info.allowed_values and param_value not in param_info.allowed_values:
                errors.append(
                    f"Parameter '{param_name}' must be one of: {', '.join(param_info.allowed_values)}"
                )

        return len(errors) == 0, errors

    def get_parameter_suggestions(self, tool_name: str, action: str = "") -> Dict[str, Any]:
        """Get parameter suggestions and examples for a tool/action."""
        if action:
            action_info = self.get_action_info(tool_name, action)
            if action_info:
                return {
                    "description": action_info.description,
                    "parameters": [
                        {
                            "name": p.name,
                            "type": p.type,
                            "required": p.required,
                            "description": p.description,
                            "examples": p.examples,
                            "default": p.default_value
                        }
                        for p in action_info.parameters
                    ],
                    "examples": action_info.examples,
                    "mutates_document": action_info.mutates_document,
                    "next_steps": action_info.next_steps or []
                }
        else:
            tool_info = self.get_tool_info(tool_name)
            if tool_info:
                return {
                    "description": tool_info.description,
                    "actions": {
                        name: {
                            "description": action.description,
                            "examples": action.examples[:2]
                        }
                        for name, action in tool_info.actions.items()
                    },
                    "common_workflows": tool_info.common_workflows or []
                }

        return {}

    def get_quick_help(self, tool_name: str) -> str:
        """Get quick help text for a tool."""
        tool_info = self.get_tool_info(tool_name)
        if not tool_info:
            return f"Unknown tool: {tool_name}"

        help_text = [f"Tool: {tool_name}", f"Description: {tool_info.description}", ""]

        help_text.append("Available actions:")
        for action_name, action_info in tool_info.actions.items():
            if action_name:
                help_text.append(f"  - {action_name}: {action_info.description}")
            else:
                help_text.append(f"  - {action_info.description}")

        if tool_info.common_workflows:
            help_text.extend(["", "Common workflows:"])
            for workflow in tool_info.common_workflows:
                help_text.append(f"  * {workflow}")

        return "\n".join(help_text)

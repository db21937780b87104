"""
Support tools for Canvas Agent MCP server.
"""
import logging
from typing import Dict, Any
from fastmcp import FastMCP, Context

from canvas_agent.core.hints import get_parameter_help, parameter_hints

logger = logging.getLogger(__name__)

def register_support_tools(mcp: FastMCP):
    """Register all support tools."""

    @mcp.tool()
    async def get_help(ctx: Context, tool_name: str = "", action: str = "") -> Dict[str, Any]:
        """
        Get help, examples, and parameter information for MCP tools.

        Args:
            ctx: The MCP context
            tool_name: Name of the tool to get help for (empty for list of all tools)
            action: Specific action to get help for (empty for all actions)

        Returns:
            Help information, examples, and parameter details
        """
        logger.debug(f"Getting help for tool: {tool_name}, action: {action}")

        if not tool_name:
            from . import TOOL_CATEGORIES
            return {
                "available_tools": sorted(parameter_hints.tools),
                "description": "Canvas Agent MCP Server - batched canvas commands and model-driven design threads",
                "usage": "Use get_help(tool_name='tool_name') to get help for a specific tool",
                "examples": [
                    "get_help(tool_name='execute_commands')",
                    "get_help(tool_name='agent_session', action='ingest')"
                ],
                "tool_categories": {name: category["tools"] for name, category in TOOL_CATEGORIES.items()}
            }

        help_info = get_parameter_help(tool_name, action)
        if not help_info:
            return {
                "error": f"No help for tool '{tool_name}'" + (f" action '{action}'" if action else ""),
                "available_tools": sorted(parameter_hints.tools)
            }

        help_info["tool"] = tool_name
        if action:
            help_info["action"] = action
        return help_info

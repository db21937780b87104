"""
Tool registry for Canvas Agent MCP server.

This module provides the central registration system for all MCP tools,
organized into logical categories.
"""
import logging
from fastmcp import FastMCP

from .design_tools import register_design_tools
from .agent_tools import register_agent_tools
from .support_tools import register_support_tools

logger = logging.getLogger(__name__)

def register_all_tools(mcp: FastMCP) -> None:
    """
    Register all MCP tools with the FastMCP server.

    This function orchestrates the registration of all tool categories:
    - Design tools (execute_commands, canvas_snapshot)
    - Agent tools (agent_session)
    - Support tools (get_help)

    Args:
        mcp: The FastMCP server instance
    """
    logger.info("Starting tool registration for Canvas Agent MCP server")

    try:
        logger.debug("Registering design tools...")
        register_design_tools(mcp)

        logger.debug("Registering agent tools...")
        register_agent_tools(mcp)

        logger.debug("Registering support tools...")
        register_support_tools(mcp)

        logger.info("Successfully registered all MCP tools")

    except Exception as e:
        logger.error(f"Failed to register tools: {e}")
        raise

# Tool categories for reference
TOOL_CATEGORIES = {
    "design": {
        "tools": ["execute_commands", "canvas_snapshot"],
        "description": "Tools for running canvas command batches and inspecting the document"
    },
    "agent": {
        "tools": ["agent_session"],
        "description": "Tools for driving model-backed agent threads"
    },
    "support": {
        "tools": ["get_help"],
        "description": "Tools for getting help and parameter information"
    }
}

def get_tool_info() -> dict:
    """
    Get information about all available tools.

    Returns:
        Dictionary containing tool categories and descriptions
    """
    return {
        "categories": TOOL_CATEGORIES,
        "total_tools": sum(len(cat["tools"]) for cat in TOOL_CATEGORIES.values()),
        "architecture": "Modular tool organization with separate registration functions"
    }

"""
Agent session tools for Canvas Agent MCP server.

This module exposes agent threads: model-backed conversations that edit the
canvas through the same command batches as execute_commands.
"""
import logging
from typing import Any, Dict, Optional
from fastmcp import FastMCP, Context

from canvas_agent.core.error_handler import enhance_error, enhance_exception
from canvas_agent.core.hints import get_parameter_help, validate_tool_parameters
from canvas_agent.core.workspace import get_workspace

logger = logging.getLogger(__name__)

SESSION_ACTIONS = ("create", "ingest", "history", "close", "list")

def register_agent_tools(mcp: FastMCP):
    """Register all agent session tools."""

    @mcp.tool()
    async def agent_session(ctx: Context, action: str = "list", thread_id: Optional[int] = None,
                            message: Optional[str] = None) -> Dict[str, Any]:
        """
        Manage agent threads that drive the canvas through a language model.

        Args:
            ctx: The MCP context
            action: One of "create", "ingest", "history", "close", "list"
            thread_id: Thread to act on (ingest, history, close)
            message: User text to send (ingest)

        Returns:
            Action result, or error information
        """
        logger.debug(f"Agent session action: {action}, thread_id: {thread_id}")

        if action not in SESSION_ACTIONS:
            enhanced_error = enhance_error("parameter", tool_name="agent_session", missing_param="action")
            error_dict = enhanced_error.to_dict()
            error_dict["help"] = get_parameter_help("agent_session")
            return error_dict

        is_valid, validation_errors = validate_tool_parameters(
            "agent_session", action, {"thread_id": thread_id, "message": message}
        )
        if not is_valid:
            missing = "message" if any("message" in error for error in validation_errors) else "thread_id"
            enhanced_error = enhance_error("parameter", tool_name="agent_session",
                                           action=action, missing_param=missing)
            error_dict = enhanced_error.to_dict()
            error_dict["error_details"] = validation_errors
            return error_dict

        workspace = get_workspace()
        try:
            if action == "create":
                thread = workspace.create_thread()
                return {"thread_id": thread.id, "mode": workspace.mode.value}

            elif action == "list":
                return {"threads": workspace.registry.list_threads()}

            elif action == "close":
                return {"thread_id": thread_id, "closed": workspace.registry.close(thread_id)}

            thread = workspace.registry.get(thread_id)

            if action == "history":
                return {"thread_id": thread.id, "turns": thread.history()}

            # ingest
            outputs = await thread.ingest(message)
            return {
                "thread_id": thread.id,
                "outputs": [output.content for output in outputs],
                "turns": len(thread.conversation)
            }

        except Exception as e:
            logger.error(f"Error in agent_session({action}): {e}")
            return enhance_exception(e, tool_name="agent_session", thread_id=thread_id).to_dict()

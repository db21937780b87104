"""
Canvas command tools for Canvas Agent MCP server.

This module contains the tools that run command batches against the
document and summarize its current state.
"""
import logging
from typing import Any, Dict, List, Optional
from fastmcp import FastMCP, Context

from canvas_agent.core.commands import CommandDecodeError
from canvas_agent.core.document import DocumentError
from canvas_agent.core.error_handler import enhance_error, enhance_exception
from canvas_agent.core.hints import get_parameter_help, validate_tool_parameters
from canvas_agent.core.validation import validate_batch
from canvas_agent.core.workspace import get_workspace

from .tool_utilities import build_batch, summarize_batch_result

logger = logging.getLogger(__name__)

def register_design_tools(mcp: FastMCP):
    """Register all canvas command tools."""

    @mcp.tool()
    async def execute_commands(ctx: Context, commands: List[Dict[str, Any]], batch_id: str = "batch") -> Dict[str, Any]:
        """
        Execute an ordered batch of canvas commands.

        Commands run one at a time in the given order. A failing command is
        reported as a failure result and does not stop the ones after it.

        Args:
            ctx: The MCP context
            commands: Command objects (e.g. {"type": "create-node", "nodeType": "frame"}),
                or {"id": ..., "cmd": {...}} entries to choose ids explicitly
            batch_id: Id echoed on the batch result

        Returns:
            Batch result with per-command results, aggregate status and a summary
        """
        logger.debug(f"Executing {len(commands or [])} commands as batch {batch_id}")

        is_valid, validation_errors = validate_tool_parameters(
            "execute_commands", "", {"commands": commands, "batch_id": batch_id}
        )
        if not is_valid or not commands:
            enhanced_error = enhance_error("parameter",
                                           tool_name="execute_commands",
                                           missing_param="commands")
            error_dict = enhanced_error.to_dict()
            error_dict["error_details"] = validation_errors or ["Parameter 'commands' cannot be empty"]
            error_dict["help"] = get_parameter_help("execute_commands", "")
            return error_dict

        try:
            batch = build_batch(commands, batch_id)
        except CommandDecodeError as e:
            return enhance_error("validation", tool_name="execute_commands", validation_error=str(e)).to_dict()

        is_valid, validation_error = validate_batch(batch)
        if not is_valid:
            return enhance_error("validation", tool_name="execute_commands",
                                 validation_error=validation_error).to_dict()

        try:
            result = await get_workspace().execute(batch)
            return summarize_batch_result(result)
        except Exception as e:
            logger.error(f"Error executing batch {batch_id}: {e}")
            return enhance_exception(e, tool_name="execute_commands").to_dict()

    @mcp.tool()
    async def canvas_snapshot(ctx: Context, node_id: Optional[str] = None, include_visual: bool = False) -> Dict[str, Any]:
        """
        Summarize the current page: its node tree and the user's selection.

        Args:
            ctx: The MCP context
            node_id: Node to export when include_visual is set (default: first selected node)
            include_visual: Attach a base64 PNG snapshot

        Returns:
            Page summary, node tree, selection and optional visual
        """
        logger.debug(f"Snapshot requested (node_id={node_id}, include_visual={include_visual})")

        try:
            return get_workspace().snapshot(node_id=node_id, include_visual=include_visual)
        except DocumentError as e:
            return enhance_error("validation", tool_name="canvas_snapshot", validation_error=str(e)).to_dict()
        except Exception as e:
            return enhance_exception(e, tool_name="canvas_snapshot").to_dict()

"""
Shared utilities for Canvas Agent MCP tools.
"""
import logging
from typing import Any, Dict, List

from canvas_agent.core.commands import ExecuteCommand, ExecuteCommandBatch, parse_command
from canvas_agent.core.results import ExecuteCommandBatchResult

logger = logging.getLogger(__name__)


def build_batch(commands: List[Any], batch_id: str = "batch") -> ExecuteCommandBatch:
    """
    Build a batch from tool input.

    Entries shaped like {"id": ..., "cmd": {...}} keep their id; bare command
    objects are numbered by position, starting at "1".

    Raises:
        CommandDecodeError: If an {"id", "cmd"} entry has an unusable id
    """
    cmds = []
    for index, entry in enumerate(commands, start=1):
        if isinstance(entry, dict) and "cmd" in entry:
            cmds.append(ExecuteCommand.from_dict(entry))
        else:
            cmds.append(ExecuteCommand(id=str(index), cmd=parse_command(entry)))
    return ExecuteCommandBatch(id=batch_id, cmds=tuple(cmds))


def summarize_batch_result(result: ExecuteCommandBatchResult) -> Dict[str, Any]:
    """Batch result as a dict plus a short summary for the client."""
    data = result.to_dict()
    total = len(result.cmds)
    data["summary"] = {
        "total_commands": total,
        "succeeded": total - result.failed_count,
        "failed": result.failed_count
    }
    return data

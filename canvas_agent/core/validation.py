"""
Command batch validation for Canvas Agent.

Batches are checked before anything runs: a batch that fails here is a
protocol problem, not a per-command failure.
"""
import logging
from typing import Optional, Tuple

from canvas_agent.config import MAX_BATCH_SIZE
from .commands import ExecuteCommandBatch, InvalidCommand

logger = logging.getLogger(__name__)


def validate_batch(batch: ExecuteCommandBatch, max_size: int = MAX_BATCH_SIZE) -> Tuple[bool, Optional[str]]:
    """
    Validate a command batch before execution.

    Args:
        batch: The batch to validate
        max_size: Largest number of commands allowed

    Returns:
        Tuple of (is_valid, error_message)
        where error_message is None if valid, or the reason if not
    """
    if not isinstance(batch, ExecuteCommandBatch):
        return False, "Expected a command batch"

    if len(batch) > max_size:
        return False, f"Batch too large ({len(batch)} commands, max {max_size})"

    for execute_cmd in batch.cmds:
        if isinstance(execute_cmd.id, str) and not execute_cmd.id.strip():
            return False, "Command ids cannot be empty"

    duplicates = batch.duplicate_ids()
    if duplicates:
        return False, f"Duplicate command ids in batch: {', '.join(str(d) for d in duplicates)}"

    invalid = sum(1 for execute_cmd in batch.cmds if isinstance(execute_cmd.cmd, InvalidCommand))
    if invalid:
        # Undecodable commands still run (and fail) so the caller sees why
        logger.info(f"Batch {batch.id} contains {invalid} undecodable commands")

    return True, None


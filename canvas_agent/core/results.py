"""
Execution result classes for canvas command batches.
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .commands import (
    Command, CommandDecodeError, CommandId, ExecuteCommand, parse_command
)


class CommandStatus(Enum):
    """Outcome of a single command."""
    SUCCESS = "success"
    FAILURE = "failure"


class BatchStatus(Enum):
    """Aggregate outcome of a batch."""
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL_FAILURES = "partial_failures"


# Optional payload keys, in the order they are written to the wire
PAYLOAD_KEYS = ("visual", "node", "info", "nodes")


@dataclass
class ExecuteCommandResult:
    """
    Result of one command.

    Echoes the originating command and its id. The payload depends on the
    command kind: ``visual`` for snapshots, ``node`` for created or edited
    nodes, ``info`` for node reads and ``nodes`` for the selection.
    """
    id: CommandId
    cmd: Command
    status: CommandStatus
    visual: Optional[str] = None
    node: Optional[Dict[str, Any]] = None
    info: Optional[Dict[str, Any]] = None
    nodes: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == CommandStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "type": "execute_command_result",
            "id": self.id,
            "cmd": self.cmd.to_dict(),
            "status": self.status.value
        }
        for key in PAYLOAD_KEYS:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.error:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: Any) -> "ExecuteCommandResult":
        if not isinstance(data, dict):
            raise CommandDecodeError("Command result must be an object")
        try:
            status = CommandStatus(data.get("status"))
        except ValueError:
            raise CommandDecodeError(f"Invalid command status {data.get('status')!r}")
        return cls(
            id=data.get("id"),
            cmd=parse_command(data.get("cmd")),
            status=status,
            visual=data.get("visual"),
            node=data.get("node"),
            info=data.get("info"),
            nodes=data.get("nodes"),
            error=data.get("error")
        )


@dataclass
class ExecuteCommandBatchResult:
    """Ordered per-command results plus the aggregate status of the batch."""
    id: CommandId
    cmds: List[ExecuteCommandResult] = field(default_factory=list)
    status: BatchStatus = BatchStatus.SUCCESS

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.cmds if not result.succeeded)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "execute_commands_result",
            "id": self.id,
            "cmds": [result.to_dict() for result in self.cmds],
            "status": self.status.value
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ExecuteCommandBatchResult":
        if not isinstance(data, dict):
            raise CommandDecodeError("Batch result must be an object")
        cmds = data.get("cmds")
        if not isinstance(cmds, list):
            raise CommandDecodeError("Batch result requires a 'cmds' list")
        try:
            status = BatchStatus(data.get("status"))
        except ValueError:
            raise CommandDecodeError(f"Invalid batch status {data.get('status')!r}")
        return cls(
            id=data.get("id"),
            cmds=[ExecuteCommandResult.from_dict(entry) for entry in cmds],
            status=status
        )


def aggregate_status(results: Iterable[ExecuteCommandResult]) -> BatchStatus:
    """
    Aggregate per-command statuses.

    Returns:
        FAILURE if every command failed, PARTIAL_FAILURES if some did,
        SUCCESS otherwise (including the empty batch)
    """
    has_failures = False
    all_failed = True
    count = 0
    for result in results:
        count += 1
        if result.succeeded:
            all_failed = False
        else:
            has_failures = True

    if count == 0 or not has_failures:
        return BatchStatus.SUCCESS
    return BatchStatus.FAILURE if all_failed else BatchStatus.PARTIAL_FAILURES


def create_success_result(execute_cmd: ExecuteCommand, **payload) -> ExecuteCommandResult:
    """
    Create a successful command result.

    Args:
        execute_cmd: The command being answered
        **payload: Optional visual/node/info/nodes payload

    Returns:
        ExecuteCommandResult instance
    """
    return ExecuteCommandResult(
        id=execute_cmd.id,
        cmd=execute_cmd.cmd,
        status=CommandStatus.SUCCESS,
        **payload
    )


def create_failure_result(execute_cmd: ExecuteCommand, error: str) -> ExecuteCommandResult:
    """
    Create a failed command result.

    Args:
        execute_cmd: The command being answered
        error: Human-readable reason

    Returns:
        ExecuteCommandResult instance
    """
    return ExecuteCommandResult(
        id=execute_cmd.id,
        cmd=execute_cmd.cmd,
        status=CommandStatus.FAILURE,
        error=error
    )


def create_batch_result(batch_id: CommandId, results: List[ExecuteCommandResult]) -> ExecuteCommandBatchResult:
    """Wrap ordered results with their aggregate status."""
    return ExecuteCommandBatchResult(id=batch_id, cmds=list(results), status=aggregate_status(results))

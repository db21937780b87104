"""
Command dispatcher for the document context.

This module provides the CommandExecutor interface shared by every way of
running command batches, and the CommandDispatcher that runs them directly
against a document store.
"""
import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Type

from .commands import (
    COMMAND_CLASSES, Command, CreateNode, EditNode, ExecuteCommand,
    ExecuteCommandBatch, GetCurrentSelectedNodes, GetLayerVisual, GetNodeInfo,
    InvalidCommand, MoveLayer, RemoveNode
)
from .document import DocumentError, DocumentStore, Node
from .results import (
    ExecuteCommandBatchResult, ExecuteCommandResult, create_batch_result,
    create_failure_result, create_success_result
)

logger = logging.getLogger(__name__)


class CommandExecutor(ABC):
    """Anything that can run a command batch and report per-command results."""

    @abstractmethod
    async def execute_commands(self, batch: ExecuteCommandBatch) -> ExecuteCommandBatchResult:
        pass

    async def execute_command(self, execute_cmd: ExecuteCommand) -> ExecuteCommandResult:
        """Run a single command as a one-element batch."""
        batch = ExecuteCommandBatch(id=f"single-{execute_cmd.id}", cmds=(execute_cmd,))
        result = await self.execute_commands(batch)
        return result.cmds[0]


def _encode_visual(png: bytes) -> str:
    return base64.b64encode(png).decode("ascii")


def _node_payload(node: Node) -> Dict[str, Any]:
    return {"node": node.summary()}


class CommandDispatcher(CommandExecutor):
    """
    Executes command batches against a document store.

    Commands run strictly in order, one at a time. A failing command becomes
    a failure result and never stops the commands after it.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._handlers: Dict[Type[Command], Callable[[Any], Dict[str, Any]]] = {
            CreateNode: self._create_node,
            EditNode: self._edit_node,
            GetNodeInfo: self._get_node_info,
            RemoveNode: self._remove_node,
            GetCurrentSelectedNodes: self._get_current_selected_nodes,
            GetLayerVisual: self._get_layer_visual,
            MoveLayer: self._move_layer,
            InvalidCommand: self._invalid_command,
        }

    async def execute_commands(self, batch: ExecuteCommandBatch) -> ExecuteCommandBatchResult:
        logger.debug(f"Executing batch {batch.id} with {len(batch)} commands")
        results = [self._execute(execute_cmd) for execute_cmd in batch.cmds]
        batch_result = create_batch_result(batch.id, results)
        logger.info(f"Batch {batch.id}: {batch_result.status.value} "
                    f"({batch_result.failed_count}/{len(results)} failed)")
        return batch_result

    def _execute(self, execute_cmd: ExecuteCommand) -> ExecuteCommandResult:
        cmd = execute_cmd.cmd
        handler = self._handlers.get(type(cmd))
        if handler is None:
            return create_failure_result(execute_cmd, f"No handler for command type {cmd.TYPE!r}")

        try:
            payload = handler(cmd)
        except DocumentError as e:
            logger.debug(f"Command {execute_cmd.id} ({cmd.TYPE}) failed: {e}")
            return create_failure_result(execute_cmd, str(e))
        except Exception as e:
            logger.error(f"Unexpected error executing command {execute_cmd.id} ({cmd.TYPE}): {e}")
            return create_failure_result(execute_cmd, f"Unexpected error: {e}")

        return create_success_result(execute_cmd, **payload)

    # ----------------------------------------------------------------
    # Handlers
    # ----------------------------------------------------------------

    def _create_node(self, cmd: CreateNode) -> Dict[str, Any]:
        node = self.store.create(
            cmd.node_type, name=cmd.name, parent_id=cmd.parent_id,
            **cmd.property_groups()
        )
        return _node_payload(node)

    def _edit_node(self, cmd: EditNode) -> Dict[str, Any]:
        node = self.store.edit(cmd.node_id, **cmd.property_groups())
        return _node_payload(node)

    def _get_node_info(self, cmd: GetNodeInfo) -> Dict[str, Any]:
        return {"info": self.store.read(cmd.node_id, cmd.fields_to_read())}

    def _remove_node(self, cmd: RemoveNode) -> Dict[str, Any]:
        self.store.remove(cmd.node_id)
        return {}

    def _get_current_selected_nodes(self, cmd: GetCurrentSelectedNodes) -> Dict[str, Any]:
        return {"nodes": [node.summary() for node in self.store.current_selection()]}

    def _get_layer_visual(self, cmd: GetLayerVisual) -> Dict[str, Any]:
        return {"visual": _encode_visual(self.store.export_visual(cmd.layer_id))}

    def _move_layer(self, cmd: MoveLayer) -> Dict[str, Any]:
        node = self.store.move(cmd.layer_id, cmd.x, cmd.y)
        return _node_payload(node)

    def _invalid_command(self, cmd: InvalidCommand) -> Dict[str, Any]:
        raise DocumentError(f"Invalid command: {cmd.reason}")


def _check_handlers_exhaustive():
    # Adding a command class without a handler must fail loudly at import
    handled = set(CommandDispatcher(store=None)._handlers)
    missing = [cls.__name__ for cls in COMMAND_CLASSES if cls not in handled]
    if missing:
        raise TypeError(f"CommandDispatcher has no handler for: {', '.join(missing)}")


_check_handlers_exhaustive()

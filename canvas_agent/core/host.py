"""
Message handler for the privileged document context.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Set

from .commands import ExecuteCommandBatch
from .communication import EXECUTE_COMMANDS, MessageChannel, MessageProtocol
from .dispatcher import CommandDispatcher
from .results import BatchStatus, ExecuteCommandBatchResult

logger = logging.getLogger(__name__)


class PluginHost:
    """
    Runs batches received over a channel and posts their results back.

    Only ``execute_commands`` messages are acted on; anything else is
    dropped. A batch that cannot be decoded or executed still gets an
    answer: a failure result with no per-command entries.
    """

    def __init__(self, dispatcher: CommandDispatcher, channel: MessageChannel):
        self.dispatcher = dispatcher
        self.channel = channel
        self._tasks: Set[asyncio.Task] = set()
        channel.subscribe(self.on_message)

    def on_message(self, message: Dict[str, Any]):
        if MessageProtocol.message_type(message) != EXECUTE_COMMANDS:
            logger.debug(f"Host ignoring message of type {message.get('type')!r}")
            return
        task = asyncio.get_running_loop().create_task(self.handle_execute_commands(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_execute_commands(self, message: Dict[str, Any]) -> ExecuteCommandBatchResult:
        request_id = message.get("id")
        try:
            batch = ExecuteCommandBatch.from_dict(message)
            result = await self.dispatcher.execute_commands(batch)
        except Exception as e:
            logger.error(f"Could not execute batch {request_id!r}: {e}")
            result = ExecuteCommandBatchResult(id=request_id, cmds=[], status=BatchStatus.FAILURE)

        self.channel.post(MessageProtocol.create_result_message(result))
        return result

    async def drain(self, timeout: Optional[float] = None):
        """Wait for batches that are still running."""
        if self._tasks:
            await asyncio.wait(set(self._tasks), timeout=timeout)

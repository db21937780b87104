"""
Cross-context bridge for running command batches in the document context.

The bridge turns the one-way message channel into request/response calls:
each outgoing batch carries a fresh correlation id, and the matching result
message resolves the waiting caller. Requests that get no answer within the
timeout fail with BridgeTimeoutError.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from canvas_agent.config import BRIDGE_TIMEOUT_MS
from .commands import CommandDecodeError, CommandId, ExecuteCommandBatch
from .communication import (
    EXECUTE_COMMANDS_RESULT, CommunicationError, MessageChannel, MessageProtocol
)
from .dispatcher import CommandExecutor
from .results import ExecuteCommandBatchResult

logger = logging.getLogger(__name__)


class BridgeTimeoutError(CommunicationError):
    """Raised when the document context does not answer in time."""
    pass


class BridgeClosedError(CommunicationError):
    """Raised for requests still in flight when the bridge is closed."""
    pass


@dataclass
class PendingRequest:
    """A request waiting for its result message."""
    future: asyncio.Future
    timer: asyncio.TimerHandle
    batch_id: CommandId


class CrossContextBridge(CommandExecutor):
    """
    CommandExecutor that forwards batches over a message channel.

    All pending-request bookkeeping happens on the event loop running the
    request, so a response and a timeout for the same id can never
    both settle it.
    """

    def __init__(self, channel: MessageChannel, timeout_ms: int = BRIDGE_TIMEOUT_MS):
        self.channel = channel
        self.timeout_ms = timeout_ms
        self._next_id = 0
        self._pending: Dict[int, PendingRequest] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closed = False
        channel.subscribe(self.receive)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def execute_commands(self, batch: ExecuteCommandBatch) -> ExecuteCommandBatchResult:
        if self._closed:
            raise BridgeClosedError("Bridge is closed")

        loop = asyncio.get_running_loop()
        self._loop = loop

        request_id = self._next_id
        self._next_id += 1

        future = loop.create_future()
        timer = loop.call_later(self.timeout_ms / 1000, self._expire, request_id)
        self._pending[request_id] = PendingRequest(future=future, timer=timer, batch_id=batch.id)

        logger.debug(f"Posting batch {batch.id} as request {request_id} ({len(batch)} commands)")
        try:
            self.channel.post(MessageProtocol.create_execute_commands_message(batch.with_id(request_id)))
        except CommunicationError:
            self._discard(request_id)
            raise

        try:
            result = await future
        finally:
            # A cancelled caller must not leave its entry behind
            self._discard(request_id)
        result.id = batch.id
        return result

    def receive(self, message: Dict[str, Any]):
        """Channel handler for inbound messages. Must run on the bridge's loop."""
        if MessageProtocol.message_type(message) != EXECUTE_COMMANDS_RESULT:
            logger.debug(f"Ignoring message of type {message.get('type')!r}")
            return

        request_id = message.get("id")
        pending = self._pending.pop(request_id, None) if isinstance(request_id, int) else None
        if pending is None:
            logger.debug(f"Ignoring result for unknown or settled request {request_id!r}")
            return
        pending.timer.cancel()

        try:
            result = ExecuteCommandBatchResult.from_dict(message)
        except CommandDecodeError as e:
            logger.warning(f"Malformed result for request {request_id}: {e}")
            if not pending.future.done():
                pending.future.set_exception(CommunicationError(f"Malformed batch result: {e}"))
            return

        if not pending.future.done():
            pending.future.set_result(result)

    def post_from_thread(self, message: Dict[str, Any]):
        """Deliver an inbound message from a thread other than the bridge's loop."""
        if self._loop is None:
            raise CommunicationError("Bridge has not been started on an event loop")
        self._loop.call_soon_threadsafe(self.receive, message)

    def close(self):
        """Reject every request still in flight."""
        self._closed = True
        self.channel.unsubscribe(self.receive)
        pending, self._pending = self._pending, {}
        for request_id, request in pending.items():
            request.timer.cancel()
            if not request.future.done():
                request.future.set_exception(BridgeClosedError(f"Bridge closed before request {request_id} completed"))
        if pending:
            logger.info(f"Bridge closed with {len(pending)} requests in flight")

    def _expire(self, request_id: int):
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return
        logger.warning(f"Request {request_id} (batch {pending.batch_id}) timed out after {self.timeout_ms}ms")
        if not pending.future.done():
            pending.future.set_exception(
                BridgeTimeoutError(f"No result for batch {pending.batch_id} within {self.timeout_ms}ms")
            )

    def _discard(self, request_id: int):
        pending = self._pending.pop(request_id, None)
        if pending is not None:
            pending.timer.cancel()

"""
Message channel between the agent context and the privileged document context.

The two contexts share nothing; they exchange JSON-shaped messages over a
one-way channel in each direction. This module holds the message codec and
the channel implementations used to carry it.
"""
import json
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .commands import ExecuteCommandBatch
from .results import ExecuteCommandBatchResult

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Dict[str, Any]], None]

EXECUTE_COMMANDS = "execute_commands"
EXECUTE_COMMANDS_RESULT = "execute_commands_result"
MESSAGE_TYPES = (EXECUTE_COMMANDS, EXECUTE_COMMANDS_RESULT)


class CommunicationError(Exception):
    """Base exception for communication errors."""
    pass


class MessageProtocol:
    """Handles the message-level protocol between the two contexts."""

    @staticmethod
    def create_execute_commands_message(batch: ExecuteCommandBatch) -> Dict[str, Any]:
        """Create a request message carrying a command batch."""
        return batch.to_dict()

    @staticmethod
    def create_result_message(result: ExecuteCommandBatchResult) -> Dict[str, Any]:
        """Create a response message carrying a batch result."""
        return result.to_dict()

    @staticmethod
    def serialize_message(message: Dict[str, Any]) -> bytes:
        """Serialize a message to newline-terminated UTF-8 JSON."""
        try:
            message_str = json.dumps(message) + "\n"
            return message_str.encode('utf-8')
        except (TypeError, ValueError) as e:
            raise CommunicationError(f"Failed to serialize message: {e}")

    @staticmethod
    def parse_message(data: Union[bytes, str]) -> Dict[str, Any]:
        """Parse one serialized message."""
        try:
            if isinstance(data, bytes):
                data = data.decode('utf-8')
            message = json.loads(data.strip())
        except json.JSONDecodeError as e:
            logger.debug(f"Raw message: {data!r}")
            raise CommunicationError(f"Invalid message JSON: {e}")
        except UnicodeDecodeError as e:
            raise CommunicationError(f"Invalid message encoding: {e}")

        if not isinstance(message, dict):
            raise CommunicationError("Message must be a JSON object")
        return message

    @staticmethod
    def message_type(message: Any) -> Optional[str]:
        """
        Classify a message.

        Returns:
            One of MESSAGE_TYPES, or None when the message has an unknown shape
        """
        if not isinstance(message, dict):
            return None
        message_type = message.get("type")
        if message_type not in MESSAGE_TYPES:
            return None
        if "id" not in message or not isinstance(message.get("cmds"), list):
            return None
        return message_type


class MessageChannel(ABC):
    """One endpoint of a bidirectional message channel."""

    def __init__(self):
        self._handlers: List[MessageHandler] = []

    def subscribe(self, handler: MessageHandler):
        """Register a handler called for every inbound message."""
        self._handlers.append(handler)

    def unsubscribe(self, handler: MessageHandler):
        if handler in self._handlers:
            self._handlers.remove(handler)

    @abstractmethod
    def post(self, message: Dict[str, Any]):
        """Send a message to the other endpoint. Delivery is asynchronous."""
        pass

    def _deliver(self, message: Dict[str, Any]):
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception as e:
                logger.exception(f"Message handler {handler!r} failed: {e}")


class LoopbackChannel(MessageChannel):
    """
    In-process channel endpoint.

    Messages go through a JSON round trip so both sides only ever see wire
    data, and are delivered on a later event-loop iteration.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        super().__init__()
        self._loop = loop
        self._peer: Optional["LoopbackChannel"] = None

    @classmethod
    def pair(cls, loop: Optional[asyncio.AbstractEventLoop] = None) -> Tuple["LoopbackChannel", "LoopbackChannel"]:
        """Create two connected endpoints."""
        left, right = cls(loop), cls(loop)
        left._peer, right._peer = right, left
        return left, right

    def post(self, message: Dict[str, Any]):
        if self._peer is None:
            raise CommunicationError("Loopback endpoint is not connected")
        wire = MessageProtocol.serialize_message(message)
        loop = self._loop or asyncio.get_running_loop()
        loop.call_soon(self._peer._deliver, MessageProtocol.parse_message(wire))


class StreamChannel(MessageChannel):
    """Newline-delimited JSON over a pair of asyncio streams."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        super().__init__()
        self._reader = reader
        self._writer = writer
        self._reader_task: Optional[asyncio.Task] = None

    def start(self):
        """Start the background task that reads inbound messages."""
        if self._reader_task is None:
            self._reader_task = asyncio.get_running_loop().create_task(self._read_loop())

    def post(self, message: Dict[str, Any]):
        self._writer.write(MessageProtocol.serialize_message(message))

    async def flush(self):
        await self._writer.drain()

    async def close(self):
        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        self._writer.close()

    async def _read_loop(self):
        while True:
            line = await self._reader.readline()
            if not line:
                logger.info("Stream channel reached end of input")
                break
            if not line.strip():
                continue
            try:
                message = MessageProtocol.parse_message(line)
            except CommunicationError as e:
                logger.warning(f"Dropping malformed line: {e}")
                continue
            self._deliver(message)

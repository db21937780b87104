"""
Agent thread: the model-driven loop that turns conversation into canvas edits.

A thread owns one conversation. Each user turn is sent to the model; the
reply is checked against the turn protocol, its tool invocations are run
through a command executor, and their results go back to the model until it
answers without asking for more work.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from canvas_agent.config import (
    DESIGN_TOOL_NAME, MAX_BATCH_SIZE, MAX_TOOL_ROUNDS, AgentConfig
)
from .conversation import (
    AssistantTurn, Conversation, ToolResult, ToolUse, UserOutput, UserTurn
)
from .dispatcher import CommandExecutor
from .model_client import ModelClient
from .validation import validate_batch

logger = logging.getLogger(__name__)

OutputCallback = Callable[[List[UserOutput]], None]


class AgentError(Exception):
    """Base exception for agent thread failures."""
    pass


class ProtocolViolationError(AgentError):
    """Raised when a model reply breaks the assistant turn protocol."""
    pass


class ToolRoundLimitExceeded(AgentError):
    """Raised when one ingest needs more tool rounds than allowed."""
    pass


class AgentThread:
    """
    One conversation between a user and the model.

    ``ingest`` either completes, leaving the conversation ending in an
    assistant turn, or raises and leaves the conversation exactly as it was
    before the call. Canvas changes made by commands that already ran are
    not undone.
    """

    def __init__(self, thread_id: int, model_client: ModelClient, executor: CommandExecutor,
                 on_outputs: Optional[OutputCallback] = None,
                 max_tool_rounds: int = MAX_TOOL_ROUNDS,
                 max_batch_size: int = MAX_BATCH_SIZE):
        self.id = thread_id
        self.model_client = model_client
        self.executor = executor
        self.on_outputs = on_outputs
        self.max_tool_rounds = max_tool_rounds
        self.max_batch_size = max_batch_size
        self.conversation = Conversation()
        self._rounds = 0
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def ingest(self, user_turn: Union[UserTurn, str]) -> List[UserOutput]:
        """
        Process one user turn to completion.

        Args:
            user_turn: The turn to add, or plain user text

        Returns:
            Every user_output the model produced, in order

        Raises:
            AgentError: If the thread is busy, the model breaks the protocol
                or the tool round limit is hit
            CommunicationError: If commands could not be delivered or timed out
            ModelResponseError: If a model reply could not be decoded
        """
        if isinstance(user_turn, str):
            user_turn = UserTurn.from_text(user_turn)
        if self._busy:
            raise AgentError(f"Agent thread {self.id} is already processing a turn")

        self._busy = True
        self._rounds = 0
        checkpoint = len(self.conversation)
        try:
            self.conversation.append(user_turn)
            reply = await self._ask_model()
            outputs = await self._process_model_output(reply)
        except BaseException as e:
            logger.warning(f"Agent thread {self.id} failed, rolling back to {checkpoint} turns: {e!r}")
            self.conversation.truncate(checkpoint)
            raise
        finally:
            self._busy = False

        logger.info(f"Agent thread {self.id} finished after {self._rounds} tool rounds "
                    f"with {len(outputs)} outputs")
        if self.on_outputs is not None:
            self.on_outputs(outputs)
        return outputs

    def history(self) -> List[Dict[str, Any]]:
        return self.conversation.to_list()

    async def _ask_model(self) -> AssistantTurn:
        reply = await self.model_client.send(self.conversation.turns)
        self.conversation.append(reply)
        return reply

    def _validate_turn(self, turn: AssistantTurn):
        instructions = turn.instructions
        for instruction in instructions:
            if not instruction.is_stop:
                raise ProtocolViolationError(
                    f"Unsupported workflow instruction {instruction.content!r}, only 'stop' is allowed"
                )
        if len(instructions) != 1:
            raise ProtocolViolationError(
                f"Assistant turn must carry exactly one 'stop' instruction, found {len(instructions)}"
            )

        for tool_use in turn.tool_uses:
            if tool_use.name != DESIGN_TOOL_NAME:
                raise ProtocolViolationError(f"Model invoked unknown tool {tool_use.name!r}")
            if tool_use.input is None:
                raise ProtocolViolationError(f"Invalid {DESIGN_TOOL_NAME} input: {tool_use.error}")
            is_valid, error = validate_batch(tool_use.input.commands, self.max_batch_size)
            if not is_valid:
                raise ProtocolViolationError(f"Rejected command batch: {error}")

    async def _process_model_output(self, turn: AssistantTurn) -> List[UserOutput]:
        # The whole turn is checked before any of its commands run
        self._validate_turn(turn)

        outputs: List[UserOutput] = []
        for item in turn.contents:
            if isinstance(item, UserOutput):
                outputs.append(item)
            elif isinstance(item, ToolUse):
                outputs.extend(await self._run_tool(item))
        return outputs

    async def _run_tool(self, tool_use: ToolUse) -> List[UserOutput]:
        self._rounds += 1
        if self._rounds > self.max_tool_rounds:
            raise ToolRoundLimitExceeded(
                f"Agent thread {self.id} exceeded {self.max_tool_rounds} tool rounds in one turn"
            )

        batch = tool_use.input.commands
        logger.debug(f"Thread {self.id} round {self._rounds}: {tool_use.input.objective!r} "
                     f"({len(batch)} commands)")
        result = await self.executor.execute_commands(batch)

        self.conversation.append(UserTurn(contents=[ToolResult(content=result)]))
        reply = await self._ask_model()
        return await self._process_model_output(reply)


class AgentThreadRegistry:
    """
    Creates and tracks agent threads.

    Every thread gets its own model client from the factory and its own
    conversation; the executor (and so the document) is shared.
    """

    def __init__(self, model_client_factory: Callable[[], ModelClient], executor: CommandExecutor,
                 agent_config: Optional[AgentConfig] = None):
        self.model_client_factory = model_client_factory
        self.executor = executor
        self.agent_config = agent_config or AgentConfig()
        self._threads: Dict[int, AgentThread] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._threads)

    def create(self, on_outputs: Optional[OutputCallback] = None) -> AgentThread:
        thread = AgentThread(
            thread_id=self._next_id,
            model_client=self.model_client_factory(),
            executor=self.executor,
            on_outputs=on_outputs,
            max_tool_rounds=self.agent_config.max_tool_rounds,
            max_batch_size=self.agent_config.max_batch_size
        )
        self._threads[thread.id] = thread
        self._next_id += 1
        logger.info(f"Created agent thread {thread.id}")
        return thread

    def get(self, thread_id: int) -> AgentThread:
        thread = self._threads.get(thread_id)
        if thread is None:
            raise AgentError(f"Unknown agent thread {thread_id}")
        return thread

    def close(self, thread_id: int) -> bool:
        thread = self._threads.pop(thread_id, None)
        if thread is not None:
            logger.info(f"Closed agent thread {thread_id}")
        return thread is not None

    def list_threads(self) -> List[Dict[str, Any]]:
        return [
            {"thread_id": thread.id, "turns": len(thread.conversation), "busy": thread.busy}
            for thread in self._threads.values()
        ]

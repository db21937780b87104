"""
Conversation model shared by the agent and the model client.

A conversation is a strictly alternating list of user and assistant turns,
starting with a user turn. Each turn holds an ordered list of typed content
items; the JSON shape of turns is what the model reads and writes.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Type, Union

from canvas_agent.config import DESIGN_TOOL_NAME
from .commands import CommandDecodeError, ExecuteCommandBatch
from .results import ExecuteCommandBatchResult

logger = logging.getLogger(__name__)

STOP_INSTRUCTION = "stop"


class ConversationFormatError(ValueError):
    """Raised when a turn or content item cannot be decoded."""
    pass


class ConversationOrderError(Exception):
    """Raised when a turn is appended out of alternation."""
    pass


def _require_text(data: Dict[str, Any], what: str) -> str:
    content = data.get("content")
    if not isinstance(content, str):
        raise ConversationFormatError(f"{what} content must be a string")
    return content


# ====================================================================
# USER CONTENT
# ====================================================================

@dataclass(frozen=True)
class UserInput:
    """Free text typed by the end user."""
    TYPE: ClassVar[str] = "user_input"
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserInput":
        return cls(content=_require_text(data, cls.TYPE))


@dataclass(frozen=True)
class AgentWorkflowInstruction:
    """Instruction from the agent runtime to the model."""
    TYPE: ClassVar[str] = "agent_workflow_instruction"
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentWorkflowInstruction":
        return cls(content=_require_text(data, cls.TYPE))


@dataclass
class ToolResult:
    """Outcome of a design-tool call, fed back to the model."""
    TYPE: ClassVar[str] = "tool_result"
    content: ExecuteCommandBatchResult
    name: str = DESIGN_TOOL_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "name": self.name, "content": self.content.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolResult":
        try:
            content = ExecuteCommandBatchResult.from_dict(data.get("content"))
        except CommandDecodeError as e:
            raise ConversationFormatError(f"Invalid tool result: {e}")
        return cls(content=content, name=data.get("name", DESIGN_TOOL_NAME))


# ====================================================================
# ASSISTANT CONTENT
# ====================================================================

@dataclass(frozen=True)
class UserOutput:
    """Text the model wants surfaced to the end user."""
    TYPE: ClassVar[str] = "user_output"
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserOutput":
        return cls(content=_require_text(data, cls.TYPE))


@dataclass(frozen=True)
class AssistantWorkflowInstruction:
    """Workflow signal from the model. Only "stop" is legal."""
    TYPE: ClassVar[str] = "assistant_workflow_instruction"
    content: str

    @property
    def is_stop(self) -> bool:
        return self.content == STOP_INSTRUCTION

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssistantWorkflowInstruction":
        return cls(content=_require_text(data, cls.TYPE))


@dataclass(frozen=True)
class DesignToolInput:
    """What the model is trying to achieve, and the commands to get there."""
    objective: str
    commands: ExecuteCommandBatch

    def to_dict(self) -> Dict[str, Any]:
        return {"objective": self.objective, "commands": self.commands.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> "DesignToolInput":
        if not isinstance(data, dict):
            raise CommandDecodeError("Tool input must be an object")
        objective = data.get("objective", "")
        if not isinstance(objective, str):
            raise CommandDecodeError("'objective' must be a string")
        return cls(objective=objective, commands=ExecuteCommandBatch.from_dict(data.get("commands")))


@dataclass(frozen=True)
class ToolUse:
    """
    A tool invocation by the model.

    Invocations of unknown tools, and design-tool inputs that do not decode,
    are still represented so the agent can report them as protocol
    violations; ``input`` is None for those and ``error`` says why.
    """
    TYPE: ClassVar[str] = "tool_use"
    name: str
    input: Optional[DesignToolInput] = None
    raw_input: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        tool_input = self.input.to_dict() if self.input is not None else self.raw_input
        return {"type": self.TYPE, "name": self.name, "content": {"input": tool_input}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolUse":
        name = data.get("name")
        if not isinstance(name, str):
            raise ConversationFormatError("tool_use requires a 'name'")
        content = data.get("content")
        raw_input = content.get("input") if isinstance(content, dict) else None

        if name != DESIGN_TOOL_NAME:
            return cls(name=name, raw_input=raw_input, error=f"Unknown tool {name!r}")
        try:
            return cls(name=name, input=DesignToolInput.from_dict(raw_input))
        except CommandDecodeError as e:
            logger.debug(f"Undecodable design tool input: {e}")
            return cls(name=name, raw_input=raw_input, error=str(e))


UserContent = Union[UserInput, AgentWorkflowInstruction, ToolResult]
AssistantContent = Union[UserOutput, AssistantWorkflowInstruction, ToolUse]

USER_CONTENT_TYPES: Dict[str, Type] = {
    cls.TYPE: cls for cls in (UserInput, AgentWorkflowInstruction, ToolResult)
}
ASSISTANT_CONTENT_TYPES: Dict[str, Type] = {
    cls.TYPE: cls for cls in (UserOutput, AssistantWorkflowInstruction, ToolUse)
}


# ====================================================================
# TURNS
# ====================================================================

def _decode_contents(data: Dict[str, Any], types: Dict[str, Type], role: str) -> List[Any]:
    contents = data.get("contents")
    if not isinstance(contents, list):
        raise ConversationFormatError(f"{role} turn requires a 'contents' list")
    decoded = []
    for item in contents:
        if not isinstance(item, dict):
            raise ConversationFormatError(f"{role} content items must be objects")
        content_class = types.get(item.get("type"))
        if content_class is None:
            raise ConversationFormatError(f"Unknown {role} content type {item.get('type')!r}")
        decoded.append(content_class.from_dict(item))
    return decoded


@dataclass
class UserTurn:
    ROLE: ClassVar[str] = "user"
    contents: List[UserContent] = field(default_factory=list)

    @property
    def role(self) -> str:
        return self.ROLE

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.ROLE, "contents": [item.to_dict() for item in self.contents]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserTurn":
        return cls(contents=_decode_contents(data, USER_CONTENT_TYPES, cls.ROLE))

    @classmethod
    def from_text(cls, text: str) -> "UserTurn":
        return cls(contents=[UserInput(content=text)])


@dataclass
class AssistantTurn:
    ROLE: ClassVar[str] = "assistant"
    contents: List[AssistantContent] = field(default_factory=list)

    @property
    def role(self) -> str:
        return self.ROLE

    @property
    def tool_uses(self) -> List[ToolUse]:
        return [item for item in self.contents if isinstance(item, ToolUse)]

    @property
    def instructions(self) -> List[AssistantWorkflowInstruction]:
        return [item for item in self.contents if isinstance(item, AssistantWorkflowInstruction)]

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.ROLE, "contents": [item.to_dict() for item in self.contents]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssistantTurn":
        return cls(contents=_decode_contents(data, ASSISTANT_CONTENT_TYPES, cls.ROLE))


ConversationTurn = Union[UserTurn, AssistantTurn]


def decode_turn(data: Any) -> ConversationTurn:
    """Decode a turn, dispatching on its role."""
    if not isinstance(data, dict):
        raise ConversationFormatError("Turn must be an object")
    role = data.get("role")
    if role == UserTurn.ROLE:
        return UserTurn.from_dict(data)
    if role == AssistantTurn.ROLE:
        return AssistantTurn.from_dict(data)
    raise ConversationFormatError(f"Unknown turn role {role!r}")


class Conversation:
    """Append-only, strictly alternating sequence of turns."""

    def __init__(self):
        self._turns: List[ConversationTurn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return iter(self._turns)

    @property
    def turns(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    @property
    def last(self) -> Optional[ConversationTurn]:
        return self._turns[-1] if self._turns else None

    def expected_role(self) -> str:
        return UserTurn.ROLE if len(self._turns) % 2 == 0 else AssistantTurn.ROLE

    def append(self, turn: ConversationTurn):
        expected = self.expected_role()
        if turn.role != expected:
            raise ConversationOrderError(
                f"Expected a {expected} turn at position {len(self._turns)}, got {turn.role}"
            )
        self._turns.append(turn)

    def truncate(self, length: int):
        """Drop every turn after the first ``length`` turns."""
        if length < 0 or length > len(self._turns):
            raise ValueError(f"Cannot truncate a conversation of {len(self._turns)} turns to {length}")
        del self._turns[length:]

    def to_list(self) -> List[Dict[str, Any]]:
        return [turn.to_dict() for turn in self._turns]

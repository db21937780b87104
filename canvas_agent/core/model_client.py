"""
Language model clients for the agent.

The agent only needs one thing from a model: given the conversation so far,
produce the next assistant turn. Turns travel as JSON text; snapshots found
in tool results are sent as image blocks alongside that text.
"""
import re
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from anthropic import AsyncAnthropic

from canvas_agent.config import ModelConfig, get_model_config
from canvas_agent.prompts import SYSTEM_PROMPT
from .conversation import (
    AssistantTurn, ConversationFormatError, ConversationTurn, ToolResult
)

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER = "<image {index}>"

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ModelResponseError(Exception):
    """Raised when the model's reply cannot be turned into an assistant turn."""
    pass


class ModelClient(ABC):
    """Produces the next assistant turn for a conversation."""

    @abstractmethod
    async def send(self, conversation: Sequence[ConversationTurn]) -> AssistantTurn:
        pass


ScriptedReply = Union[AssistantTurn, Callable[[Sequence[ConversationTurn]], AssistantTurn]]


class ScriptedModelClient(ModelClient):
    """
    Replays a fixed list of replies in order.

    A reply may be a callable, which receives the conversation and returns
    the turn; this lets a script react to tool results. Every conversation
    sent is recorded in ``received``.
    """

    def __init__(self, replies: Iterable[ScriptedReply]):
        self._replies: List[ScriptedReply] = list(replies)
        self.received: List[Tuple[ConversationTurn, ...]] = []

    @property
    def remaining(self) -> int:
        return len(self._replies)

    async def send(self, conversation: Sequence[ConversationTurn]) -> AssistantTurn:
        self.received.append(tuple(conversation))
        if not self._replies:
            raise ModelResponseError("Scripted model has no replies left")
        reply = self._replies.pop(0)
        if callable(reply):
            reply = reply(conversation)
        return reply


# ====================================================================
# WIRE ENCODING
# ====================================================================

def encode_turn(turn: ConversationTurn) -> List[Dict[str, Any]]:
    """
    Content blocks for one turn.

    Base64 snapshots inside tool results are replaced by placeholders in the
    JSON text and attached as image blocks in the same order.
    """
    data = turn.to_dict()
    images = []
    for item, encoded in zip(turn.contents, data["contents"]):
        if not isinstance(item, ToolResult):
            continue
        for cmd in encoded["content"]["cmds"]:
            if cmd.get("visual"):
                images.append(cmd["visual"])
                cmd["visual"] = IMAGE_PLACEHOLDER.format(index=len(images))

    blocks = [{"type": "text", "text": json.dumps(data)}]
    for visual in images:
        blocks.append({
            "type": "image",
            "source": {"type": "base64", "media_type": "image/png", "data": visual}
        })
    return blocks


def to_api_messages(conversation: Sequence[ConversationTurn]) -> List[Dict[str, Any]]:
    return [{"role": turn.role, "content": encode_turn(turn)} for turn in conversation]


def decode_assistant_reply(text: str) -> AssistantTurn:
    """
    Decode the model's text into an assistant turn.

    Tolerates a surrounding code fence and prose before or after the JSON
    object; anything else raises ModelResponseError.
    """
    text = text.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)

    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise ModelResponseError("Model reply does not contain a JSON object")

    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ModelResponseError(f"Model reply is not valid JSON: {e}")

    if isinstance(data, dict) and data.get("role", "assistant") != "assistant":
        raise ModelResponseError(f"Model replied with role {data.get('role')!r}")
    try:
        return AssistantTurn.from_dict(data)
    except ConversationFormatError as e:
        raise ModelResponseError(f"Model reply is not a valid assistant turn: {e}")


class AnthropicModelClient(ModelClient):
    """Model client backed by the Anthropic Messages API."""

    def __init__(self, config: Optional[ModelConfig] = None, system_prompt: str = SYSTEM_PROMPT,
                 client: Optional[AsyncAnthropic] = None):
        self.config = config or get_model_config()
        self.system_prompt = system_prompt
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.config.api_key)
        return self._client

    async def send(self, conversation: Sequence[ConversationTurn]) -> AssistantTurn:
        logger.debug(f"Sending {len(conversation)} turns to {self.config.model}")
        response = await self.client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            system=self.system_prompt,
            messages=to_api_messages(conversation)
        )

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        if not text:
            raise ModelResponseError(f"Model returned no text (stop reason: {response.stop_reason})")
        return decode_assistant_reply(text)

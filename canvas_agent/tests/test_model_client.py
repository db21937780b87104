"""
Tests for model clients and the model wire encoding.
"""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from canvas_agent.config import ModelConfig
from canvas_agent.core.commands import ExecuteCommand, GetLayerVisual
from canvas_agent.core.conversation import (
    AssistantTurn, ToolResult, UserInput, UserOutput, UserTurn
)
from canvas_agent.core.model_client import (
    AnthropicModelClient, ModelResponseError, ScriptedModelClient,
    decode_assistant_reply, encode_turn, to_api_messages
)
from canvas_agent.core.results import create_batch_result, create_success_result

REPLY = '{"role": "assistant", "contents": [{"type": "user_output", "content": "done"}, ' \
        '{"type": "assistant_workflow_instruction", "content": "stop"}]}'


class TestDecodeAssistantReply:
    """Parsing model text into an assistant turn."""

    def test_plain_json(self):
        turn = decode_assistant_reply(REPLY)
        assert turn.contents[0] == UserOutput("done")
        assert turn.instructions[0].is_stop

    def test_code_fence(self):
        turn = decode_assistant_reply(f"```json\n{REPLY}\n```")
        assert turn.contents[0] == UserOutput("done")

    def test_surrounding_prose(self):
        turn = decode_assistant_reply(f"Here you go:\n{REPLY}\nHope that helps.")
        assert len(turn.contents) == 2

    def test_missing_role_defaults_to_assistant(self):
        turn = decode_assistant_reply('{"contents": [{"type": "user_output", "content": "x"}]}')
        assert turn.contents == [UserOutput("x")]

    @pytest.mark.parametrize("text", [
        "no json here",
        "{broken",
        '{"role": "user", "contents": []}',
        '{"role": "assistant", "contents": [{"type": "user_input", "content": "x"}]}',
        '{"role": "assistant"}',
    ])
    def test_rejects_bad_replies(self, text):
        with pytest.raises(ModelResponseError):
            decode_assistant_reply(text)


class TestEncoding:
    """Encoding turns as API content blocks."""

    def test_text_turn(self):
        blocks = encode_turn(UserTurn.from_text("Draw a box"))
        assert len(blocks) == 1
        assert json.loads(blocks[0]["text"]) == {
            "role": "user", "contents": [{"type": "user_input", "content": "Draw a box"}]
        }

    def test_visuals_become_image_blocks(self):
        visual = create_success_result(ExecuteCommand(id="1", cmd=GetLayerVisual()), visual="UE5HZGF0YQ==")
        result = create_batch_result("b1", [visual])
        blocks = encode_turn(UserTurn(contents=[ToolResult(content=result)]))

        text = json.loads(blocks[0]["text"])
        assert text["contents"][0]["content"]["cmds"][0]["visual"] == "<image 1>"
        assert blocks[1] == {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/png", "data": "UE5HZGF0YQ=="},
        }
        # The stored result keeps its data
        assert result.cmds[0].visual == "UE5HZGF0YQ=="

    def test_api_messages_keep_roles(self):
        conversation = [UserTurn.from_text("a"), AssistantTurn(contents=[UserOutput("b")])]
        assert [m["role"] for m in to_api_messages(conversation)] == ["user", "assistant"]


class TestScriptedModelClient:
    """Replaying scripted replies."""

    def test_replays_in_order_and_records(self):
        first = AssistantTurn(contents=[UserOutput("one")])
        client = ScriptedModelClient([first, lambda conversation: AssistantTurn(
            contents=[UserOutput(f"seen {len(conversation)}")]
        )])
        conversation = [UserTurn.from_text("hi")]

        assert asyncio.run(client.send(conversation)) is first
        assert asyncio.run(client.send(conversation)).contents == [UserOutput("seen 1")]
        assert client.remaining == 0
        assert len(client.received) == 2

    def test_exhausted(self):
        with pytest.raises(ModelResponseError):
            asyncio.run(ScriptedModelClient([]).send([]))


class TestAnthropicModelClient:
    """The Messages API client, with the SDK mocked out."""

    def _client(self, *blocks, stop_reason="end_turn"):
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(return_value=SimpleNamespace(content=list(blocks), stop_reason=stop_reason))
        return sdk

    def test_send(self):
        sdk = self._client(SimpleNamespace(type="text", text=REPLY))
        client = AnthropicModelClient(ModelConfig(model="test-model", max_tokens=123), system_prompt="be brief", client=sdk)

        turn = asyncio.run(client.send([UserTurn(contents=[UserInput("hi")])]))

        assert turn.contents[0] == UserOutput("done")
        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["max_tokens"] == 123
        assert kwargs["system"] == "be brief"
        assert kwargs["messages"][0]["role"] == "user"

    def test_joins_text_blocks(self):
        half = len(REPLY) // 2
        sdk = self._client(
            SimpleNamespace(type="text", text=REPLY[:half]),
            SimpleNamespace(type="thinking", thinking="hmm"),
            SimpleNamespace(type="text", text=REPLY[half:]),
        )
        client = AnthropicModelClient(ModelConfig(), client=sdk)
        assert asyncio.run(client.send([UserTurn.from_text("hi")])).instructions[0].is_stop

    def test_no_text(self):
        sdk = self._client(stop_reason="max_tokens")
        client = AnthropicModelClient(ModelConfig(), client=sdk)
        with pytest.raises(ModelResponseError, match="max_tokens"):
            asyncio.run(client.send([UserTurn.from_text("hi")]))

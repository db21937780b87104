"""
Tests for the document-context message host.
"""
import asyncio

from canvas_agent.core.communication import MessageChannel
from canvas_agent.core.host import PluginHost
from canvas_agent.core.results import BatchStatus


class CollectingChannel(MessageChannel):
    def __init__(self):
        super().__init__()
        self.posted = []

    def post(self, message):
        self.posted.append(message)


def _request(request_id, *commands):
    return {
        "type": "execute_commands",
        "id": request_id,
        "cmds": [
            {"type": "execute_command", "id": str(i), "cmd": cmd}
            for i, cmd in enumerate(commands, start=1)
        ],
    }


def test_host_answers_with_same_id(dispatcher):
    channel = CollectingChannel()
    host = PluginHost(dispatcher, channel)

    async def scenario():
        channel._deliver(_request(5, {"type": "create-node", "nodeType": "rectangle"}))
        await host.drain(timeout=1)

    asyncio.run(scenario())
    assert len(channel.posted) == 1
    answer = channel.posted[0]
    assert answer["type"] == "execute_commands_result"
    assert answer["id"] == 5
    assert answer["status"] == "success"
    assert answer["cmds"][0]["node"]["type"] == "rectangle"


def test_host_ignores_other_messages(dispatcher):
    channel = CollectingChannel()
    host = PluginHost(dispatcher, channel)

    async def scenario():
        channel._deliver({"type": "execute_commands_result", "id": 1, "cmds": [], "status": "success"})
        channel._deliver({"type": "execute_commands", "id": 2})
        channel._deliver({"type": "ping"})
        await host.drain(timeout=1)

    asyncio.run(scenario())
    assert channel.posted == []


def test_undecodable_batch_still_gets_an_answer(dispatcher):
    channel = CollectingChannel()
    host = PluginHost(dispatcher, channel)
    message = {"type": "execute_commands", "id": 3, "cmds": ["not an entry"]}

    result = asyncio.run(host.handle_execute_commands(message))
    assert result.status == BatchStatus.FAILURE
    assert result.cmds == []
    assert channel.posted == [{"type": "execute_commands_result", "id": 3, "cmds": [], "status": "failure"}]


def test_unknown_command_fails_only_its_entry(dispatcher):
    channel = CollectingChannel()
    host = PluginHost(dispatcher, channel)
    message = _request(4, {"type": "get-current-selected-nodes"}, {"type": "teleport"})

    result = asyncio.run(host.handle_execute_commands(message))
    assert result.status == BatchStatus.PARTIAL_FAILURES
    assert channel.posted[0]["cmds"][1]["cmd"] == {"type": "teleport"}

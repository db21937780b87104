"""
Tests for the message codec and channel implementations.
"""
import asyncio

import pytest

from canvas_agent.core.commands import GetLayerVisual, create_batch
from canvas_agent.core.communication import (
    EXECUTE_COMMANDS, EXECUTE_COMMANDS_RESULT, CommunicationError, LoopbackChannel,
    MessageProtocol, StreamChannel
)
from canvas_agent.core.results import create_batch_result


class TestMessageProtocol:
    """Serialization and classification."""

    def test_serialize_is_newline_terminated_json(self):
        data = MessageProtocol.serialize_message({"type": "x", "id": 1})
        assert data.endswith(b"\n")
        assert MessageProtocol.parse_message(data) == {"type": "x", "id": 1}

    def test_serialize_rejects_unencodable_values(self):
        with pytest.raises(CommunicationError):
            MessageProtocol.serialize_message({"value": object()})

    @pytest.mark.parametrize("data", [b"{not json", b"[1, 2]", b"\xff\xfe", "42"])
    def test_parse_rejects_bad_input(self, data):
        with pytest.raises(CommunicationError):
            MessageProtocol.parse_message(data)

    def test_message_types(self):
        batch = create_batch(0, GetLayerVisual())
        request = MessageProtocol.create_execute_commands_message(batch)
        response = MessageProtocol.create_result_message(create_batch_result(0, []))
        assert MessageProtocol.message_type(request) == EXECUTE_COMMANDS
        assert MessageProtocol.message_type(response) == EXECUTE_COMMANDS_RESULT

    @pytest.mark.parametrize("message", [
        None,
        {"type": "execute_commands", "cmds": []},
        {"type": "execute_commands", "id": 1, "cmds": {}},
        {"type": "unknown", "id": 1, "cmds": []},
    ])
    def test_unknown_shapes(self, message):
        assert MessageProtocol.message_type(message) is None


class TestLoopbackChannel:
    """In-process channel pair."""

    def test_delivers_to_peer_asynchronously(self):
        async def scenario():
            left, right = LoopbackChannel.pair()
            received = []
            right.subscribe(received.append)
            left.post({"type": "hello", "n": 1})
            assert received == []
            await asyncio.sleep(0)
            return received

        assert asyncio.run(scenario()) == [{"type": "hello", "n": 1}]

    def test_peer_receives_a_copy(self):
        async def scenario():
            left, right = LoopbackChannel.pair()
            received = []
            right.subscribe(received.append)
            message = {"items": [1]}
            left.post(message)
            message["items"].append(2)
            await asyncio.sleep(0)
            return received[0]

        assert asyncio.run(scenario()) == {"items": [1]}

    def test_failing_handler_does_not_block_others(self):
        async def scenario():
            left, right = LoopbackChannel.pair()
            received = []

            def broken(message):
                raise RuntimeError("boom")

            right.subscribe(broken)
            right.subscribe(received.append)
            left.post({"type": "x"})
            await asyncio.sleep(0)
            return received

        assert asyncio.run(scenario()) == [{"type": "x"}]

    def test_unsubscribe(self):
        async def scenario():
            left, right = LoopbackChannel.pair()
            received = []
            right.subscribe(received.append)
            right.unsubscribe(received.append)
            left.post({"type": "x"})
            await asyncio.sleep(0)
            return received

        assert asyncio.run(scenario()) == []

    def test_unconnected_endpoint(self):
        with pytest.raises(CommunicationError):
            LoopbackChannel().post({"type": "x"})


class FakeWriter:
    def __init__(self):
        self.data = b""
        self.closed = False

    def write(self, data):
        self.data += data

    async def drain(self):
        pass

    def close(self):
        self.closed = True


def test_stream_channel_reads_and_writes_lines():
    async def scenario():
        reader = asyncio.StreamReader()
        writer = FakeWriter()
        channel = StreamChannel(reader, writer)
        received = []
        channel.subscribe(received.append)
        channel.start()

        reader.feed_data(b'{"type": "a"}\n\nnot json\n{"type": "b"}\n')
        reader.feed_eof()
        await asyncio.sleep(0.01)

        channel.post({"type": "out"})
        await channel.flush()
        await channel.close()
        return received, writer

    received, writer = asyncio.run(scenario())
    assert received == [{"type": "a"}, {"type": "b"}]
    assert writer.data == b'{"type": "out"}\n'
    assert writer.closed

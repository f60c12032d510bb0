"""Tests for console.commands - CommandDispatcher."""

import pytest

from conftest import settle
from console.errors import NotConnectedError
from console.models import LogClass
from console.session import ConsoleSession


@pytest.fixture
def console(fetcher, connector):
    return ConsoleSession("srv1", fetcher, connector=connector)


@pytest.mark.asyncio
async def test_send_command_writes_frame_and_echoes_locally(console, connector):
    await console.start()
    socket = connector.last
    socket.push("auth success")
    await settle()

    line = await console.send_command("say hi")

    assert socket.sent_frames[-1] == {"event": "send command", "args": ["say hi"]}
    assert line.log_class is LogClass.COMMAND
    assert line.text == "> say hi"
    assert console.snapshot()[-1] == line
    await console.close()


@pytest.mark.asyncio
async def test_command_before_connecting_is_rejected(console, connector):
    with pytest.raises(NotConnectedError):
        await console.send_command("say hi")
    assert connector.sockets == []


@pytest.mark.asyncio
async def test_command_while_awaiting_auth_is_rejected_without_frame(console, connector):
    await console.start()

    with pytest.raises(NotConnectedError):
        await console.send_command("say hi")

    assert [f["event"] for f in connector.last.sent_frames] == ["auth"]
    assert all(line.log_class is not LogClass.COMMAND for line in console.snapshot())
    await console.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n", "\t "])
async def test_blank_input_is_a_no_op(console, text):
    assert await console.send_command(text) is None
    assert len(console.snapshot()) == 0


@pytest.mark.asyncio
async def test_power_actions(console, connector):
    await console.start()
    connector.last.push("auth success")
    await settle()

    await console.set_power("restart")
    assert connector.last.sent_frames[-1] == {"event": "set state", "args": ["restart"]}

    with pytest.raises(ValueError):
        await console.set_power("explode")
    await console.close()

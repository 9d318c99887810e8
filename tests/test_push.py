"""Tests for the Socket.IO push channel adapter."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from turfchat.chat.push import PushChannel, SocketIOPushChannel


@pytest.fixture
def sio() -> MagicMock:
    mock = MagicMock()
    mock.emit = AsyncMock()
    mock.connected = True
    return mock


def _dispatcher(sio: MagicMock, event: str):
    """Return the handler the adapter registered with socketio for *event*."""
    for call in sio.on.call_args_list:
        if call.args[0] == event:
            return call.args[1]
    raise AssertionError(f"no dispatcher registered for {event}")


def test_satisfies_protocol(sio) -> None:
    assert isinstance(SocketIOPushChannel(sio), PushChannel)


def test_fake_channel_satisfies_protocol(push) -> None:
    assert isinstance(push, PushChannel)


async def test_emit_forwards_to_socket(sio) -> None:
    channel = SocketIOPushChannel(sio)
    await channel.emit("join_chat", "c1")
    sio.emit.assert_awaited_once_with("join_chat", "c1")


async def test_one_socketio_handler_fans_out(sio) -> None:
    channel = SocketIOPushChannel(sio)
    received_a: list = []
    received_b: list = []

    channel.on("receive_message", received_a.append)
    channel.on("receive_message", received_b.append)

    sio.on.assert_called_once()
    await _dispatcher(sio, "receive_message")({"id": "m1"})

    assert received_a == [{"id": "m1"}]
    assert received_b == [{"id": "m1"}]
    assert channel.listener_count("receive_message") == 2


async def test_async_handlers_are_awaited(sio) -> None:
    channel = SocketIOPushChannel(sio)
    handler = AsyncMock()
    channel.on("typing", handler)

    await _dispatcher(sio, "typing")({"chatId": "c1", "userId": "u1"})

    handler.assert_awaited_once_with({"chatId": "c1", "userId": "u1"})


async def test_off_detaches_listener(sio) -> None:
    channel = SocketIOPushChannel(sio)
    received: list = []
    channel.on("receive_message", received.append)
    channel.off("receive_message", received.append)

    await _dispatcher(sio, "receive_message")({"id": "m1"})

    assert received == []
    assert channel.listener_count("receive_message") == 0


def test_off_unknown_handler_is_noop(sio) -> None:
    channel = SocketIOPushChannel(sio)
    channel.off("receive_message", print)


async def test_failing_handler_does_not_block_others(sio) -> None:
    channel = SocketIOPushChannel(sio)
    received: list = []

    def broken(_data) -> None:
        raise RuntimeError("boom")

    channel.on("receive_message", broken)
    channel.on("receive_message", received.append)

    await _dispatcher(sio, "receive_message")({"id": "m1"})

    assert received == [{"id": "m1"}]


async def test_dispatch_without_payload(sio) -> None:
    channel = SocketIOPushChannel(sio)
    received: list = []
    channel.on("typing", received.append)

    await _dispatcher(sio, "typing")()

    assert received == [None]


def test_connected_reflects_socket(sio) -> None:
    channel = SocketIOPushChannel(sio)
    assert channel.connected is True
    sio.connected = False
    assert channel.connected is False

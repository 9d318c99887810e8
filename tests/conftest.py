"""Shared test fixtures."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from turfchat.chat.api import ChatApi
from turfchat.chat.models import ChatIdentity
from turfchat.chat.push import call_handler


class FakePushChannel:
    """In-memory push channel that records emits and delivers events on demand."""

    def __init__(self) -> None:
        self.handlers: dict[str, list] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.fail_emit = False

    async def emit(self, event: str, data: Any = None) -> None:
        if self.fail_emit:
            msg = "socket is not connected"
            raise ConnectionError(msg)
        self.emitted.append((event, data))

    def on(self, event: str, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler) -> None:
        listeners = self.handlers.get(event, [])
        if handler in listeners:
            listeners.remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self.handlers.get(event, []))

    async def deliver(self, event: str, data: Any) -> None:
        for handler in list(self.handlers.get(event, [])):
            await call_handler(handler, data)


@pytest.fixture
def push() -> FakePushChannel:
    return FakePushChannel()


@pytest.fixture
def identity() -> ChatIdentity:
    return ChatIdentity(user_id="u-player", role="player")


@pytest.fixture
def api() -> AsyncMock:
    mock = AsyncMock(spec=ChatApi)
    mock.fetch_messages.return_value = []
    mock.send_message.return_value = {}
    mock.list_conversations.return_value = []
    return mock

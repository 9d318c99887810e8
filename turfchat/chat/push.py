"""Push channel: room-scoped realtime events feeding the chat client."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import socketio

logger = logging.getLogger(__name__)

# Event names shared with the backend's Socket.IO server
JOIN_CHAT = "join_chat"
JOIN_USER = "join_user"
RECEIVE_MESSAGE = "receive_message"
TYPING = "typing"

Handler = Callable[[Any], Any]


@runtime_checkable
class PushChannel(Protocol):
    """Protocol for the shared realtime connection.

    The channel is owned by the caller; consumers only attach and detach
    listeners and emit events on it.
    """

    async def emit(self, event: str, data: Any = None) -> None:
        """Send an event to the server."""
        ...

    def on(self, event: str, handler: Handler) -> None:
        """Register *handler* for *event*. Handlers may be sync or async."""
        ...

    def off(self, event: str, handler: Handler) -> None:
        """Remove a handler previously registered with :meth:`on`."""
        ...


async def call_handler(handler: Handler, data: Any) -> None:
    """Invoke a sync or async handler."""
    result = handler(data)
    if inspect.isawaitable(result):
        await result


class SocketIOPushChannel:
    """Adapts a connected ``socketio.AsyncClient`` to :class:`PushChannel`.

    python-socketio keeps one handler per event, so this class registers a
    single dispatcher per event and fans it out to any number of listeners.
    It never connects or disconnects the underlying client.
    """

    def __init__(self, sio: socketio.AsyncClient) -> None:
        self._sio = sio
        self._listeners: dict[str, list[Handler]] = {}

    @property
    def connected(self) -> bool:
        return bool(getattr(self._sio, "connected", False))

    async def emit(self, event: str, data: Any = None) -> None:
        await self._sio.emit(event, data)

    def on(self, event: str, handler: Handler) -> None:
        if event not in self._listeners:
            self._listeners[event] = []
            self._sio.on(event, self._make_dispatcher(event))
        self._listeners[event].append(handler)

    def off(self, event: str, handler: Handler) -> None:
        listeners = self._listeners.get(event, [])
        if handler in listeners:
            listeners.remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def _make_dispatcher(self, event: str) -> Callable[..., Any]:
        async def dispatch(*args: Any) -> None:
            data = args[0] if args else None
            # Copy: handlers may detach themselves while we iterate
            for handler in list(self._listeners.get(event, [])):
                try:
                    await call_handler(handler, data)
                except Exception:
                    logger.exception("Push handler for %s failed", event)

        return dispatch

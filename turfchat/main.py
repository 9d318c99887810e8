"""TurfBook chat CLI entry point.

Usage examples:
    # List conversations for CURRENT_USER_ID
    turfchat --list

    # Follow a conversation, printing messages as they arrive
    turfchat 6f1c0e2a-...

    # Send a message, then keep following
    turfchat 6f1c0e2a-... --send "Is the 7pm slot still free?"
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

from turfchat.chat import (
    ChatApi,
    ChatClient,
    ConversationDirectory,
    SocketIOPushChannel,
)
from turfchat.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="turfchat", description="TurfBook chat client")
    parser.add_argument("conversation_id", nargs="?", help="Conversation to follow")
    parser.add_argument("--list", action="store_true", help="List conversations and exit")
    parser.add_argument("--send", metavar="TEXT", help="Send TEXT before following")
    return parser


class _Printer:
    """on_change callback that prints each message once."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._last_error: str | None = None

    def __call__(self, client: ChatClient) -> None:
        for message in client.messages:
            if message.id in self._seen:
                continue
            self._seen.add(message.id)
            who = "me" if message.is_from(client.identity.user_id) else message.sender_id
            print(f"[{message.created_at or '-'}] {who}: {message.content}")
        if client.error and client.error != self._last_error:
            print(f"! {client.error}")
        self._last_error = client.error


async def _connect_socket() -> socketio.AsyncClient | None:
    if not settings.socket_url:
        return None
    sio = socketio.AsyncClient(reconnection=True)
    try:
        await sio.connect(settings.socket_url)
    except SocketConnectionError:
        logger.warning("Socket.IO unavailable at %s; polling only", settings.socket_url)
        return None
    return sio


async def list_conversations(api: ChatApi) -> int:
    directory = ConversationDirectory(api, settings.identity())
    if not await directory.refresh():
        print(f"! {directory.error}")
        return 1
    for conversation in directory.conversations:
        star = "*" if conversation.is_favorite else " "
        last = conversation.last_message or ""
        print(f"{star} {conversation.id}  {conversation.display_name}: {last}")
    return 0


async def follow(api: ChatApi, conversation_id: str, send: str | None) -> int:
    sio = await _connect_socket()
    push = SocketIOPushChannel(sio) if sio is not None else None
    client = ChatClient(api, settings.identity(), push, on_change=_Printer())
    try:
        await client.activate(conversation_id)
        if send and not await client.send_message(send):
            return 1
        logger.info("Following conversation %s (Ctrl+C to stop)", conversation_id)
        await asyncio.Event().wait()
    finally:
        await client.close()
        if sio is not None:
            await sio.disconnect()
    return 0


async def run(args: argparse.Namespace) -> int:
    api = ChatApi()
    if args.list:
        return await list_conversations(api)
    if not args.conversation_id:
        print("A conversation id is required unless --list is given")
        return 2
    return await follow(api, args.conversation_id, args.send)


def main() -> None:
    """Parse arguments and run the client until interrupted."""
    args = build_parser().parse_args()
    exit_code = 0
    with contextlib.suppress(KeyboardInterrupt):
        exit_code = asyncio.run(run(args))
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()

"""Chat synchronisation for TurfBook conversations."""

from turfchat.chat.api import ChatApi, ChatApiError
from turfchat.chat.client import ChatClient, ChatState
from turfchat.chat.conversations import ConversationDirectory
from turfchat.chat.models import ChatIdentity, Conversation, Message
from turfchat.chat.push import PushChannel, SocketIOPushChannel
from turfchat.chat.store import MessageStore

__all__ = [
    "ChatApi",
    "ChatApiError",
    "ChatClient",
    "ChatIdentity",
    "ChatState",
    "Conversation",
    "ConversationDirectory",
    "Message",
    "MessageStore",
    "PushChannel",
    "SocketIOPushChannel",
]

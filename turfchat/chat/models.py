"""Chat data models for messages, conversations and the session identity."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _first(payload: dict[str, Any], *keys: str) -> Any:
    """Return the value of the first key present in *payload*, else None."""
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _read_flag(payload: dict[str, Any]) -> bool:
    """Collapse the ``is_read`` / legacy ``read`` columns into one flag.

    The first column present wins, even when it is null (null reads as unread).
    The legacy ``read`` column is only consulted when ``is_read`` is absent.
    """
    for key in ("is_read", "isRead", "read"):
        if key in payload:
            return bool(payload[key])
    return False


@dataclass(frozen=True)
class ChatIdentity:
    """The signed-in user the chat client acts on behalf of.

    Attributes:
        user_id: Server-side user id, or None when nobody is signed in.
        role: ``"player"``, ``"owner"`` or ``"admin"``.
    """

    user_id: str | None
    role: str = "player"


@dataclass(frozen=True)
class Message:
    """A single chat message as delivered by the server.

    Attributes:
        id: Server-assigned unique id. Deduplication key.
        conversation_id: Id of the owning conversation (``chat_id`` on the wire).
        content: Text body.
        sender_id: Id of the author.
        sender_role: Optional role of the author.
        read: Canonical read flag (normalised from ``is_read`` / ``read``).
        created_at: ISO 8601 timestamp, when the server sent one.
    """

    id: str
    conversation_id: str
    content: str = ""
    sender_id: str | None = None
    sender_role: str | None = None
    read: bool = False
    created_at: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Message:
        """Build a Message from a REST or push payload.

        Raises:
            ValueError: If the payload is not a mapping or has no ``id``.
        """
        if not isinstance(payload, dict):
            msg = f"Message payload must be a mapping, got {type(payload).__name__}"
            raise ValueError(msg)
        raw_id = payload.get("id")
        if raw_id is None or raw_id == "":
            msg = "Message payload has no id"
            raise ValueError(msg)

        conversation_id = _first(payload, "chat_id", "chatId", "conversation_id", "conversationId")
        sender_id = _first(payload, "sender_id", "senderId")
        return cls(
            id=str(raw_id),
            conversation_id=str(conversation_id) if conversation_id is not None else "",
            content=str(payload.get("content") or ""),
            sender_id=str(sender_id) if sender_id is not None else None,
            sender_role=_first(payload, "sender_role", "senderRole"),
            read=_read_flag(payload),
            created_at=_first(payload, "created_at", "createdAt"),
        )

    def is_from(self, user_id: str | None) -> bool:
        return user_id is not None and self.sender_id == user_id


@dataclass
class Conversation:
    """A chat thread between a turf owner and a player.

    Only used for listing; the chat view works off the conversation id.
    """

    id: str
    owner_id: str
    player_id: str
    last_message: str | None = None
    updated_at: str | None = None
    is_favorite: bool = False
    other_user: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Conversation:
        """Build a Conversation from a ``/chat/conversations`` row."""
        if not isinstance(payload, dict) or payload.get("id") in (None, ""):
            msg = "Conversation payload has no id"
            raise ValueError(msg)
        # Older rows used client_id for the owner side
        owner_id = _first(payload, "owner_id", "client_id")
        favorite = _first(payload, "is_favorite", "favorite")
        return cls(
            id=str(payload["id"]),
            owner_id=str(owner_id) if owner_id is not None else "",
            player_id=str(payload.get("player_id") or ""),
            last_message=payload.get("last_message"),
            updated_at=payload.get("updated_at"),
            is_favorite=bool(favorite),
            other_user=dict(payload.get("other_user") or {}),
        )

    @property
    def display_name(self) -> str:
        return str(self.other_user.get("name") or "Unknown")

    def other_participant_id(self, user_id: str | None) -> str:
        """Return the id of the participant who is not *user_id*."""
        return self.player_id if user_id == self.owner_id else self.owner_id

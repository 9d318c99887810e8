"""MessageStore: ordered, id-deduplicated messages for one conversation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from turfchat.chat.models import Message

logger = logging.getLogger(__name__)


class MessageStore:
    """In-memory message list for the active conversation.

    Order is server arrival order; nothing is re-sorted by timestamp.
    No two stored messages ever share an ``id``.

    Args:
        conversation_id: The conversation this store belongs to.
    """

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        self._messages: list[Message] = []
        self._ids: set[str] = set()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the stored messages."""
        return tuple(self._messages)

    def replace_all(self, messages: Iterable[Message]) -> None:
        """Replace the whole sequence with a fresh server copy.

        Duplicate ids inside *messages* keep their first appearance.
        """
        fresh: list[Message] = []
        seen: set[str] = set()
        for message in messages:
            if message.id in seen:
                logger.debug("Dropping duplicate id %s from server payload", message.id)
                continue
            seen.add(message.id)
            fresh.append(message)
        self._messages = fresh
        self._ids = seen

    def append_if_absent(self, message: Message) -> bool:
        """Append *message* unless its id is already stored. Returns True if appended."""
        if message.id in self._ids:
            return False
        self._messages.append(message)
        self._ids.add(message.id)
        return True

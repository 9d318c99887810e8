"""ConversationDirectory: the signed-in user's list of chats."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from turfchat.chat.api import ChatApiError
from turfchat.chat.push import JOIN_USER, RECEIVE_MESSAGE

if TYPE_CHECKING:
    from turfchat.chat.api import ChatApi
    from turfchat.chat.models import ChatIdentity, Conversation
    from turfchat.chat.push import PushChannel

logger = logging.getLogger(__name__)


class ConversationDirectory:
    """Loads and manages conversations for the chat sidebar.

    When attached to a push channel, any ``receive_message`` event triggers a
    refresh so ``last_message`` and ordering stay current.
    """

    def __init__(
        self,
        api: ChatApi,
        identity: ChatIdentity,
        push: PushChannel | None = None,
    ) -> None:
        self._api = api
        self._identity = identity
        self._push = push
        self._conversations: list[Conversation] = []
        self._attached = False
        self.error: str | None = None

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    def get(self, conversation_id: str) -> Conversation | None:
        return next((c for c in self._conversations if c.id == conversation_id), None)

    async def refresh(self) -> bool:
        """Reload the list. On failure the list is emptied and False returned."""
        try:
            self._conversations = await self._api.list_conversations()
        except ChatApiError:
            logger.exception("Failed to load conversations")
            self._conversations = []
            self.error = "Failed to load conversations"
            return False
        self.error = None
        return True

    async def create(self, owner_id: str, player_id: str) -> Conversation | None:
        """Open (or fetch the existing) chat between an owner and a player."""
        try:
            conversation = await self._api.create_conversation(owner_id, player_id)
        except ChatApiError as exc:
            logger.exception("Failed to create conversation")
            # 403 means no confirmed booking between the two users
            if exc.status_code == 403:
                self.error = "Chat allowed only after confirmed booking"
            else:
                self.error = "Failed to create conversation"
            return None
        if self.get(conversation.id) is None:
            self._conversations.insert(0, conversation)
        self.error = None
        return conversation

    async def toggle_favorite(self, conversation_id: str) -> bool:
        try:
            await self._api.toggle_favorite(conversation_id)
        except ChatApiError:
            logger.exception("Failed to update favorite for %s", conversation_id)
            self.error = "Failed to update favorite"
            return False
        await self.refresh()
        return True

    async def delete(self, conversation_id: str) -> bool:
        try:
            await self._api.delete_conversation(conversation_id)
        except ChatApiError:
            logger.exception("Failed to delete conversation %s", conversation_id)
            self.error = "Failed to delete conversation"
            return False
        await self.refresh()
        return True

    # -- Push ------------------------------------------------------------------

    async def attach(self) -> None:
        """Join the user's room and refresh on incoming messages."""
        if self._push is None or self._attached:
            return
        self._push.on(RECEIVE_MESSAGE, self._on_receive_message)
        self._attached = True
        if self._identity.user_id:
            try:
                await self._push.emit(JOIN_USER, self._identity.user_id)
            except Exception:
                logger.warning("Could not join user room", exc_info=True)

    def detach(self) -> None:
        if self._push is None or not self._attached:
            return
        self._push.off(RECEIVE_MESSAGE, self._on_receive_message)
        self._attached = False

    async def _on_receive_message(self, payload: Any) -> None:
        logger.debug("New message pushed; refreshing conversations")
        await self.refresh()

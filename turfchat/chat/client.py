"""ChatClient: keeps one conversation's messages in sync via push and polling.

Two independent producers feed the same store:

* the push channel (``receive_message`` events on the conversation room),
  applied with append-if-absent semantics;
* a polling job on an APScheduler ``AsyncIOScheduler``, which re-fetches the
  full list and replaces the store.

Both go through :meth:`ChatClient._ingest`, so the end state converges no
matter how the two interleave. Every async result is tagged with the
activation epoch it started under and dropped if the active conversation
changed while it was in flight.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from turfchat.chat.api import ChatApiError
from turfchat.chat.models import Message
from turfchat.chat.push import JOIN_CHAT, RECEIVE_MESSAGE, TYPING
from turfchat.chat.store import MessageStore
from turfchat.config import settings

if TYPE_CHECKING:
    from collections.abc import Iterable

    from turfchat.chat.api import ChatApi
    from turfchat.chat.models import ChatIdentity
    from turfchat.chat.push import PushChannel

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to load messages"
SEND_ERROR = "Failed to send message"
NO_CONVERSATION_ERROR = "No conversation selected"
EMPTY_CONTENT_ERROR = "Message content is required"
NO_IDENTITY_ERROR = "User ID not found. Please log in again."


class ChatState(str, Enum):
    INACTIVE = "inactive"
    LOADING = "loading"
    ACTIVE = "active"


class ChatClient:
    """Synchronises the active conversation and sends messages into it.

    Args:
        api: REST client for the chat endpoints.
        identity: The signed-in user.
        push: Shared realtime channel, or None for polling-only delivery.
        scheduler: APScheduler instance to host the polling job. When omitted
            the client creates, starts and shuts down its own.
        poll_interval: Seconds between polling fetches (default from settings).
        typing_timeout: Seconds the typing flag stays up after the last
            ``typing`` event (default from settings).
        on_change: Called with the client after every observable change.
    """

    def __init__(
        self,
        api: ChatApi,
        identity: ChatIdentity,
        push: PushChannel | None = None,
        *,
        scheduler: AsyncIOScheduler | None = None,
        poll_interval: float | None = None,
        typing_timeout: float | None = None,
        on_change: Callable[[ChatClient], Any] | None = None,
    ) -> None:
        self._api = api
        self._identity = identity
        self._push = push
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or AsyncIOScheduler()
        # AsyncIOScheduler.shutdown() is deferred to the loop, so `running` lags
        self._scheduler_started = False
        self._poll_interval = poll_interval or settings.chat_poll_interval_seconds
        self._typing_timeout = typing_timeout or settings.chat_typing_timeout_seconds
        self._on_change = on_change
        self._poll_job_id = f"chat-poll:{uuid.uuid4().hex}"

        self._conversation_id: str | None = None
        self._store: MessageStore | None = None
        self._epoch = 0
        self._state = ChatState.INACTIVE
        self._loading = False
        self._sending = False
        self._error: str | None = None
        self._is_typing = False
        self._typing_handle: asyncio.TimerHandle | None = None
        self._push_attached = False

    # -- Observable state ------------------------------------------------------

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    @property
    def messages(self) -> tuple[Message, ...]:
        if self._store is None:
            return ()
        return self._store.messages

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def sending(self) -> bool:
        return self._sending

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_typing(self) -> bool:
        return self._is_typing

    @property
    def identity(self) -> ChatIdentity:
        return self._identity

    @property
    def poll_job_id(self) -> str:
        return self._poll_job_id

    # -- Lifecycle -------------------------------------------------------------

    async def activate(self, conversation_id: str | None) -> None:
        """Switch to *conversation_id* (None deactivates).

        Everything bound to the previous conversation is torn down before
        anything is set up for the new one.
        """
        if conversation_id == self._conversation_id:
            return
        self._teardown()
        if not conversation_id:
            self._notify()
            return

        self._epoch += 1
        epoch = self._epoch
        self._conversation_id = conversation_id
        self._store = MessageStore(conversation_id)
        self._state = ChatState.LOADING
        logger.info("Activating conversation %s", conversation_id)

        await self._load(conversation_id, epoch, silent=False)
        if epoch != self._epoch:
            logger.debug("Activation of %s superseded during initial load", conversation_id)
            return

        await self._attach_push(conversation_id)
        if epoch != self._epoch:
            return

        self._arm_polling(conversation_id, epoch)
        self._state = ChatState.ACTIVE
        self._notify()

    async def deactivate(self) -> None:
        await self.activate(None)

    async def close(self) -> None:
        """Deactivate and shut down the scheduler if this client owns it.

        An owned scheduler is replaced with a fresh one, so the client can be
        activated again after closing.
        """
        self._teardown()
        if self._owns_scheduler and self._scheduler_started:
            self._scheduler.shutdown(wait=False)
            self._scheduler = AsyncIOScheduler()
            self._scheduler_started = False
            logger.debug("Shut down polling scheduler")

    def _teardown(self) -> None:
        if self._conversation_id is None:
            return
        conversation_id = self._conversation_id
        # Bump first so in-flight loads for the old conversation are discarded
        self._epoch += 1
        self._detach_push()
        self._disarm_polling()
        self._cancel_typing_timer()
        self._is_typing = False
        self._conversation_id = None
        self._store = None
        self._state = ChatState.INACTIVE
        self._loading = False
        self._error = None
        logger.info("Deactivated conversation %s", conversation_id)

    # -- Fetching --------------------------------------------------------------

    async def refresh(self) -> bool:
        """Silently re-fetch the active conversation. Returns True on success."""
        if self._conversation_id is None:
            return False
        return await self._load(self._conversation_id, self._epoch, silent=True)

    async def _load(self, conversation_id: str, epoch: int, *, silent: bool) -> bool:
        """Fetch all messages and replace the store.

        Non-silent loads drive the ``loading`` flag. Failures set ``error``
        and return False; they never raise.
        """
        if not silent:
            self._loading = True
            self._notify()

        messages: list[Message] | None
        try:
            messages = await self._api.fetch_messages(conversation_id)
        except ChatApiError:
            messages = None
            if epoch == self._epoch:
                logger.exception("Failed to load messages for conversation %s", conversation_id)

        if epoch != self._epoch:
            logger.debug("Discarding stale fetch for conversation %s", conversation_id)
            return False

        if not silent:
            self._loading = False
        if messages is None:
            self._error = LOAD_ERROR
        else:
            self._ingest(conversation_id, messages, replace=True)
            self._error = None
        self._notify()
        return messages is not None

    def _ingest(self, conversation_id: str, messages: Iterable[Message], *, replace: bool) -> bool:
        """Single write path into the store for both fetch and push.

        Returns True if the store changed. Writes for any conversation other
        than the active one are ignored.
        """
        if self._store is None or conversation_id != self._conversation_id:
            return False
        if replace:
            self._store.replace_all(messages)
            return True
        appended = [self._store.append_if_absent(m) for m in messages]
        return any(appended)

    # -- Polling ---------------------------------------------------------------

    def _arm_polling(self, conversation_id: str, epoch: int) -> None:
        if self._owns_scheduler:
            if not self._scheduler_started:
                self._scheduler.start()
                self._scheduler_started = True
        elif not self._scheduler.running:
            self._scheduler.start()
        self._scheduler.add_job(
            self._poll,
            trigger=IntervalTrigger(seconds=self._poll_interval),
            id=self._poll_job_id,
            name=f"poll chat {conversation_id}",
            args=[conversation_id, epoch],
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.debug(
            "Polling conversation %s every %.1fs", conversation_id, self._poll_interval
        )

    def _disarm_polling(self) -> None:
        try:
            self._scheduler.remove_job(self._poll_job_id)
        except JobLookupError:
            logger.debug("Poll job %s not scheduled", self._poll_job_id)

    async def _poll(self, conversation_id: str, epoch: int) -> None:
        """Polling tick. Silent; a failure just waits for the next tick."""
        if epoch != self._epoch:
            return
        await self._load(conversation_id, epoch, silent=True)

    # -- Push channel ----------------------------------------------------------

    async def _attach_push(self, conversation_id: str) -> None:
        if self._push is None:
            return
        self._push.on(RECEIVE_MESSAGE, self._on_receive_message)
        self._push.on(TYPING, self._on_typing)
        self._push_attached = True
        try:
            await self._push.emit(JOIN_CHAT, conversation_id)
        except Exception:
            logger.warning(
                "Could not join chat room %s; relying on polling",
                conversation_id,
                exc_info=True,
            )

    def _detach_push(self) -> None:
        if self._push is None or not self._push_attached:
            return
        self._push.off(RECEIVE_MESSAGE, self._on_receive_message)
        self._push.off(TYPING, self._on_typing)
        self._push_attached = False

    def _on_receive_message(self, payload: Any) -> None:
        try:
            message = Message.from_payload(payload)
        except ValueError:
            logger.warning("Ignoring malformed receive_message payload")
            return
        if self._ingest(message.conversation_id, [message], replace=False):
            self._notify()
        else:
            logger.debug(
                "Ignored pushed message %s (chat %s, active %s)",
                message.id,
                message.conversation_id,
                self._conversation_id,
            )

    # -- Typing indicator ------------------------------------------------------

    def _on_typing(self, payload: Any) -> None:
        if not isinstance(payload, dict) or self._conversation_id is None:
            return
        if payload.get("chatId") != self._conversation_id:
            return
        if payload.get("userId") == self._identity.user_id:
            return
        # No "stopped typing" event exists; each signal re-arms the auto-clear
        self._cancel_typing_timer()
        self._is_typing = True
        loop = asyncio.get_running_loop()
        self._typing_handle = loop.call_later(self._typing_timeout, self._clear_typing)
        self._notify()

    def _clear_typing(self) -> None:
        self._typing_handle = None
        if self._is_typing:
            self._is_typing = False
            self._notify()

    def _cancel_typing_timer(self) -> None:
        if self._typing_handle is not None:
            self._typing_handle.cancel()
            self._typing_handle = None

    async def notify_typing(self) -> None:
        """Tell the other participant we are typing."""
        if self._push is None or self._conversation_id is None or not self._identity.user_id:
            return
        try:
            await self._push.emit(
                TYPING, {"chatId": self._conversation_id, "userId": self._identity.user_id}
            )
        except Exception:
            logger.warning("Failed to emit typing for %s", self._conversation_id, exc_info=True)

    # -- Sending ---------------------------------------------------------------

    async def send_message(self, content: str) -> bool:
        """Send *content* to the active conversation. Returns True on success.

        The store is reconciled with a silent re-fetch rather than by
        inserting the server's response. No automatic retry.
        """
        conversation_id = self._conversation_id
        if not conversation_id:
            return self._reject(NO_CONVERSATION_ERROR)
        if not content or not content.strip():
            return self._reject(EMPTY_CONTENT_ERROR)
        if not self._identity.user_id:
            return self._reject(NO_IDENTITY_ERROR)

        epoch = self._epoch
        self._sending = True
        self._notify()
        try:
            await self._api.send_message(conversation_id, content)
        except ChatApiError:
            logger.exception("Failed to send message to conversation %s", conversation_id)
            if epoch == self._epoch:
                self._error = SEND_ERROR
            return False
        finally:
            self._sending = False
            self._notify()

        logger.info("Sent message to conversation %s (%d chars)", conversation_id, len(content))
        await self._load(conversation_id, epoch, silent=True)
        return True

    def _reject(self, error: str) -> bool:
        logger.warning("Message not sent: %s", error)
        self._error = error
        self._notify()
        return False

    # -- Internal --------------------------------------------------------------

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self)
        except Exception:
            logger.exception("on_change callback failed")

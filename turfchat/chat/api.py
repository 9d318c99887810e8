"""ChatApi: httpx client for the TurfBook chat REST endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from turfchat.chat.models import Conversation, Message
from turfchat.config import settings

logger = logging.getLogger(__name__)


class ChatApiError(Exception):
    """A chat REST call failed or returned a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatApi:
    """Thin async wrapper over the ``/chat`` routes.

    A fresh ``httpx.AsyncClient`` is opened per request. Every failure is
    re-raised as :class:`ChatApiError`.

    Args:
        base_url: API root, e.g. ``http://localhost:8080/api``.
        token: Bearer token for the signed-in user.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._token = token if token is not None else settings.api_token
        self._timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        """Send one request and return the decoded JSON body (None when empty)."""
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers(),
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, json=json)
            resp.raise_for_status()
        except httpx.TimeoutException as exc:
            msg = f"{method} {path} timed out after {self._timeout}s"
            raise ChatApiError(msg) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            msg = f"{method} {path} returned {status}: {exc.response.text[:200]}"
            raise ChatApiError(msg, status_code=status) from exc
        except httpx.HTTPError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise ChatApiError(msg) from exc

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            msg = f"{method} {path} returned a non-JSON body"
            raise ChatApiError(msg, status_code=resp.status_code) from exc

    # -- Messages --------------------------------------------------------------

    async def fetch_messages(self, conversation_id: str) -> list[Message]:
        """GET ``/chat/{id}/messages``. Malformed rows are skipped."""
        data = await self._request("GET", f"/chat/{conversation_id}/messages")
        if not isinstance(data, list):
            return []
        messages = []
        for row in data:
            try:
                messages.append(Message.from_payload(row))
            except ValueError:
                logger.warning("Skipping malformed message row in %s", conversation_id)
        return messages

    async def send_message(self, conversation_id: str, content: str) -> dict[str, Any]:
        """POST ``/chat/{id}/message`` with ``{content}``. Returns the raw created row."""
        data = await self._request(
            "POST", f"/chat/{conversation_id}/message", json={"content": content}
        )
        return data if isinstance(data, dict) else {}

    # -- Conversations ---------------------------------------------------------

    async def list_conversations(self) -> list[Conversation]:
        data = await self._request("GET", "/chat/conversations")
        if not isinstance(data, list):
            return []
        conversations = []
        for row in data:
            try:
                conversations.append(Conversation.from_payload(row))
            except ValueError:
                logger.warning("Skipping malformed conversation row")
        return conversations

    async def create_conversation(self, owner_id: str, player_id: str) -> Conversation:
        """POST ``/chat/conversations``. The server returns the existing chat if there is one."""
        data = await self._request(
            "POST", "/chat/conversations", json={"owner_id": owner_id, "player_id": player_id}
        )
        try:
            return Conversation.from_payload(data)
        except ValueError as exc:
            msg = "POST /chat/conversations returned no conversation"
            raise ChatApiError(msg) from exc

    async def toggle_favorite(self, conversation_id: str) -> None:
        await self._request("POST", f"/chat/{conversation_id}/favorite")

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/chat/{conversation_id}")

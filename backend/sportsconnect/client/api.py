"""HTTP client for the messages API."""

import logging
from typing import Any

import httpx

from sportsconnect.client.records import ClientMessage, ConversationEntry
from sportsconnect.core.config import settings
from sportsconnect.core.errors import AuthorizationError, NotFoundError, ServerError, ValidationError

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {
    400: ValidationError,
    401: AuthorizationError,
    403: AuthorizationError,
    404: NotFoundError,
}


class MessagesAPI:
    """Messages API client using the signed-in user's bearer token.

    Transport failures and error responses are raised as the messaging error
    taxonomy, never as httpx exceptions.
    """

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        self._token = token
        self.base_url = base_url or settings.api_url
        self._transport = transport
        self._timeout = timeout or settings.request_timeout

    def _headers(self) -> dict[str, str]:
        if not self._token:
            raise AuthorizationError("Authentication required. Please log in to use messages.")
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                transport=self._transport,
                timeout=self._timeout,
            ) as client:
                resp = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} unreachable: {e!r}")
            raise ServerError("Server unreachable. Please try again later.")

        if resp.is_error:
            error_cls = _STATUS_ERRORS.get(resp.status_code, ServerError)
            logger.debug(f"{method} {path} -> {resp.status_code}")
            raise error_cls(_detail(resp))

        try:
            return resp.json()
        except ValueError:
            raise ServerError("Malformed server response")

    # --- Messages ---

    async def get_conversations(self) -> list[ConversationEntry]:
        data = await self._request("GET", "/api/messages/conversations/list")
        return [ConversationEntry.model_validate(item) for item in data]

    async def get_thread(self, user_id: int) -> list[ClientMessage]:
        data = await self._request("GET", f"/api/messages/{user_id}")
        return [ClientMessage.model_validate(item) for item in data]

    async def send_message(self, recipient: int, content: str, post: int) -> ClientMessage:
        data = await self._request(
            "POST",
            "/api/messages",
            json={"recipient": recipient, "content": content, "post": post},
        )
        return ClientMessage.model_validate(data)

    async def mark_read(self, message_id: int) -> ClientMessage:
        data = await self._request("PUT", f"/api/messages/{message_id}/read")
        return ClientMessage.model_validate(data)

    async def delete_conversation(self, user_id: int) -> str:
        data = await self._request("DELETE", f"/api/messages/{user_id}")
        return data.get("message", "")

    async def delete_message(self, message_id: int) -> str:
        data = await self._request("DELETE", f"/api/messages/single/{message_id}")
        return data.get("message", "")


def _detail(resp: httpx.Response) -> str | None:
    try:
        detail = resp.json().get("detail")
    except (ValueError, AttributeError):
        return None
    # FastAPI request validation errors arrive as a list
    return detail if isinstance(detail, str) else None

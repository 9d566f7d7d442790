"""HTTP adapter for the Itanavi group API.

Implements the core GroupApiPort on top of an httpx.AsyncClient. Requests
go to the same routes the web client uses, so the session cookie or bearer
token set on the client is all the auth we need.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from itanavi_chat.core.errors import ApiError, TransportError
from itanavi_chat.core.models import GroupDetail, Message

LOGGER = logging.getLogger(__name__)


def _extract_error_detail(response: httpx.Response) -> str:
    """Pull a human-readable detail string from an error response."""

    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        return str(payload.get("error") or payload.get("message") or payload)
    return str(payload)


class HttpGroupApi:
    """Thin httpx wrapper that satisfies the GroupApiPort contract."""

    def __init__(self, client: httpx.AsyncClient, viewer_id: Optional[str] = None) -> None:
        self._client = client
        self._viewer_id = viewer_id

    async def _request(self, method: str, path: str, json: Optional[dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 300:
            detail = _extract_error_detail(response)
            LOGGER.debug("%s %s -> %s %s", method, path, response.status_code, detail)
            raise ApiError(response.status_code, detail)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, "Response was not valid JSON") from exc

    async def fetch_group(self, group_id: str) -> GroupDetail:
        data = await self._request("GET", f"/api/groups/{group_id}")
        return GroupDetail.from_api(data, self._viewer_id)

    async def fetch_messages(self, group_id: str) -> list[Message]:
        data = await self._request("GET", f"/api/groups/{group_id}/messages")
        return [Message.from_api(item, group_id, self._viewer_id) for item in data or []]

    async def send_message(self, group_id: str, content: str, is_announcement: bool) -> Message:
        data = await self._request(
            "POST",
            f"/api/groups/{group_id}/messages",
            json={"content": content, "isAnnouncement": is_announcement},
        )
        return Message.from_api(data, group_id, self._viewer_id)

    async def mark_read(self, group_id: str, message_id: str) -> None:
        await self._request("POST", f"/api/groups/{group_id}/messages/{message_id}/read")

    async def mark_all_read(self, group_id: str) -> None:
        await self._request("POST", f"/api/groups/{group_id}/messages/read-all")

    async def fetch_unread_map(self) -> dict[str, bool]:
        data = await self._request("GET", "/api/groups/unread-count")
        if not isinstance(data, dict):
            return {}
        return {str(key): bool(value) for key, value in data.items()}

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str) -> bool:
        data = await self._request(
            "POST",
            f"/api/groups/{group_id}/messages/{message_id}/reactions",
            json={"emoji": emoji},
        )
        return bool((data or {}).get("added", False))

"""WebSocket adapter for the group real-time channel.

Implements the core RealtimeTransportPort with the ``websockets`` client.
The gateway identifies the user from the ``userId`` query parameter and
routes by the ``action`` field of each frame.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from itanavi_chat.core.errors import TransportError

LOGGER = logging.getLogger(__name__)


class WebSocketTransport:
    """One socket per joined group, opened and closed by the ConnectionManager."""

    def __init__(self, endpoint: str, user_id: str, open_timeout: float = 10.0) -> None:
        self._endpoint = endpoint
        self._user_id = user_id
        self._open_timeout = open_timeout
        self._connection: Any = None

    @property
    def url(self) -> str:
        separator = "&" if "?" in self._endpoint else "?"
        return f"{self._endpoint}{separator}{urlencode({'userId': self._user_id})}"

    async def open(self, group_id: str) -> None:
        if not self._endpoint:
            raise TransportError("WebSocket endpoint not configured")
        try:
            self._connection = await websockets.connect(self.url, open_timeout=self._open_timeout)
            await self._send({"action": "join-group", "groupId": group_id})
        except (OSError, TimeoutError, WebSocketException) as exc:
            self._connection = None
            raise TransportError(f"WebSocket connect failed: {exc}") from exc

    async def close(self, group_id: Optional[str]) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            if group_id:
                await connection.send(json.dumps({"action": "leave-group", "groupId": group_id}))
        except (OSError, WebSocketException) as exc:
            LOGGER.warning("Error leaving group %s: %s", group_id, exc)
        finally:
            await connection.close()

    async def messages(self) -> AsyncIterator[dict[str, Any]]:
        connection = self._connection
        if connection is None:
            return
        try:
            async for raw in connection:
                try:
                    payload = json.loads(raw)
                except (TypeError, ValueError):
                    LOGGER.warning("Dropping non-JSON frame from real-time channel")
                    continue
                if isinstance(payload, dict):
                    yield payload
        except ConnectionClosed as exc:
            raise TransportError(f"WebSocket closed: {exc}") from exc

    async def _send(self, payload: dict[str, Any]) -> None:
        await self._connection.send(json.dumps(payload))

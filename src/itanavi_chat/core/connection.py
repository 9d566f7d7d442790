"""Real-time channel scoped to the conversation currently on screen.

Only one group is joined at a time. Switching groups (or leaving the chat
view) tears the previous channel down before a new one is opened. Failing
to connect is never fatal: the session keeps working through HTTP fetches,
and ``connected`` only tells it whether pushes can be expected.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional

from itanavi_chat.core.config import ChatConfig
from itanavi_chat.core.errors import TransportError
from itanavi_chat.core.models import PushEvent, ViewerContext, parse_push_event
from itanavi_chat.core.ports import RealtimeTransportPort

LOGGER = logging.getLogger(__name__)

EventHandler = Callable[[PushEvent], Awaitable[None]]
ConnectedListener = Callable[[bool], None]


def reconnect_delay(attempt: int, config: ChatConfig) -> float:
    """Exponential backoff: base * 2**attempt, capped at the configured max."""

    return min(config.reconnect_base_delay * (2 ** attempt), config.reconnect_max_delay)


class ConnectionManager:
    def __init__(
        self,
        transport: RealtimeTransportPort,
        viewer: ViewerContext,
        on_event: EventHandler,
        config: Optional[ChatConfig] = None,
    ) -> None:
        self._transport = transport
        self._viewer = viewer
        self._on_event = on_event
        self._config = config or ChatConfig()
        self._group_id: Optional[str] = None
        self._connected = False
        self._reader: Optional[asyncio.Task[None]] = None
        self._listeners: list[ConnectedListener] = []

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def group_id(self) -> Optional[str]:
        return self._group_id

    def add_listener(self, listener: ConnectedListener) -> None:
        self._listeners.append(listener)

    async def set_conversation(self, group_id: Optional[str]) -> bool:
        """Point the channel at ``group_id`` (None leaves the chat view).

        Returns the resulting connected state.
        """

        if group_id == self._group_id and (self._connected or group_id is None):
            return self._connected

        await self._teardown()
        self._group_id = group_id
        self._viewer.active_conversation_id = group_id
        if group_id is None:
            return False
        return await self._connect(group_id)

    async def ensure_connected(self) -> bool:
        """Re-attempt after a failed connect, e.g. when the view re-activates."""

        if self._group_id is None or self._connected:
            return self._connected
        await self._teardown(keep_group=True)
        return await self._connect(self._group_id)

    async def close(self) -> None:
        await self._teardown()
        self._group_id = None

    async def _connect(self, group_id: str) -> bool:
        if not await self._open(group_id):
            return False
        self._reader = asyncio.get_running_loop().create_task(self._run(group_id))
        return True

    async def _open(self, group_id: str) -> bool:
        try:
            await self._transport.open(group_id)
        except TransportError as exc:
            LOGGER.warning("Real-time connect failed for group %s: %s", group_id, exc)
            self._set_connected(False)
            return False
        LOGGER.info("Real-time channel joined group %s", group_id)
        self._set_connected(True)
        return True

    async def _run(self, group_id: str) -> None:
        attempt = 0
        while True:
            if self._connected:
                try:
                    async for payload in self._transport.messages():
                        await self._dispatch(payload)
                except TransportError as exc:
                    LOGGER.warning("Real-time channel error for group %s: %s", group_id, exc)
                self._set_connected(False)
                LOGGER.info("Real-time channel closed for group %s", group_id)

            if self._group_id != group_id:
                return
            if attempt >= self._config.reconnect_attempts:
                LOGGER.error("Max reconnect attempts reached for group %s", group_id)
                return
            attempt += 1
            delay = reconnect_delay(attempt, self._config)
            LOGGER.info("Reconnecting in %.1fs (attempt %s)", delay, attempt)
            await asyncio.sleep(delay)
            if self._group_id != group_id:
                return
            if await self._open(group_id):
                attempt = 0

    async def _dispatch(self, payload: dict[str, Any]) -> None:
        event = parse_push_event(payload, self._viewer.user_id)
        if event is None:
            LOGGER.debug("Ignoring real-time payload: %s", payload.get("type"))
            return
        try:
            await self._on_event(event)
        except Exception:
            LOGGER.exception("Error while handling real-time event")

    async def _teardown(self, keep_group: bool = False) -> None:
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader

        previous = self._group_id
        if previous is not None:
            try:
                await self._transport.close(previous)
            except TransportError as exc:
                LOGGER.warning("Error leaving group %s: %s", previous, exc)
        self._set_connected(False)
        if not keep_group:
            self._group_id = None

    def _set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return
        self._connected = connected
        for listener in list(self._listeners):
            listener(connected)

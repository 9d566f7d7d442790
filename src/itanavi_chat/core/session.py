"""Group chat session orchestration.

One session lives as long as one group view is mounted:
1) open(): load the group, join the real-time channel, load messages
2) while the chat tab is active, pushes are merged as they arrive and a
   fetch poll runs only when the channel is down
3) while the chat tab is hidden, the unread poller takes over
4) close(): stale responses are discarded and every background task stops

User actions (send, reaction) raise to the caller so the UI can alert.
Background work logs failures and waits for the next natural trigger.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from itanavi_chat.core.composer import validate_emoji, validate_message
from itanavi_chat.core.config import ChatConfig
from itanavi_chat.core.connection import ConnectionManager
from itanavi_chat.core.errors import ItanaviError
from itanavi_chat.core.lifetime import StaleResult, ViewLifetime
from itanavi_chat.core.models import (
    GroupDetail,
    Message,
    NewMessageEvent,
    PushEvent,
    ReadUpdatedEvent,
    ViewerContext,
)
from itanavi_chat.core.ports import GroupApiPort, RealtimeTransportPort
from itanavi_chat.core.read_tracking import ReadTracker
from itanavi_chat.core.reconcile import MessageStore
from itanavi_chat.core.unread_poller import UnreadPoller

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class GroupChatSession:
    """Wires the store, read tracker, poller and channel for one group."""

    def __init__(
        self,
        api: GroupApiPort,
        transport: RealtimeTransportPort,
        viewer: ViewerContext,
        group_id: str,
        config: Optional[ChatConfig] = None,
    ) -> None:
        self._api = api
        self._config = config or ChatConfig()
        self.viewer = viewer
        self.group_id = group_id
        self.group: Optional[GroupDetail] = None
        self.store = MessageStore(group_id)
        self.read_tracker = ReadTracker(api, group_id, viewer)
        self.connection = ConnectionManager(transport, viewer, self.handle_event, self._config)
        self.unread_poller = UnreadPoller(
            api,
            group_id,
            self.read_tracker.on_status_fetched,
            interval=self._config.unread_poll_interval,
        )
        self._lifetime = ViewLifetime()
        self._poll_task: Optional[asyncio.Task[None]] = None

    @property
    def config(self) -> ChatConfig:
        return self._config

    @property
    def is_leader(self) -> bool:
        return bool(self.group and self.group.is_leader)

    @property
    def closed(self) -> bool:
        return self._lifetime.closed

    async def open(self) -> GroupDetail:
        """Load the group and its messages, then start the delivery paths.

        A failed group fetch raises; there is nothing to show without it.
        """

        self.group = await self._lifetime.guard(self._api.fetch_group(self.group_id))
        await self.connection.set_conversation(self.group_id)
        await self.refresh_messages()
        if self.viewer.is_chat_tab_active:
            await self._on_chat_visible()
        else:
            await self.unread_poller.poll_once()
            self.unread_poller.set_chat_tab_active(False)
        return self.group

    async def set_chat_tab_active(self, active: bool) -> None:
        if active == self.viewer.is_chat_tab_active:
            return
        self.viewer.is_chat_tab_active = active
        self.unread_poller.set_chat_tab_active(active)
        if active:
            await self.connection.ensure_connected()
            await self.refresh_messages()
            await self._on_chat_visible()
        else:
            self._stop_message_poll()

    async def handle_event(self, event: PushEvent) -> None:
        """Entry point for events from the real-time channel."""

        if isinstance(event, NewMessageEvent):
            result = self.store.apply_push(event)
            if event.group_id != self.group_id:
                return
            if self.viewer.is_chat_tab_active:
                if result.changed:
                    await self.read_tracker.on_sequence_changed(self.store.messages)
            else:
                self.read_tracker.on_push_message(event)
        elif isinstance(event, ReadUpdatedEvent):
            self.read_tracker.on_read_receipt(event)

    async def refresh_messages(self) -> bool:
        """Full refetch adopted as-is. Returns whether the sequence changed."""

        try:
            fetched = await self._lifetime.guard(self._api.fetch_messages(self.group_id))
        except StaleResult:
            return False
        except ItanaviError as exc:
            LOGGER.warning("Message fetch failed for group %s: %s", self.group_id, exc)
            return False
        result = self.store.replace(fetched)
        if result.changed and self.viewer.is_chat_tab_active:
            await self.read_tracker.on_sequence_changed(self.store.messages)
        return result.changed

    async def poll_messages(self) -> bool:
        """One fallback poll tick merged with merge-on-poll rules."""

        try:
            fetched = await self._lifetime.guard(self._api.fetch_messages(self.group_id))
        except StaleResult:
            return False
        except ItanaviError as exc:
            LOGGER.warning("Message poll failed for group %s: %s", self.group_id, exc)
            return False
        result = self.store.apply_poll(fetched)
        if result.changed and self.viewer.is_chat_tab_active:
            await self.read_tracker.on_sequence_changed(self.store.messages)
        return result.changed

    async def send_message(self, content: str, is_announcement: bool = False) -> Message:
        """Send a message for the viewer.

        Raises ValidationError for blank input and ApiError/TransportError
        when the server rejects or cannot be reached; the local sequence is
        left untouched in that case.
        """

        text = validate_message(content)
        if is_announcement and not self.is_leader:
            LOGGER.info("Announcement flag dropped: viewer is not the group leader")
            is_announcement = False

        connected_at_send = self.connection.connected
        message = await self._user_action(self._api.send_message(self.group_id, text, is_announcement))
        self.read_tracker.on_self_sent()
        if not connected_at_send:
            # No push echo is expected; later echoes are dropped by id.
            if self.store.append_local(message).changed:
                await self.read_tracker.on_sequence_changed(self.store.messages)
        return message

    async def toggle_reaction(self, message_id: str, emoji: str) -> bool:
        """Toggle the viewer's reaction; returns True when it was added."""

        value = validate_emoji(emoji)
        added = await self._user_action(self._api.toggle_reaction(self.group_id, message_id, value))
        await self.refresh_messages()
        return added

    async def mark_all_read(self) -> bool:
        return await self.read_tracker.mark_all_read()

    async def close(self) -> None:
        self._lifetime.invalidate(close=True)
        self.unread_poller.stop()
        self._stop_message_poll()
        await self.connection.close()
        self.viewer.is_chat_tab_active = False

    async def _on_chat_visible(self) -> None:
        await self.read_tracker.on_sequence_changed(self.store.messages)
        if self._poll_task is None:
            self._poll_task = asyncio.get_running_loop().create_task(self._message_poll_loop())

    async def _message_poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.message_poll_interval)
            if self.connection.connected:
                continue
            await self.poll_messages()

    def _stop_message_poll(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()

    async def _user_action(self, awaitable: Awaitable[T]) -> T:
        return await self._lifetime.guard(awaitable)

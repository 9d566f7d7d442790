"""Read tracking for the active conversation.

Per conversation, from the viewer's side:

    UNKNOWN --status fetch--> READ | UNREAD
    READ    --push while chat tab hidden--> UNREAD
    UNREAD  --mark-read ok | own read receipt | own send--> READ

There is no terminal state. The server is the source of truth; the local
flag is written optimistically and corrected by the next fetch or push.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Optional, Sequence

from itanavi_chat.core.errors import ItanaviError
from itanavi_chat.core.models import Message, NewMessageEvent, ReadUpdatedEvent, ViewerContext
from itanavi_chat.core.ports import GroupApiPort

LOGGER = logging.getLogger(__name__)


class UnreadState(enum.Enum):
    UNKNOWN = "unknown"
    READ = "read"
    UNREAD = "unread"


StateListener = Callable[[UnreadState], None]


class ReadTracker:
    """Keeps the unread flag for one conversation in line with the server."""

    def __init__(self, api: GroupApiPort, group_id: str, viewer: ViewerContext) -> None:
        self._api = api
        self._group_id = group_id
        self._viewer = viewer
        self._state = UnreadState.UNKNOWN
        self._last_acked_id: Optional[str] = None
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> UnreadState:
        return self._state

    @property
    def has_unread(self) -> bool:
        return self._state is UnreadState.UNREAD

    @property
    def last_acked_id(self) -> Optional[str]:
        return self._last_acked_id

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def on_status_fetched(self, has_unread: bool) -> None:
        self._set_state(UnreadState.UNREAD if has_unread else UnreadState.READ)

    def on_push_message(self, event: NewMessageEvent) -> None:
        """A message arrived by push; only matters when the chat is hidden."""

        if event.group_id != self._group_id:
            return
        if self._viewer.is_chat_tab_active:
            return
        if event.message.sender.id == self._viewer.user_id:
            return
        if self._state is UnreadState.READ:
            self._set_state(UnreadState.UNREAD)

    async def on_sequence_changed(self, messages: Sequence[Message]) -> bool:
        """Mark the newest message read. Returns True when the server agreed.

        Failures are logged only; the next sequence change tries again.
        """

        if not messages:
            return False
        newest = messages[-1]
        if newest.id == self._last_acked_id:
            self._set_state(UnreadState.READ)
            return True
        try:
            await self._api.mark_read(self._group_id, newest.id)
        except ItanaviError as exc:
            LOGGER.warning("Mark-read failed for %s/%s: %s", self._group_id, newest.id, exc)
            return False
        self._last_acked_id = newest.id
        self._set_state(UnreadState.READ)
        return True

    async def mark_all_read(self) -> bool:
        try:
            await self._api.mark_all_read(self._group_id)
        except ItanaviError as exc:
            LOGGER.warning("Mark-all-read failed for %s: %s", self._group_id, exc)
            return False
        self._set_state(UnreadState.READ)
        return True

    def on_read_receipt(self, event: ReadUpdatedEvent) -> None:
        # Our own write and its echo can arrive in either order.
        if event.group_id != self._group_id:
            return
        if event.user_id != self._viewer.user_id:
            return
        self._last_acked_id = event.message_id
        self._set_state(UnreadState.READ)

    def on_self_sent(self) -> None:
        self._set_state(UnreadState.READ)

    def _set_state(self, state: UnreadState) -> None:
        if state is self._state:
            return
        LOGGER.debug("Unread state for %s: %s -> %s", self._group_id, self._state.value, state.value)
        self._state = state
        for listener in list(self._listeners):
            listener(state)

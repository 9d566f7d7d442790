"""Ports (interfaces) used by the chat session.

Ports define the minimal contracts for the HTTP API, the real-time channel
and the scrollable view so that the core can be driven by fakes in tests.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Optional, Protocol

from itanavi_chat.core.models import GroupDetail, Message
from itanavi_chat.core.reconcile import AnchorState


class GroupApiPort(Protocol):
    """REST operations required by the chat session."""

    async def fetch_group(self, group_id: str) -> GroupDetail:
        ...

    async def fetch_messages(self, group_id: str) -> list[Message]:
        ...

    async def send_message(self, group_id: str, content: str, is_announcement: bool) -> Message:
        ...

    async def mark_read(self, group_id: str, message_id: str) -> None:
        ...

    async def mark_all_read(self, group_id: str) -> None:
        ...

    async def fetch_unread_map(self) -> dict[str, bool]:
        ...

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str) -> bool:
        ...


class RealtimeTransportPort(Protocol):
    """A real-time channel scoped to a single group conversation."""

    async def open(self, group_id: str) -> None:
        ...

    async def close(self, group_id: Optional[str]) -> None:
        ...

    def messages(self) -> AsyncIterator[dict[str, Any]]:
        ...


class ScrollAnchor(Protocol):
    """Scrollable message container measured around content changes."""

    def capture(self) -> AnchorState:
        ...

    def restore(self, state: AnchorState, height_delta: int) -> None:
        ...

    def scroll_to_bottom(self) -> None:
        ...

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Optional

from itanavi_chat.core.errors import ApiError, TransportError
from itanavi_chat.core.models import GroupDetail, Member, Message
from itanavi_chat.core.reconcile import AnchorState

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_message(
    message_id: str,
    *,
    sender_id: str = "u2",
    group_id: str = "g1",
    minute: int = 0,
    content: str = "hello",
) -> Message:
    return Message(
        id=message_id,
        group_id=group_id,
        content=content,
        sender=Member(id=sender_id, name=f"user-{sender_id}", email=f"{sender_id}@example.com"),
        created_at=BASE_TIME + timedelta(minutes=minute),
    )


def make_group(group_id: str = "g1", *, is_leader: bool = False) -> GroupDetail:
    leader = Member(id="leader", name="Leader", is_leader=True)
    return GroupDetail(
        id=group_id,
        name="痛車あわせ",
        group_code="ABC123",
        is_leader=is_leader,
        leader=leader,
        members=(leader, Member(id="u1", name="Viewer")),
        member_count=2,
    )


class FakeApi:
    def __init__(self, messages: Optional[list[Message]] = None) -> None:
        self.group = make_group()
        self.messages: list[Message] = list(messages or [])
        self.unread: dict[str, bool] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.fail_mark_read = False
        self.fail_send: Optional[Exception] = None
        self.fail_fetch = False
        self.fail_unread = False
        self.reaction_added = True
        self._next_id = 100

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def fetch_group(self, group_id: str) -> GroupDetail:
        self.calls.append(("fetch_group", group_id))
        return self.group

    async def fetch_messages(self, group_id: str) -> list[Message]:
        self.calls.append(("fetch_messages", group_id))
        if self.fail_fetch:
            raise TransportError("offline")
        return list(self.messages)

    async def send_message(self, group_id: str, content: str, is_announcement: bool) -> Message:
        self.calls.append(("send_message", group_id, content, is_announcement))
        if self.fail_send is not None:
            raise self.fail_send
        self._next_id += 1
        message = make_message(f"m{self._next_id}", sender_id="u1", group_id=group_id, minute=self._next_id, content=content)
        self.messages.append(message)
        return message

    async def mark_read(self, group_id: str, message_id: str) -> None:
        self.calls.append(("mark_read", group_id, message_id))
        if self.fail_mark_read:
            raise ApiError(500, "Failed to mark message as read")

    async def mark_all_read(self, group_id: str) -> None:
        self.calls.append(("mark_all_read", group_id))

    async def fetch_unread_map(self) -> dict[str, bool]:
        self.calls.append(("fetch_unread_map",))
        if self.fail_unread:
            raise TransportError("offline")
        return dict(self.unread)

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str) -> bool:
        self.calls.append(("toggle_reaction", group_id, message_id, emoji))
        return self.reaction_added


class FakeTransport:
    """In-memory channel; ``push`` feeds frames, ``drop`` ends the stream."""

    def __init__(self, fail_open: bool = False) -> None:
        self.fail_open = fail_open
        self.opened: list[str] = []
        self.closed: list[Optional[str]] = []
        self._queue: asyncio.Queue = asyncio.Queue()

    async def open(self, group_id: str) -> None:
        if self.fail_open:
            raise TransportError("connect refused")
        self.opened.append(group_id)
        self._queue = asyncio.Queue()

    async def close(self, group_id: Optional[str]) -> None:
        self.closed.append(group_id)

    def push(self, payload: dict[str, Any]) -> None:
        self._queue.put_nowait(payload)

    def drop(self) -> None:
        self._queue.put_nowait(None)

    async def messages(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            payload = await self._queue.get()
            if payload is None:
                return
            yield payload


class FakeAnchor:
    """Scroll container measured in pixels; content grows via ``grow``."""

    def __init__(self, scroll_top: int, scroll_height: int, client_height: int) -> None:
        self.scroll_top = scroll_top
        self.scroll_height = scroll_height
        self.client_height = client_height

    def capture(self) -> AnchorState:
        return AnchorState(self.scroll_top, self.scroll_height, self.client_height)

    def restore(self, state: AnchorState, height_delta: int) -> None:
        self.scroll_top = state.scroll_top + height_delta

    def scroll_to_bottom(self) -> None:
        self.scroll_top = self.scroll_height

    def grow(self, delta: int) -> None:
        self.scroll_height += delta


def message_payload(message_id: str, *, sender_id: str = "u2", content: str = "hi") -> dict[str, Any]:
    return {
        "id": message_id,
        "content": content,
        "isAnnouncement": False,
        "sender": {"id": sender_id, "name": "Name", "displayName": None, "email": "a@example.com"},
        "createdAt": "2025-01-01T12:00:00.000Z",
    }


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)

"""Core domain models.

These dataclasses are shared across the core and adapters so that nothing
outside the HTTP adapter has to know the API's camelCase JSON shape.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Optional, Union


def parse_timestamp(value: Any) -> datetime:
    """Parse an API timestamp into an aware datetime (UTC when unspecified)."""

    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value or "").strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Member:
    """A group member as seen by the viewing user."""

    id: str
    name: Optional[str] = None
    display_name: Optional[str] = None
    email: str = ""
    is_leader: bool = False
    is_viewer: bool = False

    @property
    def label(self) -> str:
        return self.display_name or self.name or self.email or self.id

    @classmethod
    def from_api(cls, payload: dict[str, Any], viewer_id: Optional[str] = None) -> "Member":
        member_id = str(payload.get("id", ""))
        return cls(
            id=member_id,
            name=payload.get("name"),
            display_name=payload.get("displayName"),
            email=payload.get("email") or "",
            is_leader=bool(payload.get("isLeader", False)),
            is_viewer=viewer_id is not None and member_id == viewer_id,
        )


@dataclass(frozen=True)
class ReactionUser:
    id: str
    name: Optional[str] = None
    display_name: Optional[str] = None


@dataclass(frozen=True)
class Reaction:
    """Aggregated reaction summary for one emoji on one message."""

    emoji: str
    count: int
    users: tuple[ReactionUser, ...] = ()

    def has_reacted(self, user_id: str) -> bool:
        return any(user.id == user_id for user in self.users)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Reaction":
        users = tuple(
            ReactionUser(
                id=str(user.get("id", "")),
                name=user.get("name"),
                display_name=user.get("displayName"),
            )
            for user in payload.get("users") or []
        )
        return cls(
            emoji=str(payload.get("emoji", "")),
            count=int(payload.get("count", len(users))),
            users=users,
        )


@dataclass(frozen=True)
class Message:
    """One chat message. Only the reaction summary changes after creation."""

    id: str
    group_id: str
    content: str
    sender: Member
    created_at: datetime
    is_announcement: bool = False
    reactions: tuple[Reaction, ...] = ()

    @classmethod
    def from_api(
        cls,
        payload: dict[str, Any],
        group_id: str,
        viewer_id: Optional[str] = None,
    ) -> "Message":
        return cls(
            id=str(payload["id"]),
            group_id=str(payload.get("groupId") or group_id),
            content=str(payload.get("content", "")),
            sender=Member.from_api(payload.get("sender") or {}, viewer_id),
            created_at=parse_timestamp(payload.get("createdAt")),
            is_announcement=bool(payload.get("isAnnouncement", False)),
            reactions=tuple(Reaction.from_api(item) for item in payload.get("reactions") or []),
        )


@dataclass(frozen=True)
class GroupDetail:
    """Group header data plus the member list."""

    id: str
    name: str
    group_code: str
    is_leader: bool
    leader: Member
    members: tuple[Member, ...] = ()
    theme: Optional[str] = None
    max_members: Optional[int] = None
    member_count: int = 0
    event_name: str = ""
    event_date: Optional[datetime] = None

    @classmethod
    def from_api(cls, payload: dict[str, Any], viewer_id: Optional[str] = None) -> "GroupDetail":
        leader = Member.from_api(payload.get("leader") or {}, viewer_id)
        leader = replace(leader, is_leader=True)
        members = tuple(
            replace(Member.from_api(item, viewer_id), is_leader=str(item.get("id")) == leader.id)
            for item in payload.get("members") or []
        )
        event = payload.get("event") or {}
        event_date = event.get("event_date")
        max_members = payload.get("maxMembers")
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            group_code=str(payload.get("groupCode", "")),
            is_leader=bool(payload.get("isLeader", False)),
            leader=leader,
            members=members,
            theme=payload.get("theme"),
            max_members=int(max_members) if max_members is not None else None,
            member_count=int(payload.get("memberCount", len(members))),
            event_name=str(event.get("name", "")),
            event_date=parse_timestamp(event_date) if event_date else None,
        )


@dataclass
class ViewerContext:
    """Who is looking, and at what.

    Passed explicitly into the session components instead of being looked up
    from a global session object.
    """

    user_id: str
    active_conversation_id: Optional[str] = None
    is_chat_tab_active: bool = False


@dataclass(frozen=True)
class NewMessageEvent:
    group_id: str
    message: Message


@dataclass(frozen=True)
class ReadUpdatedEvent:
    group_id: str
    user_id: str
    message_id: str


PushEvent = Union[NewMessageEvent, ReadUpdatedEvent]

_NEW_MESSAGE_TYPES = {"newMessage", "new-message"}
_READ_UPDATED_TYPES = {"readUpdated", "read-updated"}


def parse_push_event(payload: dict[str, Any], viewer_id: Optional[str] = None) -> Optional[PushEvent]:
    """Return a typed push event, or None for payloads we do not handle.

    Both camelCase and kebab-case type names are accepted since the socket
    broadcaster has used both.
    """

    event_type = payload.get("type")
    group_id = payload.get("groupId")
    if not group_id:
        return None
    group_id = str(group_id)

    if event_type in _NEW_MESSAGE_TYPES:
        message = payload.get("message")
        if not isinstance(message, dict) or "id" not in message:
            return None
        return NewMessageEvent(
            group_id=group_id,
            message=Message.from_api(message, group_id, viewer_id),
        )

    if event_type in _READ_UPDATED_TYPES:
        user_id = payload.get("userId")
        message_id = payload.get("messageId")
        if not user_id or not message_id:
            return None
        return ReadUpdatedEvent(group_id=group_id, user_id=str(user_id), message_id=str(message_id))

    return None


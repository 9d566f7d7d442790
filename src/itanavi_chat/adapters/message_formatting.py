"""Shared message formatting helpers.

Keeping formatting here keeps the CLI output and the Textual message list
consistent with each other.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from rich.text import Text

from itanavi_chat.core.models import GroupDetail, Member, Message, Reaction

ANNOUNCEMENT_COLOR = "#059669"
UNNAMED_MEMBER = "名前未設定"


def sender_label(member: Member) -> str:
    """Display name, then account name, then email."""

    return member.display_name or member.name or member.email or UNNAMED_MEMBER


def format_timestamp(value: datetime, with_time: bool = True) -> str:
    local = value.astimezone()
    if with_time:
        return local.strftime("%Y/%m/%d %H:%M")
    return local.strftime("%Y/%m/%d")


def format_reactions(reactions: Iterable[Reaction], viewer_id: Optional[str] = None) -> str:
    """Return a one-line summary like ``👍 2  🎉 1*`` (``*`` marks the viewer's)."""

    parts = []
    for reaction in reactions:
        if reaction.count <= 0:
            continue
        marker = "*" if viewer_id and reaction.has_reacted(viewer_id) else ""
        parts.append(f"{reaction.emoji} {reaction.count}{marker}")
    return "  ".join(parts)


def render_message(message: Message, viewer_id: Optional[str] = None) -> Text:
    """Build the rich Text block for one message bubble."""

    header = Text()
    header.append(sender_label(message.sender), style="bold")
    if message.is_announcement:
        header.append("  一斉連絡", style=f"bold {ANNOUNCEMENT_COLOR}")
    if viewer_id and message.sender.id == viewer_id:
        header.append("（あなた）", style="dim")
    header.append(f"  {format_timestamp(message.created_at)}", style="dim")

    body = Text(message.content)
    lines = [header, body]
    summary = format_reactions(message.reactions, viewer_id)
    if summary:
        lines.append(Text(summary, style="dim"))
    return Text("\n").join(lines)


def format_member_line(member: Member) -> str:
    label = member.display_name or member.name or UNNAMED_MEMBER
    if member.is_leader:
        return f"{label}  [オーナー]"
    return label


def format_member_count(group: GroupDetail) -> str:
    if group.max_members:
        return f"メンバー: {group.member_count} / {group.max_members}人"
    return f"メンバー: {group.member_count}"


def format_event_line(group: GroupDetail) -> str:
    if group.event_date is None:
        return group.event_name
    return f"{group.event_name} / {format_timestamp(group.event_date, with_time=False)}"

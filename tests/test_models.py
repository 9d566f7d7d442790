from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fakes import message_payload

from itanavi_chat.core.models import (
    GroupDetail,
    Member,
    Message,
    NewMessageEvent,
    ReadUpdatedEvent,
    parse_push_event,
    parse_timestamp,
)


def test_parse_timestamp_accepts_trailing_z() -> None:
    parsed = parse_timestamp("2025-03-01T09:30:00.000Z")
    assert parsed == datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_naive_timestamp_is_treated_as_utc() -> None:
    assert parse_timestamp("2025-03-01T09:30:00").tzinfo == timezone.utc


def test_member_label_falls_back_in_order() -> None:
    assert Member(id="u1", name="name", display_name="disp", email="e@x").label == "disp"
    assert Member(id="u1", name="name", email="e@x").label == "name"
    assert Member(id="u1", email="e@x").label == "e@x"
    assert Member(id="u1").label == "u1"


def test_message_from_api_marks_viewer_and_reactions() -> None:
    payload = message_payload("m1", sender_id="u1")
    payload["reactions"] = [{"emoji": "👍", "count": 2, "users": [{"id": "u1"}, {"id": "u2"}]}]

    message = Message.from_api(payload, "g1", viewer_id="u1")

    assert message.group_id == "g1"
    assert message.sender.is_viewer
    assert message.reactions[0].count == 2
    assert message.reactions[0].has_reacted("u1")


def test_group_from_api_flags_leader_in_member_list() -> None:
    payload = {
        "id": "g1",
        "name": "痛車あわせ",
        "groupCode": "ABC123",
        "isLeader": False,
        "leader": {"id": "lead", "name": "Leader"},
        "members": [{"id": "lead", "name": "Leader"}, {"id": "u1", "name": "Viewer"}],
        "maxMembers": 10,
        "event": {"name": "痛車天国", "event_date": "2025-05-05T00:00:00Z"},
    }

    group = GroupDetail.from_api(payload, viewer_id="u1")

    assert [m.is_leader for m in group.members] == [True, False]
    assert group.members[1].is_viewer
    assert group.member_count == 2
    assert group.max_members == 10
    assert group.event_name == "痛車天国"
    assert group.event_date is not None


@pytest.mark.parametrize("event_type", ["newMessage", "new-message"])
def test_new_message_push_accepts_both_spellings(event_type: str) -> None:
    event = parse_push_event({"type": event_type, "groupId": "g1", "message": message_payload("m1")})

    assert isinstance(event, NewMessageEvent)
    assert event.group_id == "g1"
    assert event.message.group_id == "g1"


@pytest.mark.parametrize("event_type", ["readUpdated", "read-updated"])
def test_read_updated_push_accepts_both_spellings(event_type: str) -> None:
    event = parse_push_event({"type": event_type, "groupId": "g1", "userId": "u1", "messageId": "m1"})

    assert event == ReadUpdatedEvent(group_id="g1", user_id="u1", message_id="m1")


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "typing", "groupId": "g1"},
        {"type": "newMessage", "message": message_payload("m1")},
        {"type": "newMessage", "groupId": "g1", "message": {"content": "no id"}},
        {"type": "readUpdated", "groupId": "g1", "userId": "u1"},
    ],
)
def test_unknown_or_incomplete_push_is_ignored(payload) -> None:
    assert parse_push_event(payload) is None

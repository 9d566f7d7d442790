from __future__ import annotations

import asyncio

from fakes import FakeApi, make_message

from itanavi_chat.core.models import NewMessageEvent, ReadUpdatedEvent, ViewerContext
from itanavi_chat.core.read_tracking import ReadTracker, UnreadState


def _tracker(api: FakeApi, *, tab_active: bool = False) -> ReadTracker:
    viewer = ViewerContext(user_id="u1", active_conversation_id="g1", is_chat_tab_active=tab_active)
    return ReadTracker(api, "g1", viewer)


def test_initial_state_is_unknown_until_status_fetch() -> None:
    tracker = _tracker(FakeApi())
    assert tracker.state is UnreadState.UNKNOWN
    assert not tracker.has_unread

    tracker.on_status_fetched(True)

    assert tracker.state is UnreadState.UNREAD


def test_sequence_change_marks_newest_read() -> None:
    api = FakeApi()
    tracker = _tracker(api, tab_active=True)
    tracker.on_status_fetched(True)
    messages = [make_message("m1"), make_message("m2", minute=1)]

    ok = asyncio.run(tracker.on_sequence_changed(messages))

    assert ok
    assert ("mark_read", "g1", "m2") in api.calls
    assert tracker.state is UnreadState.READ


def test_same_newest_message_is_not_marked_twice() -> None:
    api = FakeApi()
    tracker = _tracker(api, tab_active=True)
    messages = [make_message("m1")]

    asyncio.run(tracker.on_sequence_changed(messages))
    asyncio.run(tracker.on_sequence_changed(messages))

    assert api.count("mark_read") == 1


def test_empty_sequence_sends_nothing() -> None:
    api = FakeApi()
    tracker = _tracker(api, tab_active=True)

    assert not asyncio.run(tracker.on_sequence_changed([]))
    assert api.count("mark_read") == 0


def test_mark_read_failure_keeps_unread_and_retries_next_change() -> None:
    api = FakeApi()
    api.fail_mark_read = True
    tracker = _tracker(api, tab_active=True)
    tracker.on_status_fetched(True)

    assert not asyncio.run(tracker.on_sequence_changed([make_message("m1")]))
    assert tracker.state is UnreadState.UNREAD

    api.fail_mark_read = False
    assert asyncio.run(tracker.on_sequence_changed([make_message("m1")]))
    assert tracker.state is UnreadState.READ
    assert api.count("mark_read") == 2


def test_push_while_chat_hidden_flips_read_to_unread() -> None:
    tracker = _tracker(FakeApi(), tab_active=False)
    tracker.on_status_fetched(False)

    tracker.on_push_message(NewMessageEvent(group_id="g1", message=make_message("m3")))

    assert tracker.state is UnreadState.UNREAD


def test_push_ignored_when_chat_visible_or_self_sent() -> None:
    visible = _tracker(FakeApi(), tab_active=True)
    visible.on_status_fetched(False)
    visible.on_push_message(NewMessageEvent(group_id="g1", message=make_message("m3")))
    assert visible.state is UnreadState.READ

    hidden = _tracker(FakeApi(), tab_active=False)
    hidden.on_status_fetched(False)
    hidden.on_push_message(NewMessageEvent(group_id="g1", message=make_message("m4", sender_id="u1")))
    assert hidden.state is UnreadState.READ


def test_own_read_receipt_clears_unread() -> None:
    tracker = _tracker(FakeApi())
    tracker.on_status_fetched(True)

    tracker.on_read_receipt(ReadUpdatedEvent(group_id="g1", user_id="u2", message_id="m1"))
    assert tracker.state is UnreadState.UNREAD

    tracker.on_read_receipt(ReadUpdatedEvent(group_id="g2", user_id="u1", message_id="m1"))
    assert tracker.state is UnreadState.UNREAD

    tracker.on_read_receipt(ReadUpdatedEvent(group_id="g1", user_id="u1", message_id="m1"))
    assert tracker.state is UnreadState.READ
    assert tracker.last_acked_id == "m1"


def test_self_sent_clears_unread_from_any_state() -> None:
    for initial in (True, False, None):
        tracker = _tracker(FakeApi())
        if initial is not None:
            tracker.on_status_fetched(initial)
        tracker.on_self_sent()
        assert tracker.state is UnreadState.READ


def test_listeners_see_transitions_only() -> None:
    tracker = _tracker(FakeApi())
    seen: list[UnreadState] = []
    tracker.add_listener(seen.append)

    tracker.on_status_fetched(True)
    tracker.on_status_fetched(True)
    tracker.on_self_sent()

    assert seen == [UnreadState.UNREAD, UnreadState.READ]


def test_mark_all_read() -> None:
    api = FakeApi()
    tracker = _tracker(api)
    tracker.on_status_fetched(True)

    assert asyncio.run(tracker.mark_all_read())
    assert ("mark_all_read", "g1") in api.calls
    assert tracker.state is UnreadState.READ

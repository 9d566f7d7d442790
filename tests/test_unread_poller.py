from __future__ import annotations

import asyncio

from fakes import FakeApi

from itanavi_chat.core.unread_poller import UnreadPoller


def test_no_calls_while_chat_tab_active_and_resume_when_hidden() -> None:
    async def scenario() -> tuple[int, int, int]:
        api = FakeApi()
        api.unread = {"g1": True}
        results: list[bool] = []
        poller = UnreadPoller(api, "g1", results.append, interval=0.02)

        poller.set_chat_tab_active(True)
        await asyncio.sleep(0.08)
        while_active = api.count("fetch_unread_map")

        poller.set_chat_tab_active(False)
        await asyncio.sleep(0.05)
        after_hidden = api.count("fetch_unread_map")

        poller.set_chat_tab_active(True)
        stopped_at = api.count("fetch_unread_map")
        await asyncio.sleep(0.08)
        after_reactivated = api.count("fetch_unread_map") - stopped_at

        assert results and all(results)
        return while_active, after_hidden, after_reactivated

    while_active, after_hidden, after_reactivated = asyncio.run(scenario())

    assert while_active == 0
    assert after_hidden >= 1
    assert after_reactivated == 0


def test_first_fetch_waits_one_interval() -> None:
    async def scenario() -> tuple[int, int]:
        api = FakeApi()
        poller = UnreadPoller(api, "g1", lambda _: None, interval=0.05)
        poller.set_chat_tab_active(False)
        await asyncio.sleep(0.01)
        early = api.count("fetch_unread_map")
        await asyncio.sleep(0.07)
        later = api.count("fetch_unread_map")
        poller.stop()
        return early, later

    early, later = asyncio.run(scenario())

    assert early == 0
    assert later >= 1


def test_failed_fetch_is_skipped_and_next_tick_retries() -> None:
    async def scenario() -> list[bool]:
        api = FakeApi()
        api.fail_unread = True
        results: list[bool] = []
        poller = UnreadPoller(api, "g1", results.append, interval=0.02)

        assert await poller.poll_once() is None
        api.fail_unread = False
        api.unread = {"other": True}
        assert await poller.poll_once() is False
        return results

    assert asyncio.run(scenario()) == [False]


def test_starting_twice_keeps_a_single_task() -> None:
    async def scenario() -> bool:
        poller = UnreadPoller(FakeApi(), "g1", lambda _: None, interval=10)
        poller.set_chat_tab_active(False)
        first = poller._task
        poller.set_chat_tab_active(False)
        same = poller._task is first
        poller.stop()
        return same and not poller.running

    assert asyncio.run(scenario())

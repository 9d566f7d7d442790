from __future__ import annotations

import asyncio

from textual.app import App, ComposeResult
from textual.widgets import TextArea

from itanavi_chat.core.composer import MESSAGE_MAX_CHARS
from itanavi_chat.frontend.widgets import Composer


class _ComposerApp(App):
    def compose(self) -> ComposeResult:
        yield Composer(id="composer")


def test_typing_past_limit_leaves_exactly_the_limit() -> None:
    async def scenario() -> tuple[str, str]:
        app = _ComposerApp()
        async with app.run_test() as pilot:
            composer = app.query_one(Composer)
            area = app.query_one("#composer-input", TextArea)
            area.load_text("あ" * MESSAGE_MAX_CHARS)
            await pilot.pause()
            area.focus()
            area.move_cursor(area.document.end)
            await pilot.press("a")
            await pilot.pause()
            await pilot.pause()
            return composer.text, composer.counter_text

    text, counter = asyncio.run(scenario())

    assert len(text) == MESSAGE_MAX_CHARS
    assert text == "あ" * MESSAGE_MAX_CHARS
    assert counter == "1000 / 1000文字"


def test_counter_follows_input() -> None:
    async def scenario() -> str:
        app = _ComposerApp()
        async with app.run_test() as pilot:
            area = app.query_one("#composer-input", TextArea)
            area.focus()
            await pilot.press("h", "i")
            await pilot.pause()
            return app.query_one(Composer).counter_text

    assert asyncio.run(scenario()) == "2 / 1000文字"

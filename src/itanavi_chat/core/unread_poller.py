"""Background unread check while the chat tab is hidden.

Push covers the visible chat; this poller only runs when it is not in
view and stops the moment the chat tab becomes active again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from itanavi_chat.core.errors import ItanaviError
from itanavi_chat.core.ports import GroupApiPort

LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL = 30.0


class UnreadPoller:
    def __init__(
        self,
        api: GroupApiPort,
        group_id: str,
        on_result: Callable[[bool], None],
        interval: float = DEFAULT_INTERVAL,
    ) -> None:
        self._api = api
        self._group_id = group_id
        self._on_result = on_result
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_chat_tab_active(self, active: bool) -> None:
        if active:
            self.stop()
        elif not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def poll_once(self) -> Optional[bool]:
        """Fetch the unread map once; None when the fetch failed."""

        try:
            flags = await self._api.fetch_unread_map()
        except ItanaviError as exc:
            LOGGER.warning("Unread status fetch failed: %s", exc)
            return None
        has_unread = bool(flags.get(self._group_id, False))
        self._on_result(has_unread)
        return has_unread

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.poll_once()

"""View-lifetime tokens for discarding stale async results."""

from __future__ import annotations

from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class StaleResult(Exception):
    """The view that started a request went away before it finished."""


class ViewLifetime:
    """Generation counter tied to one mounted view.

    Every request awaited through ``guard`` remembers the generation it
    started in; if ``invalidate`` ran meanwhile the result is discarded.
    """

    def __init__(self) -> None:
        self._generation = 0
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    def invalidate(self, *, close: bool = False) -> None:
        self._generation += 1
        if close:
            self._closed = True

    def is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    async def guard(self, awaitable: Awaitable[T], generation: Optional[int] = None) -> T:
        started = self._generation if generation is None else generation
        result = await awaitable
        if not self.is_current(started):
            raise StaleResult()
        return result

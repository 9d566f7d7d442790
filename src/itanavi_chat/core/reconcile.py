"""Message reconciliation for one conversation.

Two delivery paths feed the local sequence:
1) Full refetch (initial load, poll fallback, explicit refresh)
2) Real-time push of a single new message

Both are merged by message id. The local sequence never holds a duplicate
id, and a merge that brings nothing new leaves the sequence object as is so
the view does not re-render or move the scroll position.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence

from itanavi_chat.core.models import Message, NewMessageEvent

if TYPE_CHECKING:
    from itanavi_chat.core.ports import ScrollAnchor

LOGGER = logging.getLogger(__name__)

DEFAULT_BOTTOM_THRESHOLD = 50


@dataclass(frozen=True)
class AnchorState:
    """Viewport measurement taken right before the sequence changes."""

    scroll_top: int
    scroll_height: int
    client_height: int


@dataclass(frozen=True)
class MergeResult:
    messages: list[Message]
    changed: bool
    added_ids: tuple[str, ...] = ()


def _dedupe(messages: Iterable[Message]) -> list[Message]:
    seen: set[str] = set()
    unique: list[Message] = []
    for message in messages:
        if message.id in seen:
            continue
        seen.add(message.id)
        unique.append(message)
    return unique


def merge_on_poll(local: list[Message], fetched: Sequence[Message]) -> MergeResult:
    """Merge a full server snapshot into the local sequence.

    An empty local sequence adopts the snapshot. Otherwise the snapshot only
    replaces local state when it carries at least one id we have not seen.
    """

    fetched_list = _dedupe(fetched)
    if not local:
        return MergeResult(
            messages=fetched_list,
            changed=bool(fetched_list),
            added_ids=tuple(message.id for message in fetched_list),
        )

    local_ids = {message.id for message in local}
    added = tuple(message.id for message in fetched_list if message.id not in local_ids)
    if not added:
        return MergeResult(messages=local, changed=False)

    # Replacement, not splice: the server order is authoritative here.
    return MergeResult(messages=fetched_list, changed=True, added_ids=added)


def merge_on_push(
    local: list[Message],
    event: NewMessageEvent,
    active_group_id: Optional[str],
) -> MergeResult:
    """Append one pushed message if it belongs here and is new."""

    if event.group_id != active_group_id:
        return MergeResult(messages=local, changed=False)

    message = event.message
    if any(existing.id == message.id for existing in local):
        return MergeResult(messages=local, changed=False)

    # Push is assumed to arrive in creation order; no re-sort.
    return MergeResult(messages=[*local, message], changed=True, added_ids=(message.id,))


def is_near_bottom(state: AnchorState, threshold: int = DEFAULT_BOTTOM_THRESHOLD) -> bool:
    distance = state.scroll_height - state.scroll_top - state.client_height
    return distance < threshold


def preserve_scroll(
    anchor: "ScrollAnchor",
    before: AnchorState,
    threshold: int = DEFAULT_BOTTOM_THRESHOLD,
) -> None:
    """Re-apply the viewport position once the new content has rendered.

    Call this after layout. A viewport that was near the bottom is pinned
    to the new bottom; any other viewport keeps its offset shifted by the
    height the new content added.
    """

    if is_near_bottom(before, threshold):
        anchor.scroll_to_bottom()
        return
    after = anchor.capture()
    anchor.restore(before, after.scroll_height - before.scroll_height)


ChangeListener = Callable[[list[Message], Optional[AnchorState]], None]


class MessageStore:
    """Ordered, id-unique message sequence for the active conversation.

    Listeners receive the new sequence plus the anchor captured before the
    change; they render and then call ``preserve_scroll``.
    """

    def __init__(self, group_id: str, anchor: Optional["ScrollAnchor"] = None) -> None:
        self.group_id = group_id
        self._anchor = anchor
        self._messages: list[Message] = []
        self._listeners: list[ChangeListener] = []

    def attach_anchor(self, anchor: Optional["ScrollAnchor"]) -> None:
        self._anchor = anchor

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def ids(self) -> set[str]:
        return {message.id for message in self._messages}

    def latest(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return any(message.id == message_id for message in self._messages)

    def replace(self, fetched: Sequence[Message]) -> MergeResult:
        """Adopt a snapshot unconditionally (initial load, explicit refresh)."""

        messages = _dedupe(fetched)
        known = self.ids()
        changed = messages != self._messages
        result = MergeResult(
            messages=messages,
            changed=changed,
            added_ids=tuple(message.id for message in messages if message.id not in known),
        )
        if changed:
            self._commit(result)
        return result

    def apply_poll(self, fetched: Sequence[Message]) -> MergeResult:
        result = merge_on_poll(self._messages, fetched)
        if result.changed:
            self._commit(result)
        return result

    def apply_push(self, event: NewMessageEvent) -> MergeResult:
        result = merge_on_push(self._messages, event, self.group_id)
        if result.changed:
            self._commit(result)
        else:
            LOGGER.debug("Push for %s ignored (group=%s)", event.message.id, event.group_id)
        return result

    def append_local(self, message: Message) -> MergeResult:
        """Optimistically append a message this client just sent."""

        return self.apply_push(NewMessageEvent(group_id=self.group_id, message=message))

    def _commit(self, result: MergeResult) -> None:
        before = self._anchor.capture() if self._anchor is not None else None
        self._messages = list(result.messages)
        for listener in list(self._listeners):
            listener(self.messages, before)

"""Core configuration dataclasses.

Config parsing stays outside the core; these dataclasses define the shape
the core expects so the app layer can build it from config.json.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChatConfig:
    """Timing and threshold settings for one chat session."""

    unread_poll_interval: float = 30.0
    message_poll_interval: float = 10.0
    scroll_bottom_threshold: int = 50
    reconnect_attempts: int = 5
    reconnect_base_delay: float = 1.0
    reconnect_max_delay: float = 30.0

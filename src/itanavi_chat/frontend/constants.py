"""Shared constants for the Textual UI."""

from __future__ import annotations

ITANAVI_GREEN = "#10B981"

INFO_TAB = "info"
MESSAGES_TAB = "messages"

# Rows are converted to pixel-like units so scroll thresholds match the web client.
CELL_HEIGHT_PX = 16

QUICK_REACTIONS = ("👍", "❤️", "😂", "🎉", "🙏", "👀")

"""Static configuration for the Itanavi chat client.

User-editable settings (API endpoints, poll timings, logging) live in a
single JSON file; secrets such as the session token come from ``.env``.
"""

import json
import os

from dotenv import load_dotenv

from itanavi_chat.core.config import ChatConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

load_dotenv()

# ITANAVI_CONFIG lets tests and multiple profiles point at another file.
CONFIG_PATH = os.getenv("ITANAVI_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# API endpoints. The env override wins so staging can be targeted without edits.
_api = _CONFIG.get("api", {})
API_BASE_URL = os.getenv("ITANAVI_API_BASE_URL") or _api.get("base_url", "http://localhost:3000")
WS_ENDPOINT = os.getenv("ITANAVI_WS_ENDPOINT") or _api.get("ws_endpoint", "")
API_TIMEOUT = float(_api.get("timeout", 10))

# Chat timings:
# - unread_poll_interval: seconds between unread checks while the chat tab is hidden
# - message_poll_interval: seconds between message fetches while the socket is down
# - scroll_bottom_threshold: pixels from the bottom that still count as "at bottom"
_chat = _CONFIG.get("chat", {})
CHAT = ChatConfig(
    unread_poll_interval=float(_chat.get("unread_poll_interval", 30)),
    message_poll_interval=float(_chat.get("message_poll_interval", 10)),
    scroll_bottom_threshold=int(_chat.get("scroll_bottom_threshold", 50)),
    reconnect_attempts=int(_chat.get("reconnect_attempts", 5)),
    reconnect_base_delay=float(_chat.get("reconnect_base_delay", 1)),
    reconnect_max_delay=float(_chat.get("reconnect_max_delay", 30)),
)

# Presence store used by the join/leave handlers.
_presence = _CONFIG.get("presence", {})
PRESENCE_DB_PATH = _presence.get("db_path", "presence.db")
if not os.path.isabs(PRESENCE_DB_PATH):
    PRESENCE_DB_PATH = os.path.join(PROJECT_ROOT, PRESENCE_DB_PATH)
PRESENCE_TTL_SECONDS = int(_presence.get("ttl_seconds", 3600))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})

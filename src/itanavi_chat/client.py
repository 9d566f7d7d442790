"""HTTP client and transport factories for the chat client.

Credentials come from the environment (via python-dotenv) so the session
token never lands in config.json.
"""

from __future__ import annotations

import logging
import os

import httpx
from dotenv import load_dotenv

from itanavi_chat import settings
from itanavi_chat.adapters.http_api import HttpGroupApi
from itanavi_chat.adapters.websocket_transport import WebSocketTransport

SESSION_COOKIE = "authjs.session-token"


def load_viewer_id() -> str:
    """Return the signed-in user's id, failing fast when it is missing."""

    load_dotenv()
    user_id = os.getenv("ITANAVI_USER_ID")
    if not user_id:
        raise RuntimeError("Missing ITANAVI_USER_ID in environment")
    return user_id


def build_http_client() -> httpx.AsyncClient:
    """Create an httpx client authenticated with the web session cookie."""

    load_dotenv()
    token = os.getenv("ITANAVI_SESSION_TOKEN")
    if not token:
        raise RuntimeError("Missing ITANAVI_SESSION_TOKEN in environment")

    logging.getLogger(__name__).info("Initializing API client for %s", settings.API_BASE_URL)

    cookie_name = os.getenv("ITANAVI_SESSION_COOKIE", SESSION_COOKIE)
    return httpx.AsyncClient(
        base_url=settings.API_BASE_URL,
        cookies={cookie_name: token},
        timeout=settings.API_TIMEOUT,
        headers={"Accept": "application/json"},
    )


def build_api(client: httpx.AsyncClient, viewer_id: str) -> HttpGroupApi:
    return HttpGroupApi(client, viewer_id)


def build_transport(viewer_id: str) -> WebSocketTransport:
    return WebSocketTransport(settings.WS_ENDPOINT, viewer_id, open_timeout=settings.API_TIMEOUT)

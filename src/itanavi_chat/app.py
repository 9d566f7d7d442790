"""Application entry point for the Itanavi chat client."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

from itanavi_chat import settings
from itanavi_chat.adapters.presence_store import SQLitePresenceStore
from itanavi_chat.client import build_api, build_http_client, load_viewer_id

NAME = "ITANAVI"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(console_allowed: bool = True) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    # The chat UI owns the terminal, so console logging is only for CLI commands.
    if console_allowed and config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/itanavi-chat.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _chat(group_id: str) -> None:
    _configure_logging(console_allowed=False)
    from itanavi_chat.frontend.app import GroupChatApp

    viewer_id = load_viewer_id()
    logging.getLogger(__name__).info("Opening chat for group %s", group_id)
    GroupChatApp(group_id=group_id, viewer_id=viewer_id).run()


async def _print_unread() -> None:
    viewer_id = load_viewer_id()
    async with build_http_client() as http:
        api = build_api(http, viewer_id)
        flags = await api.fetch_unread_map()
    if not flags:
        print("No groups with messages.")
        return
    for group_id, has_unread in sorted(flags.items()):
        marker = "unread" if has_unread else "read"
        print(f"{group_id} | {marker}")


def _unread() -> None:
    _print_banner()
    _configure_logging()
    asyncio.run(_print_unread())


def _presence_cleanup() -> None:
    _configure_logging()
    store = SQLitePresenceStore(settings.PRESENCE_DB_PATH, settings.PRESENCE_TTL_SECONDS)
    store.init_db()
    removed = store.cleanup_expired()
    logging.getLogger(__name__).info("Presence cleanup removed %s rows", removed)
    print(f"Removed {removed} expired presence rows.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="itanavi-chat")
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Open a group chat")
    chat_parser.add_argument("group_id", help="Group id to open")
    subparsers.add_parser("unread", help="Print unread flags for your groups")
    subparsers.add_parser("presence-cleanup", help="Delete expired presence rows")

    args = parser.parse_args(argv)
    if args.command == "chat":
        _chat(args.group_id)
        return
    if args.command == "unread":
        _unread()
        return
    if args.command == "presence-cleanup":
        _presence_cleanup()
        return
    parser.print_help()


if __name__ == "__main__":
    main()

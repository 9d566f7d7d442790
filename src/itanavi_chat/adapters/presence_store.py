"""SQLite presence store for the real-time join/leave handlers.

Tracks which socket connections are currently joined to which group so a
broadcaster can fan messages out. Rows expire after a TTL in case a leave
never arrives.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600

MembershipCheck = Callable[[str, str], bool]
HandlerResponse = tuple[int, dict[str, Any]]


class SQLitePresenceStore:
    """Thin SQLite wrapper keyed by (group_id, connection_id)."""

    def __init__(self, db_path: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self._db_path = db_path
        self._ttl = timedelta(seconds=ttl_seconds)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the group_rooms table if it does not exist.

        Fields:
        - group_id / connection_id: composite primary key
        - user_id: member behind the connection, when known
        - joined_at: ISO timestamp of the (latest) join
        - expires_at: ISO timestamp after which the row is stale
        """

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS group_rooms (
                    group_id TEXT NOT NULL,
                    connection_id TEXT NOT NULL,
                    user_id TEXT,
                    joined_at TIMESTAMP NOT NULL,
                    expires_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (group_id, connection_id)
                )
                """
            )

    def join(
        self,
        group_id: str,
        connection_id: str,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Upsert the (group, connection) row and push its expiry forward."""

        joined_at = now or datetime.now(timezone.utc)
        expires_at = joined_at + self._ttl
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO group_rooms (group_id, connection_id, user_id, joined_at, expires_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(group_id, connection_id) DO UPDATE SET
                    user_id = excluded.user_id,
                    joined_at = excluded.joined_at,
                    expires_at = excluded.expires_at
                """,
                (group_id, connection_id, user_id, joined_at.isoformat(), expires_at.isoformat()),
            )

    def leave(self, group_id: str, connection_id: str) -> bool:
        """Delete by composite key. Returns whether a row was removed."""

        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM group_rooms WHERE group_id = ? AND connection_id = ?",
                (group_id, connection_id),
            )
            return cur.rowcount > 0

    def list_connections(self, group_id: str, now: Optional[datetime] = None) -> list[str]:
        """Return live connection ids for a group."""

        current = (now or datetime.now(timezone.utc)).isoformat()
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT connection_id FROM group_rooms
                WHERE group_id = ? AND expires_at > ?
                ORDER BY joined_at
                """,
                (group_id, current),
            ).fetchall()
        return [row["connection_id"] for row in rows]

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        """Delete expired rows and return the number removed."""

        current = (now or datetime.now(timezone.utc)).isoformat()
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM group_rooms WHERE expires_at <= ?", (current,))
            return cur.rowcount


def _parse_body(body: Optional[str]) -> dict[str, Any]:
    if not body:
        return {}
    try:
        payload = json.loads(body)
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def handle_join(
    store: SQLitePresenceStore,
    body: Optional[str],
    connection_id: str,
    user_id: Optional[str] = None,
    is_member: Optional[MembershipCheck] = None,
) -> HandlerResponse:
    """join-group handler: 200 joined, 400 no groupId, 403 not a member, 500 storage error."""

    group_id = _parse_body(body).get("groupId")
    if not group_id:
        return 400, {"error": "Group ID required"}

    if is_member is not None and (not user_id or not is_member(str(group_id), user_id)):
        return 403, {"error": "Not a member of this group"}

    try:
        store.join(str(group_id), connection_id, user_id)
    except sqlite3.Error:
        LOGGER.exception("join-group failed for %s", group_id)
        return 500, {"error": "Internal server error"}

    LOGGER.info("User %s joined group:%s", user_id, group_id)
    return 200, {"message": "Joined group", "groupId": group_id}


def handle_leave(
    store: SQLitePresenceStore,
    body: Optional[str],
    connection_id: str,
) -> HandlerResponse:
    """leave-group handler: 200 left (idempotent), 400 no groupId, 500 storage error."""

    group_id = _parse_body(body).get("groupId")
    if not group_id:
        return 400, {"error": "Group ID required"}

    try:
        store.leave(str(group_id), connection_id)
    except sqlite3.Error:
        LOGGER.exception("leave-group failed for %s", group_id)
        return 500, {"error": "Internal server error"}

    LOGGER.info("Connection %s left group:%s", connection_id, group_id)
    return 200, {"message": "Left group", "groupId": group_id}

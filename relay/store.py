from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def insert_received_item_sync(
    conn: sqlite3.Connection,
    *,
    ap_slot: str,
    item_id: int,
    item_name: str | None = None,
    location_id: int | None = None,
    sender_slot: int | None = None,
    flags: int = 0,
) -> int:
    cur = conn.execute(
        """
        INSERT INTO received_items (ap_slot, item_id, item_name, location_id, sender_slot, flags, received_at_utc)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (str(ap_slot), int(item_id), item_name, location_id, sender_slot, int(flags or 0), _utc_now_iso()),
    )
    conn.commit()
    return int(cur.lastrowid)


def fetch_items_for_slot_sync(conn: sqlite3.Connection, ap_slot: str, limit: int = 20) -> list[dict[str, Any]]:
    cur = conn.execute(
        """
        SELECT id, ap_slot, item_id, item_name, location_id, sender_slot, flags, received_at_utc
        FROM received_items
        WHERE ap_slot = ? COLLATE NOCASE
        ORDER BY id DESC
        LIMIT ?
        """,
        (str(ap_slot), max(1, min(int(limit), 200))),
    )
    keys = ("id", "ap_slot", "item_id", "item_name", "location_id", "sender_slot", "flags", "received_at_utc")
    return [dict(zip(keys, row)) for row in cur.fetchall()]


def insert_relay_message_sync(
    conn: sqlite3.Connection,
    *,
    direction: str,
    category: str,
    body: str,
    title: str | None = None,
    mentions: list[str] | tuple[str, ...] = (),
) -> int:
    cur = conn.execute(
        """
        INSERT INTO relay_messages (direction, category, title, body, mentions_json, created_at_utc)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (direction, category, title, body, json.dumps(list(mentions)), _utc_now_iso()),
    )
    conn.commit()
    return int(cur.lastrowid)


def fetch_recent_relay_messages_sync(conn: sqlite3.Connection, limit: int = 10) -> list[dict[str, Any]]:
    cur = conn.execute(
        """
        SELECT id, direction, category, title, body, mentions_json, created_at_utc
        FROM relay_messages
        ORDER BY id DESC
        LIMIT ?
        """,
        (max(1, min(int(limit), 100)),),
    )
    out = []
    for row_id, direction, category, title, body, mentions_json, created_at in cur.fetchall():
        out.append(
            {
                "id": int(row_id),
                "direction": direction,
                "category": category,
                "title": title,
                "body": body,
                "mentions": json.loads(mentions_json or "[]"),
                "created_at_utc": created_at,
            }
        )
    return out

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Any


DEFAULT_LINK_ROLES = ("player",)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _normalize_slot(slot: str) -> str:
    return " ".join(str(slot or "").split())


def _row_to_link(row: tuple) -> dict[str, Any]:
    discord_id, ap_slot, roles_json, guild_id, linked_at, updated_at = row
    try:
        roles = json.loads(roles_json or "[]")
    except json.JSONDecodeError:
        roles = []
    return {
        "discord_id": str(discord_id),
        "ap_slot": str(ap_slot),
        "roles": roles if isinstance(roles, list) else [],
        "guild_id": str(guild_id) if guild_id else None,
        "linked_at_utc": linked_at,
        "updated_at_utc": updated_at,
    }


def upsert_user_link_sync(
    conn: sqlite3.Connection,
    discord_id: int | str,
    ap_slot: str,
    *,
    roles: list[str] | None = None,
    guild_id: int | str | None = None,
) -> dict[str, Any]:
    """Link a Discord user to a slot. ``roles=None`` keeps the stored roles (``player`` for a new link)."""
    slot = _normalize_slot(ap_slot)
    if not slot:
        raise ValueError("slot name is empty")
    now = _utc_now_iso()
    roles_json = json.dumps([str(r) for r in roles]) if roles is not None else None
    conn.execute(
        """
        INSERT INTO user_links (discord_id, ap_slot, roles_json, guild_id, linked_at_utc, updated_at_utc)
        VALUES (?, ?, COALESCE(?, ?), ?, ?, ?)
        ON CONFLICT(discord_id) DO UPDATE SET
            ap_slot = excluded.ap_slot,
            roles_json = COALESCE(?, user_links.roles_json),
            guild_id = COALESCE(excluded.guild_id, user_links.guild_id),
            updated_at_utc = excluded.updated_at_utc
        """,
        (
            str(discord_id),
            slot,
            roles_json,
            json.dumps(list(DEFAULT_LINK_ROLES)),
            str(guild_id) if guild_id is not None else None,
            now,
            now,
            roles_json,
        ),
    )
    conn.commit()
    link = fetch_user_link_sync(conn, discord_id)
    if link is None:
        raise RuntimeError(f"user link for {discord_id} missing after upsert")
    return link


def fetch_user_link_sync(conn: sqlite3.Connection, discord_id: int | str) -> dict[str, Any] | None:
    cur = conn.execute(
        """
        SELECT discord_id, ap_slot, roles_json, guild_id, linked_at_utc, updated_at_utc
        FROM user_links
        WHERE discord_id = ?
        LIMIT 1
        """,
        (str(discord_id),),
    )
    row = cur.fetchone()
    return _row_to_link(row) if row else None


def find_discord_ids_for_slot_sync(conn: sqlite3.Connection, ap_slot: str) -> list[str]:
    slot = _normalize_slot(ap_slot)
    if not slot:
        return []
    cur = conn.execute(
        """
        SELECT discord_id
        FROM user_links
        WHERE ap_slot = ? COLLATE NOCASE
        ORDER BY linked_at_utc ASC, discord_id ASC
        """,
        (slot,),
    )
    return [str(row[0]) for row in cur.fetchall()]


def delete_user_link_sync(conn: sqlite3.Connection, discord_id: int | str) -> bool:
    cur = conn.execute("DELETE FROM user_links WHERE discord_id = ?", (str(discord_id),))
    conn.commit()
    return cur.rowcount > 0


def list_user_links_sync(conn: sqlite3.Connection, limit: int = 100) -> list[dict[str, Any]]:
    cur = conn.execute(
        """
        SELECT discord_id, ap_slot, roles_json, guild_id, linked_at_utc, updated_at_utc
        FROM user_links
        ORDER BY ap_slot COLLATE NOCASE ASC
        LIMIT ?
        """,
        (max(1, min(int(limit), 1000)),),
    )
    return [_row_to_link(row) for row in cur.fetchall()]

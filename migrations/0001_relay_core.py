from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS user_links (
            discord_id TEXT PRIMARY KEY,
            ap_slot TEXT NOT NULL,
            roles_json TEXT NOT NULL DEFAULT '[]',
            guild_id TEXT,
            linked_at_utc TEXT NOT NULL,
            updated_at_utc TEXT NOT NULL
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_user_links_slot_nocase ON user_links(ap_slot COLLATE NOCASE)")
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS guild_configs (
            guild_id TEXT PRIMARY KEY,
            category_id TEXT,
            chat_channel_id TEXT,
            trade_channel_id TEXT,
            hint_channel_id TEXT,
            log_channel_id TEXT,
            mod_role_id TEXT,
            player_role_id TEXT,
            ap_host TEXT,
            configured_by TEXT,
            created_at_utc TEXT NOT NULL,
            updated_at_utc TEXT NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS received_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ap_slot TEXT NOT NULL,
            item_id INTEGER NOT NULL,
            item_name TEXT,
            location_id INTEGER,
            sender_slot INTEGER,
            flags INTEGER DEFAULT 0,
            received_at_utc TEXT NOT NULL
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_received_items_slot ON received_items(ap_slot COLLATE NOCASE, id)")
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS relay_messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            direction TEXT NOT NULL,
            category TEXT NOT NULL,
            title TEXT,
            body TEXT NOT NULL,
            mentions_json TEXT NOT NULL DEFAULT '[]',
            created_at_utc TEXT NOT NULL
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_relay_messages_created ON relay_messages(created_at_utc)")
    conn.commit()

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any

from relay.models import ChannelCategory

GUILD_CONFIG_COLUMNS = (
    "guild_id",
    "category_id",
    "chat_channel_id",
    "trade_channel_id",
    "hint_channel_id",
    "log_channel_id",
    "mod_role_id",
    "player_role_id",
    "ap_host",
    "configured_by",
    "created_at_utc",
    "updated_at_utc",
)

CATEGORY_COLUMNS: dict[ChannelCategory, str] = {
    ChannelCategory.CHAT: "chat_channel_id",
    ChannelCategory.TRADE: "trade_channel_id",
    ChannelCategory.HINT: "hint_channel_id",
    ChannelCategory.LOG: "log_channel_id",
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _id_or_none(value: Any) -> str | None:
    if value in (None, "", 0):
        return None
    return str(value)


def upsert_guild_config_sync(conn: sqlite3.Connection, guild_id: int | str, config: dict[str, Any]) -> dict[str, Any]:
    now = _utc_now_iso()
    values = {
        "guild_id": str(guild_id),
        "category_id": _id_or_none(config.get("category_id")),
        "chat_channel_id": _id_or_none(config.get("chat_channel_id")),
        "trade_channel_id": _id_or_none(config.get("trade_channel_id")),
        "hint_channel_id": _id_or_none(config.get("hint_channel_id")),
        "log_channel_id": _id_or_none(config.get("log_channel_id")),
        "mod_role_id": _id_or_none(config.get("mod_role_id")),
        "player_role_id": _id_or_none(config.get("player_role_id")),
        "ap_host": (str(config.get("ap_host") or "").strip() or None),
        "configured_by": _id_or_none(config.get("configured_by")),
        "created_at_utc": now,
        "updated_at_utc": now,
    }
    conn.execute(
        f"""
        INSERT INTO guild_configs ({", ".join(GUILD_CONFIG_COLUMNS)})
        VALUES ({", ".join("?" for _ in GUILD_CONFIG_COLUMNS)})
        ON CONFLICT(guild_id) DO UPDATE SET
            category_id = excluded.category_id,
            chat_channel_id = excluded.chat_channel_id,
            trade_channel_id = excluded.trade_channel_id,
            hint_channel_id = excluded.hint_channel_id,
            log_channel_id = excluded.log_channel_id,
            mod_role_id = excluded.mod_role_id,
            player_role_id = excluded.player_role_id,
            ap_host = excluded.ap_host,
            configured_by = excluded.configured_by,
            updated_at_utc = excluded.updated_at_utc
        """,
        tuple(values[c] for c in GUILD_CONFIG_COLUMNS),
    )
    conn.commit()
    saved = fetch_guild_config_sync(conn, guild_id)
    if saved is None:
        raise RuntimeError(f"guild config for {guild_id} missing after upsert")
    return saved


def fetch_guild_config_sync(conn: sqlite3.Connection, guild_id: int | str) -> dict[str, Any] | None:
    cur = conn.execute(
        f"SELECT {', '.join(GUILD_CONFIG_COLUMNS)} FROM guild_configs WHERE guild_id = ? LIMIT 1",
        (str(guild_id),),
    )
    row = cur.fetchone()
    return dict(zip(GUILD_CONFIG_COLUMNS, row)) if row else None


def list_guild_configs_sync(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    cur = conn.execute(
        f"SELECT {', '.join(GUILD_CONFIG_COLUMNS)} FROM guild_configs ORDER BY updated_at_utc DESC"
    )
    return [dict(zip(GUILD_CONFIG_COLUMNS, row)) for row in cur.fetchall()]


def channel_map_from_config(config: dict[str, Any] | None) -> dict[ChannelCategory, int]:
    out: dict[ChannelCategory, int] = {}
    if not config:
        return out
    for category, column in CATEGORY_COLUMNS.items():
        raw = config.get(column)
        try:
            channel_id = int(raw) if raw else 0
        except (TypeError, ValueError):
            continue
        if channel_id > 0:
            out[category] = channel_id
    return out

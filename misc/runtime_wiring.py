from __future__ import annotations

import asyncio
from typing import Any

from guilds.store import channel_map_from_config
from guilds.store import list_guild_configs_sync
from jobs.sweeper import setup_session_sweep_loop
from links.store import delete_user_link_sync
from links.store import fetch_user_link_sync
from links.store import find_discord_ids_for_slot_sync
from links.store import list_user_links_sync
from links.store import upsert_user_link_sync
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_relay import register as register_relay
from misc.discord_gates import user_is_moderator
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps
from misc.welcome_panel import build_welcome_panel
from relay.store import fetch_items_for_slot_sync
from relay.store import fetch_recent_relay_messages_sync


def apply_guild_config(
    config: dict[str, Any],
    *,
    dispatcher,
    relay,
    mod_role_ids: set[int],
) -> bool:
    """Fold a saved guild config into the live runtime. Returns True if the game host changed."""
    dispatcher.update_channels(channel_map_from_config(config))
    if config.get("mod_role_id"):
        mod_role_ids.add(int(config["mod_role_id"]))
    host = (config.get("ap_host") or "").strip()
    if host and host != relay.host:
        relay.set_host(host)
        return True
    return False


def wire_bot_runtime(
    bot,
    *,
    db_lock,
    db_conn,
    relay,
    wizard,
    dispatcher,
    signup_queue,
    sessions,
    sweep_interval_seconds: float,
    user_is_owner,
    send_chunked,
    list_schema_migrations_sync,
    host_from_env: bool,
) -> None:
    mod_role_ids: set[int] = set()

    def user_is_relay_mod(member) -> bool:
        return user_is_owner(member) or user_is_moderator(member, mod_role_ids)

    async def load_guild_configs() -> None:
        async with db_lock:
            configs = await asyncio.to_thread(list_guild_configs_sync, db_conn)
        # oldest first so the most recently configured guild wins
        for config in reversed(configs):
            if host_from_env:
                config = {**config, "ap_host": None}
            apply_guild_config(config, dispatcher=dispatcher, relay=relay, mod_role_ids=mod_role_ids)
        print(f"[Relay] loaded {len(configs)} guild config(s); channels={len(dispatcher.channel_map)}")

    async def on_configured(guild_id: int, config: dict[str, Any]) -> None:
        if host_from_env:
            config = {**config, "ap_host": None}
        host_changed = apply_guild_config(config, dispatcher=dispatcher, relay=relay, mod_role_ids=mod_role_ids)
        print(f"[Relay] guild={guild_id} config applied; host_changed={host_changed}")
        if host_changed or not relay.connected:
            await relay.reconnect()

    async def sweep_loop() -> None:
        return await setup_session_sweep_loop(sessions=sessions, interval_seconds=sweep_interval_seconds)

    async def lookup_linked_slot(discord_id: int) -> str | None:
        async with db_lock:
            link = await asyncio.to_thread(fetch_user_link_sync, db_conn, discord_id)
        return link["ap_slot"] if link else None

    def welcome_panel_factory():
        return build_welcome_panel(signup_queue=signup_queue, relay=relay, lookup_slot=lookup_linked_slot)

    wizard.on_configured = on_configured

    command_deps = CommandDeps(
        db_lock=db_lock,
        db_conn=db_conn,
        send_chunked=send_chunked,
        relay=relay,
        wizard=wizard,
        signup_queue=signup_queue,
        welcome_panel_factory=welcome_panel_factory,
        upsert_user_link_sync=upsert_user_link_sync,
        fetch_user_link_sync=fetch_user_link_sync,
        find_discord_ids_for_slot_sync=find_discord_ids_for_slot_sync,
        delete_user_link_sync=delete_user_link_sync,
        list_user_links_sync=list_user_links_sync,
        fetch_items_for_slot_sync=fetch_items_for_slot_sync,
        fetch_recent_relay_messages_sync=fetch_recent_relay_messages_sync,
        list_schema_migrations_sync=list_schema_migrations_sync,
    )
    command_gates = CommandGates(
        user_is_owner=user_is_owner,
        user_is_relay_mod=user_is_relay_mod,
    )

    register_relay(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            relay=relay,
            wizard=wizard,
            dispatcher=dispatcher,
        ),
        boot=RuntimeBootDeps(
            load_guild_configs_func=load_guild_configs,
            sweep_loop_func=sweep_loop,
            welcome_panel_factory=welcome_panel_factory,
        ),
    )

from __future__ import annotations

import asyncio

import discord
from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.welcome_panel import build_welcome_embed

NO_PINGS = discord.AllowedMentions.none()


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.command(name="ping")
    async def cmd_ping(ctx: commands.Context):
        await ctx.send(f"Pong! ({round(bot.latency * 1000)}ms)")

    @bot.command(name="link")
    async def cmd_link(ctx: commands.Context, *, slot: str = ""):
        slot = " ".join(slot.split())
        if not slot:
            await ctx.send("Usage: `!link <slot name>`")
            return
        guild_id = ctx.guild.id if ctx.guild else None
        roles = ["player"]
        if gates.user_is_relay_mod(ctx.author):
            roles.append("mod")
        async with deps.db_lock:
            link = await asyncio.to_thread(
                deps.upsert_user_link_sync, deps.db_conn, ctx.author.id, slot, roles=roles, guild_id=guild_id
            )
        print(f"[Links] user={ctx.author.id} linked to slot={link['ap_slot']} roles={link['roles']}")
        await ctx.reply(f"Linked you to slot **{link['ap_slot']}**.", mention_author=False)

    @bot.command(name="unlink")
    async def cmd_unlink(ctx: commands.Context):
        async with deps.db_lock:
            removed = await asyncio.to_thread(deps.delete_user_link_sync, deps.db_conn, ctx.author.id)
        if not removed:
            await ctx.reply("You have no linked slot.", mention_author=False)
            return
        print(f"[Links] user={ctx.author.id} unlinked")
        await ctx.reply("Slot link removed.", mention_author=False)

    @bot.command(name="links")
    async def cmd_links(ctx: commands.Context, limit: int = 50):
        if not (gates.user_is_owner(ctx.author) or gates.user_is_relay_mod(ctx.author)):
            await ctx.send("This command is for relay moderators.")
            return
        async with deps.db_lock:
            rows = await asyncio.to_thread(deps.list_user_links_sync, deps.db_conn, max(1, min(int(limit or 50), 200)))
        if not rows:
            await ctx.send("No slot links yet.")
            return
        lines = [f"Slot links ({len(rows)}):"]
        for row in rows:
            roles_txt = f" [{', '.join(row['roles'])}]" if row.get("roles") else ""
            lines.append(f"- {row['ap_slot']} -> user {row['discord_id']}{roles_txt}")
        await deps.send_chunked(ctx.channel, "\n".join(lines))

    @bot.command(name="whois")
    async def cmd_whois(ctx: commands.Context, *, slot: str = ""):
        slot = " ".join(slot.split())
        if not slot:
            await ctx.send("Usage: `!whois <slot name>`")
            return
        async with deps.db_lock:
            ids = await asyncio.to_thread(deps.find_discord_ids_for_slot_sync, deps.db_conn, slot)
        if not ids:
            await ctx.send(f"Nobody is linked to **{slot}**.")
            return
        await ctx.send(
            f"**{slot}** is linked to " + ", ".join(f"<@{i}>" for i in ids),
            allowed_mentions=NO_PINGS,
        )

    @bot.command(name="me")
    @commands.guild_only()
    async def cmd_me(ctx: commands.Context):
        async with deps.db_lock:
            link = await asyncio.to_thread(deps.fetch_user_link_sync, deps.db_conn, ctx.author.id)
        slot = link["ap_slot"] if link else None
        added = deps.signup_queue.add(ctx.guild.id, ctx.author.id, ctx.author.display_name, slot)
        position = deps.signup_queue.position(ctx.guild.id, ctx.author.id)
        verb = "Signed up" if added else "Already signed up"
        await ctx.reply(f"{verb} for the next game (position {position}).", mention_author=False)

    @bot.command(name="list")
    @commands.guild_only()
    async def cmd_list(ctx: commands.Context, action: str = ""):
        action = action.strip().lower()
        if action in ("clear", "reset"):
            if not gates.user_is_relay_mod(ctx.author):
                await ctx.send("Only relay moderators can clear the signup list.")
                return
            cleared = deps.signup_queue.clear(ctx.guild.id)
            await ctx.send(f"Signup list cleared ({cleared} removed).")
            return
        if action in ("leave", "remove"):
            removed = deps.signup_queue.remove(ctx.guild.id, ctx.author.id)
            await ctx.reply("Removed from the signup list." if removed else "You were not signed up.", mention_author=False)
            return

        entries = deps.signup_queue.list(ctx.guild.id)
        if not entries:
            await ctx.send("Nobody has signed up yet. Use `!me` to join.")
            return
        lines = [f"Signed up players ({len(entries)}):"]
        for i, entry in enumerate(entries, start=1):
            slot_txt = f" ({entry.slot})" if entry.slot else ""
            lines.append(f"{i}. {entry.display_name}{slot_txt}")
        await deps.send_chunked(ctx.channel, "\n".join(lines))

    @bot.command(name="items")
    async def cmd_items(ctx: commands.Context, *, slot: str = ""):
        slot = " ".join(slot.split())
        async with deps.db_lock:
            if not slot:
                link = await asyncio.to_thread(deps.fetch_user_link_sync, deps.db_conn, ctx.author.id)
                slot = link["ap_slot"] if link else ""
            rows = await asyncio.to_thread(deps.fetch_items_for_slot_sync, deps.db_conn, slot, 20) if slot else []
        if not slot:
            await ctx.send("Usage: `!items <slot name>` (or `!link` a slot first)")
            return
        if not rows:
            await ctx.send(f"No received items recorded for **{slot}**.")
            return
        lines = [f"Latest items for {slot}:"]
        for row in rows:
            lines.append(f"- {row.get('item_name') or row['item_id']} @ {row['received_at_utc']}")
        await deps.send_chunked(ctx.channel, "\n".join(lines))

    @bot.command(name="apstatus")
    async def cmd_apstatus(ctx: commands.Context):
        status = deps.relay.status()
        lines = [
            f"host={status['host'] or '(not configured)'} slot={status['slot']}",
            f"connected={status['connected']} state={status['state']} "
            f"attempts={status['attempts']}/{status['max_attempts']}",
            f"seed={status['seed'] or '-'} players={status['players']} relayed={status['relayed']}",
        ]
        await ctx.send("```\n" + "\n".join(lines) + "\n```")

    @bot.command(name="apreconnect")
    async def cmd_apreconnect(ctx: commands.Context):
        if not (gates.user_is_owner(ctx.author) or gates.user_is_relay_mod(ctx.author)):
            await ctx.send("This command is for relay moderators.")
            return
        await ctx.send("Reconnecting to the game server...")
        ok = await deps.relay.reconnect()
        await ctx.send("Connected." if ok else "Connection failed; automatic retries are scheduled.")

    @bot.command(name="save")
    async def cmd_save(ctx: commands.Context):
        if not (gates.user_is_owner(ctx.author) or gates.user_is_relay_mod(ctx.author)):
            await ctx.send("This command is for relay moderators.")
            return
        sent = await deps.relay.send_server_command("!save")
        await ctx.send("Save requested on the game server." if sent else "Not connected to the game server.")

    @bot.command(name="welcome")
    @commands.guild_only()
    async def cmd_welcome(ctx: commands.Context):
        if not gates.user_is_relay_mod(ctx.author):
            await ctx.send("Only relay moderators can post the welcome panel.")
            return
        await ctx.send(embed=build_welcome_embed(), view=deps.welcome_panel_factory())
        await ctx.reply("Welcome panel posted.", mention_author=False)

    @bot.command(name="setup")
    async def cmd_setup(ctx: commands.Context):
        if ctx.guild is not None and not (gates.user_is_owner(ctx.author) or gates.user_is_relay_mod(ctx.author)):
            await ctx.send("Only server moderators can run the setup.")
            return
        started = await deps.wizard.start(ctx.author)
        if not started:
            await ctx.reply("I couldn't DM you. Check your privacy settings and try again.", mention_author=False)
            return
        if ctx.guild is not None:
            await ctx.reply("Check your DMs to continue the setup.", mention_author=False)

    @bot.command(name="setupcancel")
    async def cmd_setupcancel(ctx: commands.Context):
        removed = deps.wizard.cancel(ctx.author.id)
        await ctx.send("Setup cancelled." if removed else "You have no setup in progress.")

    @bot.command(name="relaylog")
    async def cmd_relaylog(ctx: commands.Context, limit: int = 10):
        if not gates.user_is_owner(ctx.author):
            await ctx.send("This command is owner-only.")
            return
        lim = max(1, min(int(limit or 10), 50))
        async with deps.db_lock:
            rows = await asyncio.to_thread(deps.fetch_recent_relay_messages_sync, deps.db_conn, lim)
        if not rows:
            await ctx.send("No relayed messages yet.")
            return
        lines = [f"Relayed messages (latest {len(rows)}):"]
        for row in rows:
            body = " ".join((row.get("body") or "").split())
            if len(body) > 90:
                body = body[:89] + "..."
            lines.append(f"- #{row['id']} {row['created_at_utc']} {row['direction']}/{row['category']} :: {body}")
        await deps.send_chunked(ctx.channel, "```\n" + "\n".join(lines)[:7000] + "\n```")

    @bot.command(name="dbmigrations")
    async def cmd_dbmigrations(ctx: commands.Context, limit: int = 30):
        if not gates.user_is_owner(ctx.author):
            await ctx.send("This command is owner-only.")
            return
        lim = max(1, min(int(limit or 30), 200))
        async with deps.db_lock:
            rows = await asyncio.to_thread(deps.list_schema_migrations_sync, deps.db_conn, lim)
        if not rows:
            await ctx.send("No schema migrations found.")
            return
        lines = [f"Applied schema migrations (latest {len(rows)}):"]
        for version, name, applied_at in rows:
            lines.append(f"- {version}_{name} @ {applied_at}")
        await deps.send_chunked(ctx.channel, "```\n" + "\n".join(lines)[:7000] + "\n```")

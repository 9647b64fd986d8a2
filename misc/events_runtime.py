from __future__ import annotations

import asyncio

import discord
from discord.ext import commands

from misc.discord_gates import relay_category_for_message
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


async def route_message(bot: commands.Bot, message: discord.Message, deps: RuntimeDeps) -> str:
    """Send one Discord message to the right place and return where it went."""
    if message.author.bot:
        return "ignored"

    if (message.content or "").lstrip().startswith("!"):
        await bot.process_commands(message)
        return "command"

    if getattr(message, "guild", None) is None:
        if await deps.wizard.handle_message(message):
            return "setup"
        return "ignored"

    category = relay_category_for_message(message, deps.dispatcher.channel_map)
    if category is None:
        return "ignored"
    author_name = getattr(message.author, "display_name", None) or message.author.name
    sent = await deps.relay.forward_from_discord(category, author_name, message.content or "")
    return f"relay:{category.value}" if sent else "ignored"


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    @bot.event
    async def on_ready():
        if boot.welcome_panel_factory is not None and not getattr(bot, "_welcome_panel_registered", False):
            bot.add_view(boot.welcome_panel_factory())
            bot._welcome_panel_registered = True

        print(f"[Relay] online as {bot.user}")
        # on_ready fires again after every gateway resume
        if getattr(bot, "_relay_booted", False):
            return
        bot._relay_booted = True

        try:
            await boot.load_guild_configs_func()
        except Exception as e:
            print(f"[Relay] could not load guild configs: {e}")

        if not getattr(bot, "_sweep_task", None):
            bot._sweep_task = asyncio.create_task(boot.sweep_loop_func())
            print("[Setup] session sweep loop started")

        await deps.relay.start()

    @bot.event
    async def on_message(message: discord.Message):
        try:
            await route_message(bot, message, deps)
        except Exception as e:
            print(f"[Relay] on_message failed for message={message.id}: {e}")

from __future__ import annotations

from typing import Any, Awaitable, Callable

import discord

from misc.signup_queue import SignupQueue


def build_welcome_embed() -> discord.Embed:
    return discord.Embed(
        title="Waiting Room",
        description=(
            "- **I'm In!**\n"
            "Join the signup list for the next multiworld. Link your slot first with `!link <slot>` "
            "and it will show up next to your name.\n\n"
            "- **Game Info**\n"
            "See which server the relay is watching and who is already signed up."
        ),
        colour=discord.Colour.orange(),
    )


def build_game_info_embed(status: dict[str, Any], signed_up: int) -> discord.Embed:
    embed = discord.Embed(
        title="Game Info",
        colour=discord.Colour.green() if status.get("connected") else discord.Colour.dark_grey(),
    )
    embed.add_field(name="Server", value=status.get("host") or "(not configured)", inline=False)
    embed.add_field(name="Connected", value="yes" if status.get("connected") else "no", inline=True)
    embed.add_field(name="Seed", value=status.get("seed") or "-", inline=True)
    embed.add_field(name="Players", value=str(status.get("players") or 0), inline=True)
    embed.add_field(name="Signed up", value=str(signed_up), inline=True)
    return embed


async def handle_im_in(
    interaction: discord.Interaction,
    *,
    signup_queue: SignupQueue,
    lookup_slot: Callable[[int], Awaitable[str | None]],
) -> None:
    guild = interaction.guild
    if guild is None:
        await interaction.response.send_message("This only works inside the server.", ephemeral=True)
        return

    user = interaction.user
    slot = await lookup_slot(user.id)
    display_name = getattr(user, "display_name", None) or user.name
    added = signup_queue.add(guild.id, user.id, display_name, slot)
    position = signup_queue.position(guild.id, user.id)
    print(f"[Welcome] guild={guild.id} user={user.id} signup added={added} position={position}")
    verb = "You're in" if added else "You're already in"
    slot_txt = f" as **{slot}**" if slot else ""
    await interaction.response.send_message(
        f"{verb}{slot_txt}! Position {position} on the signup list.",
        ephemeral=True,
    )


async def handle_game_info(
    interaction: discord.Interaction,
    *,
    relay,
    signup_queue: SignupQueue,
) -> None:
    guild = interaction.guild
    signed_up = len(signup_queue.list(guild.id)) if guild is not None else 0
    await interaction.response.send_message(
        embed=build_game_info_embed(relay.status(), signed_up),
        ephemeral=True,
    )


def build_welcome_panel(
    *,
    signup_queue: SignupQueue,
    relay,
    lookup_slot: Callable[[int], Awaitable[str | None]],
) -> discord.ui.View:
    class WelcomePanel(discord.ui.View):
        def __init__(self):
            super().__init__(timeout=None)

        @discord.ui.button(
            label="I'm In!",
            style=discord.ButtonStyle.success,
            custom_id="relay_welcome_signup",
        )
        async def signup_button(self, interaction: discord.Interaction, button: discord.ui.Button):
            await handle_im_in(interaction, signup_queue=signup_queue, lookup_slot=lookup_slot)

        @discord.ui.button(
            label="Game Info",
            style=discord.ButtonStyle.secondary,
            custom_id="relay_welcome_info",
        )
        async def info_button(self, interaction: discord.Interaction, button: discord.ui.Button):
            await handle_game_info(interaction, relay=relay, signup_queue=signup_queue)

    return WelcomePanel()

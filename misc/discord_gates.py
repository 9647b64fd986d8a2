from __future__ import annotations

from typing import Iterable

import discord

from relay.models import ChannelCategory


def relay_category_for_message(
    message: discord.Message,
    channel_map: dict[ChannelCategory, int],
) -> ChannelCategory | None:
    """Relay category of the channel a message was posted in, or None if it is not relayed."""
    if getattr(message, "guild", None) is None:
        return None
    if message.author.bot:
        return None

    channel_id = int(getattr(message.channel, "id", 0) or 0)
    candidates = [channel_id]
    # thread: relay under its parent's category
    if isinstance(message.channel, discord.Thread) and message.channel.parent:
        candidates.append(int(message.channel.parent.id))

    for candidate in candidates:
        for category, mapped_id in channel_map.items():
            if mapped_id and int(mapped_id) == candidate:
                return category
    return None


def user_is_moderator(member: discord.abc.User, mod_role_ids: Iterable[int]) -> bool:
    if not isinstance(member, discord.Member):
        return False
    if member.guild_permissions.administrator or member.guild_permissions.manage_guild:
        return True
    wanted = {int(r) for r in mod_role_ids if r}
    return any(role.id in wanted for role in member.roles)

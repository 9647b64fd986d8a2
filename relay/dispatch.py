from __future__ import annotations

from typing import Any, Callable

import discord

from relay.models import ChannelCategory
from relay.models import ClassifiedEvent
from relay.rendering import mention_content
from relay.rendering import render_embeds


class RelayDispatcher:
    """Sends classified events to the Discord channel mapped to each category."""

    def __init__(
        self,
        get_channel: Callable[[int], Any],
        channel_map: dict[ChannelCategory, int] | None = None,
    ) -> None:
        self._get_channel = get_channel
        self.channel_map: dict[ChannelCategory, int] = dict(channel_map or {})

    def update_channels(self, channel_map: dict[ChannelCategory, int]) -> None:
        for category, channel_id in channel_map.items():
            if channel_id:
                self.channel_map[ChannelCategory(category)] = int(channel_id)

    def category_for_channel(self, channel_id: int) -> ChannelCategory | None:
        for category, mapped_id in self.channel_map.items():
            if int(mapped_id) == int(channel_id):
                return category
        return None

    async def dispatch(self, event: ClassifiedEvent) -> list[ChannelCategory]:
        delivered: list[ChannelCategory] = []
        embeds = render_embeds(event)
        content = mention_content(event)
        allowed = discord.AllowedMentions(users=True, roles=False, everyone=False)
        for category in event.categories:
            channel_id = self.channel_map.get(category)
            if not channel_id:
                print(f"[Relay] no channel configured for category={category.value}; dropping '{event.title}'")
                continue
            channel = self._get_channel(int(channel_id))
            if channel is None:
                print(f"[Relay] channel {channel_id} for category={category.value} not found")
                continue
            try:
                await channel.send(content=content, embed=embeds[0], allowed_mentions=allowed)
                for extra in embeds[1:]:
                    await channel.send(embed=extra, allowed_mentions=allowed)
            except Exception as e:
                print(f"[Relay] send to category={category.value} channel={channel_id} failed: {e}")
                continue
            delivered.append(category)
        return delivered

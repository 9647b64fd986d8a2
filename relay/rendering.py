from __future__ import annotations

import discord

from config.defaults import DISCORD_MAX_EMBED_DESCRIPTION
from config.defaults import DISCORD_MAX_MESSAGE_LEN
from relay.models import ClassifiedEvent

EMBED_FIELD_VALUE_LIMIT = 1024


def chunk_text(text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> list[str]:
    text = text or ""
    if len(text) <= limit:
        return [text]

    chunks = []
    remaining = text

    while len(remaining) > limit:
        # Prefer splitting on paragraph, then newline, then space
        split_at = remaining.rfind("\n\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind("\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind(" ", 0, limit)
        if split_at == -1:
            split_at = limit

        chunk = remaining[:split_at].strip()
        if chunk:
            chunks.append(chunk)

        remaining = remaining[split_at:].strip()

    if remaining:
        chunks.append(remaining)

    return chunks


async def send_chunked(channel: discord.abc.Messageable, text: str) -> None:
    for part in chunk_text(text, DISCORD_MAX_MESSAGE_LEN):
        await channel.send(part)


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def render_embed(event: ClassifiedEvent, description: str | None = None) -> discord.Embed:
    embed = discord.Embed(
        title=_clip(event.title, 256),
        description=_clip(event.body if description is None else description, DISCORD_MAX_EMBED_DESCRIPTION),
        colour=discord.Colour(event.color),
    )
    for name, value in event.fields:
        embed.add_field(name=name, value=_clip(value or "-", EMBED_FIELD_VALUE_LIMIT), inline=True)
    if event.mentions:
        embed.add_field(
            name="Mentioned",
            value=_clip(" ".join(event.mentions), EMBED_FIELD_VALUE_LIMIT),
            inline=False,
        )
    return embed


def render_embeds(event: ClassifiedEvent) -> list[discord.Embed]:
    """First embed carries title, fields and mentions; long bodies continue in bare follow-up embeds."""
    parts = chunk_text(event.body, DISCORD_MAX_EMBED_DESCRIPTION)
    embeds = [render_embed(event, parts[0])]
    for part in parts[1:]:
        embeds.append(discord.Embed(description=part, colour=discord.Colour(event.color)))
    return embeds


def mention_content(event: ClassifiedEvent) -> str | None:
    # Mentions inside an embed do not ping, so they are repeated in the message content.
    if not event.mentions:
        return None
    return _clip(" ".join(event.mentions), DISCORD_MAX_MESSAGE_LEN)

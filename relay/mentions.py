from __future__ import annotations

import re
from typing import Awaitable, Callable, Iterable

# Capitalized word runs, optionally followed by a team suffix: "Steve", "GOOM World (Team #2)".
SLOT_NAME_RE = re.compile(r"([A-Z][a-z0-9_]+(?: [A-Z][a-z0-9_]+)*)(?: \(Team #[0-9]+\))?")

SlotLookup = Callable[[str], Awaitable[list[str]]]


def extract_slot_names(text: str) -> list[str]:
    names: list[str] = []
    seen: set[str] = set()
    for m in SLOT_NAME_RE.finditer(text or ""):
        name = m.group(1).strip()
        if name and name not in seen:
            seen.add(name)
            names.append(name)
    return names


def format_user_mention(discord_id: str | int) -> str:
    return f"<@{discord_id}>"


async def resolve_mentions(
    text: str,
    lookup: SlotLookup,
    *,
    extra_names: Iterable[str] = (),
) -> list[str]:
    candidates: list[str] = []
    seen_names: set[str] = set()
    for name in [*extra_names, *extract_slot_names(text)]:
        clean = str(name or "").strip()
        if clean and clean not in seen_names:
            seen_names.add(clean)
            candidates.append(clean)

    mentions: list[str] = []
    for name in candidates:
        try:
            discord_ids = await lookup(name)
        except Exception as e:
            print(f"[Relay] mention lookup failed for slot={name!r}: {e}")
            continue
        for discord_id in discord_ids or []:
            token = format_user_mention(discord_id)
            if token not in mentions:
                mentions.append(token)
    return mentions

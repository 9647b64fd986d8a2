from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SignupEntry:
    user_id: int
    display_name: str
    slot: str | None = None


class SignupQueue:
    """Per-guild ordered list of members waiting to join the next multiworld."""

    def __init__(self) -> None:
        self._queues: dict[int, list[SignupEntry]] = {}

    def add(self, guild_id: int, user_id: int, display_name: str, slot: str | None = None) -> bool:
        queue = self._queues.setdefault(int(guild_id), [])
        for i, entry in enumerate(queue):
            if entry.user_id == int(user_id):
                # Re-signing keeps the original position and refreshes the details.
                queue[i] = SignupEntry(int(user_id), display_name, slot)
                return False
        queue.append(SignupEntry(int(user_id), display_name, slot))
        return True

    def list(self, guild_id: int) -> list[SignupEntry]:
        return list(self._queues.get(int(guild_id), []))

    def remove(self, guild_id: int, user_id: int) -> bool:
        queue = self._queues.get(int(guild_id), [])
        kept = [e for e in queue if e.user_id != int(user_id)]
        if len(kept) == len(queue):
            return False
        self._queues[int(guild_id)] = kept
        return True

    def clear(self, guild_id: int) -> int:
        return len(self._queues.pop(int(guild_id), []))

    def position(self, guild_id: int, user_id: int) -> int | None:
        for i, entry in enumerate(self._queues.get(int(guild_id), []), start=1):
            if entry.user_id == int(user_id):
                return i
        return None

from __future__ import annotations

from typing import Any


class NameTable:
    """Slot, item and location names learned from the game server.

    Slots come from ``Connected``/``RoomUpdate`` (``players`` and
    ``slot_info``); item and location names come from ``DataPackage`` and are
    kept per game, since ids are only unique within a game.
    """

    def __init__(self) -> None:
        self.slot_aliases: dict[int, str] = {}
        self.slot_names: dict[int, str] = {}
        self.slot_games: dict[int, str] = {}
        self.item_names: dict[str, dict[int, str]] = {}
        self.location_names: dict[str, dict[int, str]] = {}

    def update_players(self, packet: dict[str, Any]) -> None:
        for player in packet.get("players") or []:
            if not isinstance(player, dict):
                continue
            try:
                slot = int(player.get("slot"))
            except (TypeError, ValueError):
                continue
            alias = str(player.get("alias") or player.get("name") or "").strip()
            name = str(player.get("name") or alias).strip()
            if alias:
                self.slot_aliases[slot] = alias
            if name:
                self.slot_names[slot] = name

        slot_info = packet.get("slot_info") or {}
        if isinstance(slot_info, dict):
            for raw_slot, info in slot_info.items():
                if not isinstance(info, dict):
                    continue
                try:
                    slot = int(raw_slot)
                except (TypeError, ValueError):
                    continue
                if info.get("game"):
                    self.slot_games[slot] = str(info["game"])
                if info.get("name") and slot not in self.slot_names:
                    self.slot_names[slot] = str(info["name"])

    def update_data_package(self, packet: dict[str, Any]) -> int:
        games = ((packet.get("data") or {}).get("games")) or {}
        loaded = 0
        for game, data in games.items():
            if not isinstance(data, dict):
                continue
            items = data.get("item_name_to_id") or {}
            locations = data.get("location_name_to_id") or {}
            self.item_names[str(game)] = {int(v): str(k) for k, v in items.items()}
            self.location_names[str(game)] = {int(v): str(k) for k, v in locations.items()}
            loaded += 1
        return loaded

    def games(self) -> list[str]:
        return sorted(set(self.slot_games.values()))

    def player_name(self, slot: int | None) -> str:
        if slot is None:
            return "Unknown"
        slot = int(slot)
        if slot == 0:
            return "Server"
        return self.slot_aliases.get(slot) or self.slot_names.get(slot) or f"Player {slot}"

    def item_name(self, item_id: int, owner_slot: int | None = None) -> str:
        game = self.slot_games.get(int(owner_slot)) if owner_slot is not None else None
        if game and int(item_id) in self.item_names.get(game, {}):
            return self.item_names[game][int(item_id)]
        for names in self.item_names.values():
            if int(item_id) in names:
                return names[int(item_id)]
        return f"Item {item_id}"

    def location_name(self, location_id: int, owner_slot: int | None = None) -> str:
        game = self.slot_games.get(int(owner_slot)) if owner_slot is not None else None
        if game and int(location_id) in self.location_names.get(game, {}):
            return self.location_names[game][int(location_id)]
        for names in self.location_names.values():
            if int(location_id) in names:
                return names[int(location_id)]
        return f"Location {location_id}"

from __future__ import annotations

import asyncio
import sqlite3
from typing import Any, Callable

from archipelago.client import ArchipelagoClient
from archipelago.client import build_server_url
from archipelago.names import NameTable
from archipelago.packets import build_get_data_package_packet
from archipelago.packets import to_inbound
from config.defaults import DEFAULT_DEDUP_CAPACITY
from config.defaults import DEFAULT_MAX_RETRIES
from config.defaults import DEFAULT_RETRY_BASE_SECONDS
from links.store import find_discord_ids_for_slot_sync
from relay.classifier import MalformedPacketError
from relay.classifier import PacketClassifier
from relay.dedupe import RecentMessageCache
from relay.dispatch import RelayDispatcher
from relay.models import ChannelCategory
from relay.models import ClassifiedEvent
from relay.reconnect import Reconnector
from relay.store import insert_received_item_sync
from relay.store import insert_relay_message_sync


def format_outbound(category: ChannelCategory, author_name: str, content: str) -> str | None:
    """Text to ``Say`` on the game server for a Discord message, or None to ignore it."""
    content = (content or "").strip()
    if not content:
        return None
    if category == ChannelCategory.CHAT:
        return f"[{author_name}] {content}"
    if category == ChannelCategory.HINT:
        return f"!hint {content}"
    if category == ChannelCategory.TRADE:
        return content
    return None


class RelayService:
    """Bridges one game-server connection and the Discord relay channels."""

    def __init__(
        self,
        *,
        dispatcher: RelayDispatcher,
        db_conn: sqlite3.Connection,
        db_lock: asyncio.Lock,
        slot: str,
        password: str | None = None,
        host: str | None = None,
        use_tls: bool = False,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_seconds: float = DEFAULT_RETRY_BASE_SECONDS,
        dedup_capacity: int = DEFAULT_DEDUP_CAPACITY,
        client_factory: Callable[..., ArchipelagoClient] = ArchipelagoClient,
        sleep_func: Callable[[float], Any] = asyncio.sleep,
    ) -> None:
        self.dispatcher = dispatcher
        self.db_conn = db_conn
        self.db_lock = db_lock
        self.slot = slot
        self.password = password
        self.host = (host or "").strip() or None
        self.use_tls = bool(use_tls)
        self.names = NameTable()
        self.classifier = PacketClassifier(RecentMessageCache(dedup_capacity), self.lookup_discord_ids)
        self.reconnector = Reconnector(
            self._connect_client,
            max_attempts=max_retries,
            base_delay_seconds=retry_base_seconds,
            sleep_func=sleep_func,
            label="AP",
        )
        self.client: ArchipelagoClient | None = None
        self._client_factory = client_factory
        self.room_seed: str | None = None
        self.relayed_count = 0

    # ---- upstream lifecycle ----

    def set_host(self, host: str | None) -> None:
        self.host = (host or "").strip() or None

    @property
    def connected(self) -> bool:
        return self.client is not None and self.client.connected

    async def _connect_client(self) -> None:
        if not self.host:
            raise RuntimeError("no game server host configured")
        url = build_server_url(self.host, self.use_tls)
        if self.client is None or self.client.url != url:
            if self.client is not None:
                await self.client.close()
            self.client = self._client_factory(url, self.slot, self.password, self)
        await self.client.connect()

    async def start(self) -> bool:
        if not self.host:
            print("[AP] no game server host configured; relay idle until !setup or AP_HOST is set")
            return False
        return await self.reconnector.connect_now()

    async def reconnect(self) -> bool:
        self.reconnector.cancel_retry()
        if self.client is not None:
            await self.client.close()
        return await self.reconnector.connect_now()

    async def stop(self) -> None:
        self.reconnector.cancel_retry()
        if self.client is not None:
            await self.client.close()

    def status(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "slot": self.slot,
            "connected": self.connected,
            "state": self.reconnector.state.value,
            "attempts": self.reconnector.attempt_count,
            "max_attempts": self.reconnector.max_attempts,
            "seed": self.room_seed,
            "relayed": self.relayed_count,
            "players": len(self.names.slot_aliases),
        }

    # ---- events from the game server ----

    async def on_disconnect(self, code: int | None, reason: str) -> None:
        print(f"[AP] disconnected code={code} reason={reason!r}; scheduling reconnect")
        self.reconnector.schedule_retry()

    async def on_packet(self, packet: dict[str, Any]) -> None:
        cmd = packet.get("cmd")
        if cmd == "RoomInfo":
            self.room_seed = packet.get("seed_name")
            games = packet.get("games") or []
            print(f"[AP] room info seed={self.room_seed} games={len(games)}")
            if self.client is not None:
                await self.client.send_packets([build_get_data_package_packet(games)])
        elif cmd == "Connected":
            self.names.update_players(packet)
            self.reconnector.mark_connected()
            print(f"[AP] connected as slot={self.slot} players={len(self.names.slot_aliases)}")
        elif cmd == "RoomUpdate":
            self.names.update_players(packet)
        elif cmd == "DataPackage":
            loaded = self.names.update_data_package(packet)
            print(f"[AP] data package loaded games={loaded}")
        elif cmd == "ConnectionRefused":
            errors = ", ".join(str(e) for e in packet.get("errors") or []) or "unknown"
            print(f"[AP] connection refused: {errors}")
            await self._relay_event(
                ClassifiedEvent(
                    categories=(ChannelCategory.LOG,),
                    title="Connection Refused",
                    body=f"The game server refused slot '{self.slot}': {errors}",
                    color=0xFF0000,
                )
            )
        elif cmd == "ReceivedItems":
            await self._store_received_items(packet)
        elif cmd in ("Print", "PrintJSON"):
            await self.handle_print(packet)

    async def handle_print(self, packet: dict[str, Any]) -> ClassifiedEvent | None:
        try:
            inbound = to_inbound(packet, self.names)
        except MalformedPacketError as e:
            print(f"[Relay] skipping malformed {packet.get('type') or packet.get('cmd')} packet: {e}")
            return None
        if inbound is None:
            return None
        event = await self.classifier.classify(inbound)
        if event is None:
            return None
        await self._relay_event(event)
        return event

    async def _relay_event(self, event: ClassifiedEvent) -> None:
        await self.dispatcher.dispatch(event)
        self.relayed_count += 1
        try:
            async with self.db_lock:
                await asyncio.to_thread(
                    insert_relay_message_sync,
                    self.db_conn,
                    direction="inbound",
                    category=event.category.value,
                    title=event.title,
                    body=event.body,
                    mentions=event.mentions,
                )
        except sqlite3.Error as e:
            print(f"[Relay] failed to log relayed message: {e}")

    async def _store_received_items(self, packet: dict[str, Any]) -> int:
        stored = 0
        for item in packet.get("items") or []:
            if not isinstance(item, dict) or item.get("item") is None:
                continue
            async with self.db_lock:
                await asyncio.to_thread(
                    insert_received_item_sync,
                    self.db_conn,
                    ap_slot=self.slot,
                    item_id=int(item["item"]),
                    item_name=self.names.item_name(item["item"]),
                    location_id=item.get("location"),
                    sender_slot=item.get("player"),
                    flags=int(item.get("flags") or 0),
                )
            stored += 1
        if stored:
            print(f"[AP] stored {stored} received item(s) for slot={self.slot}")
        return stored

    # ---- lookups and Discord → game ----

    async def lookup_discord_ids(self, slot_name: str) -> list[str]:
        async with self.db_lock:
            return await asyncio.to_thread(find_discord_ids_for_slot_sync, self.db_conn, slot_name)

    async def forward_from_discord(self, category: ChannelCategory, author_name: str, content: str) -> bool:
        text = format_outbound(category, author_name, content)
        if text is None:
            return False
        if self.client is None or not self.client.connected:
            print(f"[Relay] not connected; dropped {category.value} message from {author_name}")
            return False
        sent = await self.client.send_say(text)
        if sent:
            async with self.db_lock:
                await asyncio.to_thread(
                    insert_relay_message_sync,
                    self.db_conn,
                    direction="outbound",
                    category=category.value,
                    body=text,
                )
        return sent

    async def send_server_command(self, command: str) -> bool:
        """Send a ``!``-prefixed server command as the relay slot, e.g. ``!save``."""
        command = " ".join((command or "").split())
        if not command.startswith("!"):
            raise ValueError(f"server command must start with '!': {command!r}")
        if self.client is None or not self.client.connected:
            print(f"[Relay] not connected; dropped server command {command}")
            return False
        sent = await self.client.send_say(command)
        if sent:
            print(f"[Relay] sent server command {command}")
        return sent

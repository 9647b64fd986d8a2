from __future__ import annotations

import asyncio
import sqlite3
import unittest
from pathlib import Path

from db.migrate import apply_sqlite_migrations
from links.store import upsert_user_link_sync
from relay.models import ChannelCategory
from relay.reconnect import ReconnectState
from relay.store import fetch_items_for_slot_sync
from relay.store import fetch_recent_relay_messages_sync

try:
    from relay.service import RelayService
    from relay.service import format_outbound
except ModuleNotFoundError:  # pragma: no cover - environment-dependent
    RelayService = None
    format_outbound = None

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


class FakeDispatcher:
    def __init__(self):
        self.events = []

    async def dispatch(self, event):
        self.events.append(event)
        return list(event.categories)


class FakeClient:
    instances: list["FakeClient"] = []

    def __init__(self, url, slot, password, events):
        self.url = url
        self.slot = slot
        self.password = password
        self.events = events
        self.connected = False
        self.said: list[str] = []
        self.packets: list[dict] = []
        FakeClient.instances.append(self)

    async def connect(self):
        self.connected = True

    async def close(self):
        self.connected = False

    async def send_packets(self, packets):
        self.packets.extend(packets)
        return True

    async def send_say(self, text):
        self.said.append(text)
        return True


async def _never_wake(_delay):
    await asyncio.Event().wait()


@unittest.skipIf(format_outbound is None, "discord.py not installed")
class FormatOutboundTests(unittest.TestCase):
    def test_category_prefixes(self):
        self.assertEqual(format_outbound(ChannelCategory.CHAT, "Alice", " hi "), "[Alice] hi")
        self.assertEqual(format_outbound(ChannelCategory.HINT, "Alice", "Bow"), "!hint Bow")
        self.assertEqual(format_outbound(ChannelCategory.TRADE, "Alice", "LF Bow"), "LF Bow")
        self.assertIsNone(format_outbound(ChannelCategory.LOG, "Alice", "hello"))
        self.assertIsNone(format_outbound(ChannelCategory.CHAT, "Alice", "   "))


@unittest.skipIf(RelayService is None, "discord.py not installed")
class RelayServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(self.conn, MIGRATIONS_DIR)
        self.dispatcher = FakeDispatcher()
        FakeClient.instances = []
        self.service = RelayService(
            dispatcher=self.dispatcher,
            db_conn=self.conn,
            db_lock=asyncio.Lock(),
            slot="RelayBot",
            host="archipelago.gg:38281",
            retry_base_seconds=5,
            client_factory=FakeClient,
            sleep_func=_never_wake,
        )

    async def asyncTearDown(self):
        await self.service.stop()
        self.conn.close()

    async def test_start_without_host_stays_idle(self):
        self.service.set_host(None)
        self.assertFalse(await self.service.start())
        self.assertEqual(FakeClient.instances, [])

    async def test_start_builds_client_for_host(self):
        self.assertTrue(await self.service.start())
        client = FakeClient.instances[0]
        self.assertEqual(client.url, "ws://archipelago.gg:38281")
        self.assertEqual(client.slot, "RelayBot")
        self.assertTrue(self.service.connected)
        self.assertEqual(self.service.reconnector.state, ReconnectState.CONNECTED)

    async def test_join_print_is_dispatched_with_mention_and_logged(self):
        upsert_user_link_sync(self.conn, 900, "Steve")

        event = await self.service.handle_print({"cmd": "Print", "text": "Steve has joined the game"})

        self.assertEqual(event.categories, (ChannelCategory.CHAT, ChannelCategory.LOG))
        self.assertEqual(event.mentions, ("<@900>",))
        self.assertEqual(self.dispatcher.events, [event])
        logged = fetch_recent_relay_messages_sync(self.conn, 5)
        self.assertEqual(logged[0]["direction"], "inbound")
        self.assertEqual(logged[0]["category"], "chat")
        self.assertEqual(self.service.relayed_count, 1)

    async def test_repeated_print_is_relayed_once(self):
        packet = {"cmd": "Print", "text": "Now that you are connected, you can use !help"}
        await self.service.on_packet(packet)
        await self.service.on_packet(packet)
        self.assertEqual(len(self.dispatcher.events), 1)

    async def test_malformed_item_packet_is_skipped(self):
        result = await self.service.handle_print({"cmd": "PrintJSON", "type": "ItemSend", "data": []})
        self.assertIsNone(result)
        self.assertEqual(self.dispatcher.events, [])

    async def test_non_numeric_slot_is_skipped(self):
        result = await self.service.handle_print(
            {"cmd": "PrintJSON", "type": "Chat", "slot": "abc", "message": "hi", "data": [{"text": "abc: hi"}]}
        )
        self.assertIsNone(result)
        self.assertEqual(self.dispatcher.events, [])

    async def test_disconnect_schedules_linear_retry(self):
        await self.service.start()
        await self.service.on_disconnect(1006, "")

        self.assertEqual(self.service.reconnector.state, ReconnectState.RETRY_SCHEDULED)
        self.assertEqual(self.service.reconnector.attempt_count, 1)
        self.assertEqual(self.service.reconnector.next_delay(), 10)

    async def test_room_info_requests_data_package(self):
        await self.service.start()
        await self.service.on_packet({"cmd": "RoomInfo", "seed_name": "S1", "games": ["Zelda"]})

        self.assertEqual(self.service.room_seed, "S1")
        self.assertEqual(FakeClient.instances[0].packets, [{"cmd": "GetDataPackage", "games": ["Zelda"]}])

    async def test_connected_packet_loads_player_names(self):
        await self.service.on_packet(
            {"cmd": "Connected", "players": [{"team": 0, "slot": 1, "alias": "Steve", "name": "Steve"}]}
        )
        self.assertEqual(self.service.names.player_name(1), "Steve")
        self.assertEqual(self.service.status()["players"], 1)

    async def test_connection_refused_goes_to_log_channel(self):
        await self.service.on_packet({"cmd": "ConnectionRefused", "errors": ["InvalidSlot"]})

        self.assertEqual(len(self.dispatcher.events), 1)
        event = self.dispatcher.events[0]
        self.assertEqual(event.categories, (ChannelCategory.LOG,))
        self.assertIn("InvalidSlot", event.body)

    async def test_received_items_are_stored(self):
        await self.service.on_packet(
            {"cmd": "ReceivedItems", "index": 0, "items": [{"item": 10, "location": 5, "player": 2, "flags": 1}]}
        )
        rows = fetch_items_for_slot_sync(self.conn, "relaybot")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["item_name"], "Item 10")
        self.assertEqual(rows[0]["sender_slot"], 2)

    async def test_forward_from_discord_says_and_logs(self):
        await self.service.start()

        self.assertTrue(await self.service.forward_from_discord(ChannelCategory.CHAT, "Alice", "hello"))
        self.assertFalse(await self.service.forward_from_discord(ChannelCategory.LOG, "Alice", "hello"))

        self.assertEqual(FakeClient.instances[0].said, ["[Alice] hello"])
        logged = fetch_recent_relay_messages_sync(self.conn, 5)
        self.assertEqual([(m["direction"], m["body"]) for m in logged], [("outbound", "[Alice] hello")])

    async def test_forward_without_connection_is_dropped(self):
        self.assertFalse(await self.service.forward_from_discord(ChannelCategory.CHAT, "Alice", "hello"))

    async def test_save_command_is_said_verbatim(self):
        self.assertFalse(await self.service.send_server_command("!save"))
        await self.service.start()

        self.assertTrue(await self.service.send_server_command("  !save "))

        self.assertEqual(FakeClient.instances[0].said, ["!save"])
        self.assertEqual(fetch_recent_relay_messages_sync(self.conn, 5), [])

    async def test_server_command_needs_bang_prefix(self):
        await self.service.start()
        with self.assertRaises(ValueError):
            await self.service.send_server_command("save")
        self.assertEqual(FakeClient.instances[0].said, [])


if __name__ == "__main__":
    unittest.main()

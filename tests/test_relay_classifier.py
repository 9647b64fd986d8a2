from __future__ import annotations

import unittest

from relay.classifier import DEFAULT_PRINT_RULE
from relay.classifier import MalformedPacketError
from relay.classifier import PRINT_RULES
from relay.classifier import PacketClassifier
from relay.classifier import classify_print
from relay.classifier import classify_typed
from relay.dedupe import RecentMessageCache
from relay.models import ChannelCategory
from relay.models import PacketKind
from relay.models import PrintMessage
from relay.models import TypedPacket

CHAT = ChannelCategory.CHAT
TRADE = ChannelCategory.TRADE
HINT = ChannelCategory.HINT
LOG = ChannelCategory.LOG


class PrintRuleTests(unittest.TestCase):
    def test_rule_order_is_fixed(self):
        self.assertEqual([r.name for r in PRINT_RULES], ["join", "leave", "trade", "hint", "item"])
        self.assertEqual(DEFAULT_PRINT_RULE.title, "Archipelago Message")

    def test_join_routes_to_chat_and_log(self):
        event = classify_print("Steve has joined the game")
        self.assertEqual(event.categories, (CHAT, LOG))
        self.assertEqual(event.title, "Join Event")

    def test_leave_routes_to_chat_and_log(self):
        event = classify_print("Steve has left the game")
        self.assertEqual(event.categories, (CHAT, LOG))
        self.assertEqual(event.title, "Leave Event")

    def test_trade_precedes_hint(self):
        event = classify_print("Alice started a trade hint about item X")
        self.assertEqual(event.category, TRADE)
        self.assertEqual(event.title, "Trade Event")

    def test_hint_variants(self):
        for text in ("Hint: Bob's sword is at Cave", "No hints left", "You have 10 hint points"):
            with self.subTest(text=text):
                self.assertEqual(classify_print(text).category, HINT)

    def test_item_messages_go_to_log(self):
        event = classify_print("Alice found their Bow")
        self.assertEqual(event.categories, (LOG,))
        self.assertEqual(event.title, "Item Received")

    def test_every_item_keyword_goes_to_log(self):
        texts = (
            "Alice found their Bow",
            "Alice sent Bow to Bob",
            "Bob received Bow from Alice",
            "received Bow from Alice",
            "You got a Bow",
        )
        for text in texts:
            with self.subTest(text=text):
                event = classify_print(text)
                self.assertEqual(event.categories, (LOG,))
                self.assertEqual(event.title, "Item Received")

    def test_unmatched_text_defaults_to_chat(self):
        event = classify_print("Good luck everyone")
        self.assertEqual(event.categories, (CHAT,))
        self.assertEqual(event.title, "Archipelago Message")
        self.assertEqual(event.body, "Good luck everyone")


class TypedRouteTests(unittest.TestCase):
    EXPECTED_CATEGORIES = {
        PacketKind.JOIN: (CHAT, LOG),
        PacketKind.LEAVE: (CHAT, LOG),
        PacketKind.CHAT: (CHAT,),
        PacketKind.TRADE: (TRADE,),
        PacketKind.HINT: (HINT,),
        PacketKind.ITEM_SENT: (TRADE,),
        PacketKind.ITEM_HINTED: (HINT,),
        PacketKind.ITEM_CHEATED: (LOG,),
        PacketKind.COLLECTED: (LOG,),
        PacketKind.RELEASED: (LOG,),
        PacketKind.GOALED: (CHAT, LOG),
        PacketKind.TAGS_UPDATED: (LOG,),
        PacketKind.ADMIN: (LOG,),
        PacketKind.TUTORIAL: (CHAT,),
        PacketKind.USER_COMMAND: (CHAT,),
        PacketKind.SERVER_CHAT: (CHAT,),
        PacketKind.MESSAGE: (CHAT,),
        PacketKind.COUNTDOWN: (LOG,),
    }

    def test_every_kind_routes_to_its_categories(self):
        self.assertEqual(set(self.EXPECTED_CATEGORIES), set(PacketKind))
        payload = {"player": "Alice", "item": "Bow", "sender": "Alice", "receiver": "Bob"}
        for kind, expected in self.EXPECTED_CATEGORIES.items():
            with self.subTest(kind=kind.value):
                event = classify_typed(TypedPacket(kind, f"{kind.value} text", dict(payload)))
                self.assertEqual(event.categories, expected)
                self.assertEqual(event.body, f"{kind.value} text")

    def test_item_sent_has_fields(self):
        event = classify_typed(
            TypedPacket(
                PacketKind.ITEM_SENT,
                "Alice sent Bow to Bob",
                {"item": "Bow", "sender": "Alice", "receiver": "Bob"},
            )
        )
        self.assertEqual(event.title, "Item Sent")
        self.assertEqual(event.fields, (("Item", "Bow"), ("From", "Alice"), ("To", "Bob")))

    def test_found_hint_adds_log(self):
        payload = {"item": "Bow", "sender": "Alice", "receiver": "Bob", "found": True}
        event = classify_typed(TypedPacket(PacketKind.ITEM_HINTED, "hint text", payload))
        self.assertEqual(event.categories, (HINT, LOG))
        self.assertEqual(event.title, "Item Found (Hint)")

        payload["found"] = False
        event = classify_typed(TypedPacket(PacketKind.ITEM_HINTED, "hint text", payload))
        self.assertEqual(event.categories, (HINT,))
        self.assertEqual(event.title, "Item Hint")

    def test_chat_title_is_player(self):
        event = classify_typed(TypedPacket(PacketKind.CHAT, "Alice: hi", {"player": "Alice"}))
        self.assertEqual(event.title, "Alice")
        self.assertEqual(event.categories, (CHAT,))

    def test_missing_field_is_malformed(self):
        with self.assertRaises(MalformedPacketError):
            classify_typed(TypedPacket(PacketKind.CHAT, "someone: hi", {}))


class PacketClassifierTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.links = {"Steve": ["900"]}

        async def lookup(name: str) -> list[str]:
            return self.links.get(name, [])

        self.classifier = PacketClassifier(RecentMessageCache(50), lookup)

    async def test_join_end_to_end_with_mention(self):
        event = await self.classifier.classify(PrintMessage("Steve has joined the game"))
        self.assertIsNotNone(event)
        self.assertEqual(event.categories, (CHAT, LOG))
        self.assertEqual(event.title, "Join Event")
        self.assertEqual(event.mentions, ("<@900>",))

    async def test_duplicate_returns_none(self):
        first = await self.classifier.classify(PrintMessage("Good luck everyone"))
        second = await self.classifier.classify(PrintMessage("Good luck everyone"))
        self.assertIsNotNone(first)
        self.assertIsNone(second)

    async def test_duplicates_match_exact_text_only(self):
        first = await self.classifier.classify(PrintMessage("Good luck everyone"))
        padded = await self.classifier.classify(PrintMessage(" Good luck everyone "))
        self.assertIsNotNone(first)
        self.assertIsNotNone(padded)
        self.assertEqual(padded.body, "Good luck everyone")

    async def test_malformed_typed_packet_is_skipped(self):
        event = await self.classifier.classify(TypedPacket(PacketKind.ITEM_SENT, "broken", {"item": "Bow"}))
        self.assertIsNone(event)

    async def test_payload_names_are_mentioned(self):
        self.links["Robo Steve"] = ["901"]
        packet = TypedPacket(
            PacketKind.ITEM_SENT,
            "Alice sent Bow to Robo Steve",
            {"item": "Bow", "sender": "Alice", "receiver": "Robo Steve"},
        )
        event = await self.classifier.classify(packet)
        self.assertIn("<@901>", event.mentions)

    async def test_lookup_outage_still_delivers(self):
        async def broken(name: str) -> list[str]:
            raise OSError("database unavailable")

        classifier = PacketClassifier(RecentMessageCache(5), broken)
        event = await classifier.classify(PrintMessage("Steve has left the game"))
        self.assertIsNotNone(event)
        self.assertEqual(event.mentions, ())

    async def test_blank_text_is_ignored(self):
        self.assertIsNone(await self.classifier.classify(PrintMessage("   ")))


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from relay.dedupe import RecentMessageCache
from relay.mentions import SlotLookup
from relay.mentions import resolve_mentions
from relay.models import ChannelCategory
from relay.models import ClassifiedEvent
from relay.models import InboundMessage
from relay.models import PacketKind
from relay.models import PrintMessage
from relay.models import TypedPacket

CHAT = ChannelCategory.CHAT
TRADE = ChannelCategory.TRADE
HINT = ChannelCategory.HINT
LOG = ChannelCategory.LOG


class MalformedPacketError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class PrintRule:
    name: str
    predicate: Callable[[str], bool]
    categories: tuple[ChannelCategory, ...]
    title: str
    color: int


def _is_hint_text(text: str) -> bool:
    lower = text.lower()
    return (
        lower.startswith("hint")
        or lower.startswith("hints")
        or "hint points" in lower
        or "each hint" in lower
        or lower.startswith("no hints")
    )


def _is_item_text(text: str) -> bool:
    lower = text.lower()
    return (
        " found " in lower
        or " sent " in lower
        or " received " in lower
        or lower.startswith("received ")
        or lower.startswith("you got")
    )


# Evaluated top to bottom, first match wins. The rules overlap, so order is behaviour.
PRINT_RULES: tuple[PrintRule, ...] = (
    PrintRule("join", lambda t: "has joined the game" in t, (CHAT, LOG), "Join Event", 0x32CD32),
    PrintRule("leave", lambda t: "has left the game" in t, (CHAT, LOG), "Leave Event", 0xDC143C),
    PrintRule("trade", lambda t: "trade" in t.lower(), (TRADE,), "Trade Event", 0x3399FF),
    PrintRule("hint", _is_hint_text, (HINT,), "Hint Message", 0xCCCC00),
    PrintRule("item", _is_item_text, (LOG,), "Item Received", 0x87CEFA),
)
DEFAULT_PRINT_RULE = PrintRule("default", lambda t: True, (CHAT,), "Archipelago Message", 0xEEEEEE)


@dataclass(frozen=True, slots=True)
class TypedRoute:
    categories: tuple[ChannelCategory, ...]
    title: str
    color: int
    required: tuple[str, ...] = ()


TYPED_ROUTES: dict[PacketKind, TypedRoute] = {
    PacketKind.JOIN: TypedRoute((CHAT, LOG), "Player Connected", 0x32CD32),
    PacketKind.LEAVE: TypedRoute((CHAT, LOG), "Player Disconnected", 0xDC143C),
    PacketKind.CHAT: TypedRoute((CHAT,), "{player}", 0x00BFFF, required=("player",)),
    PacketKind.TRADE: TypedRoute((TRADE,), "Trade Event", 0x3399FF),
    PacketKind.ITEM_SENT: TypedRoute(
        (TRADE,), "Item Sent", 0x3399FF, required=("item", "sender", "receiver")
    ),
    PacketKind.HINT: TypedRoute((HINT,), "Hint Message", 0xCCCC00),
    PacketKind.ITEM_HINTED: TypedRoute(
        (HINT,), "Item Hint", 0xCCCC00, required=("item", "sender", "receiver")
    ),
    PacketKind.ITEM_CHEATED: TypedRoute((LOG,), "Cheated Item Sent", 0xFF69B4, required=("item", "receiver")),
    PacketKind.COLLECTED: TypedRoute((LOG,), "Items Collected", 0x87CEFA),
    PacketKind.RELEASED: TypedRoute((LOG,), "Items Released", 0xFFCC00),
    PacketKind.TAGS_UPDATED: TypedRoute((LOG,), "Tags Updated", 0xAAAAFF),
    PacketKind.ADMIN: TypedRoute((LOG,), "Admin Command", 0xFF5555),
    PacketKind.GOALED: TypedRoute((CHAT, LOG), "Goal Reached!", 0x00FF99),
    PacketKind.TUTORIAL: TypedRoute((CHAT,), "Tutorial", 0x66CCFF),
    PacketKind.USER_COMMAND: TypedRoute((CHAT,), "Command Output", 0xDDDDDD),
    PacketKind.SERVER_CHAT: TypedRoute((CHAT,), "Server Chat", 0xCCCCCC),
    PacketKind.MESSAGE: TypedRoute((CHAT,), "Server Message", 0xEEEEEE),
    PacketKind.COUNTDOWN: TypedRoute((LOG,), "Countdown", 0xFFCC00),
}

MENTION_PAYLOAD_KEYS = ("player", "sender", "receiver")


def match_print_rule(text: str) -> PrintRule:
    for rule in PRINT_RULES:
        if rule.predicate(text):
            return rule
    return DEFAULT_PRINT_RULE


def classify_print(text: str) -> ClassifiedEvent:
    rule = match_print_rule(text)
    return ClassifiedEvent(
        categories=rule.categories,
        title=rule.title,
        body=text,
        color=rule.color,
    )


def _payload_fields(packet: TypedPacket) -> tuple[tuple[str, str], ...]:
    p = packet.payload
    kind = packet.kind
    if kind == PacketKind.ITEM_SENT:
        return (("Item", str(p["item"])), ("From", str(p["sender"])), ("To", str(p["receiver"])))
    if kind == PacketKind.ITEM_HINTED:
        return (
            ("Item", str(p["item"])),
            ("Receiving Player", str(p["receiver"])),
            ("From", str(p["sender"])),
        )
    if kind == PacketKind.ITEM_CHEATED:
        return (("Item", str(p["item"])), ("To", str(p["receiver"])))
    if kind in (PacketKind.TAGS_UPDATED, PacketKind.JOIN) and p.get("tags") is not None:
        tags = ", ".join(str(t) for t in p.get("tags") or []) or "None"
        return (("Tags", tags),)
    return ()


def classify_typed(packet: TypedPacket) -> ClassifiedEvent:
    route = TYPED_ROUTES.get(packet.kind)
    if route is None:
        raise MalformedPacketError(f"no route for packet kind {packet.kind!r}")
    missing = [key for key in route.required if packet.payload.get(key) in (None, "")]
    if missing:
        raise MalformedPacketError(f"{packet.kind.value} packet missing fields: {', '.join(missing)}")

    categories = route.categories
    title = route.title.format(**packet.payload) if "{" in route.title else route.title
    color = route.color
    if packet.kind == PacketKind.ITEM_HINTED and packet.payload.get("found"):
        categories = (HINT, LOG)
        title = "Item Found (Hint)"
        color = 0x00FFCC

    return ClassifiedEvent(
        categories=categories,
        title=title,
        body=packet.text,
        color=color,
        fields=_payload_fields(packet),
    )


class PacketClassifier:
    """Dedupe, classify and attach mentions to inbound game-server messages."""

    def __init__(self, dedupe: RecentMessageCache, lookup: SlotLookup) -> None:
        self.dedupe = dedupe
        self.lookup = lookup

    async def classify(self, msg: InboundMessage) -> ClassifiedEvent | None:
        raw_text = msg.text or ""
        text = raw_text.strip()
        if not text:
            return None
        if self.dedupe.is_duplicate(raw_text):
            return None

        extra_names: list[str] = []
        if isinstance(msg, PrintMessage):
            event = classify_print(text)
        else:
            try:
                event = classify_typed(msg)
            except MalformedPacketError as e:
                print(f"[Relay] skipping malformed packet: {e}")
                return None
            extra_names = [
                str(msg.payload[key])
                for key in MENTION_PAYLOAD_KEYS
                if isinstance(msg.payload.get(key), str) and msg.payload.get(key)
            ]

        try:
            mentions = await resolve_mentions(text, self.lookup, extra_names=extra_names)
        except Exception as e:
            print(f"[Relay] mention resolution failed: {e}")
            mentions = []

        return ClassifiedEvent(
            categories=event.categories,
            title=event.title,
            body=event.body,
            mentions=tuple(mentions),
            color=event.color,
            fields=event.fields,
        )

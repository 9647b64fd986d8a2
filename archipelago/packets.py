from __future__ import annotations

import json
import uuid
from typing import Any, Iterable

from archipelago.names import NameTable
from config.defaults import AP_CLIENT_VERSION
from config.defaults import DEFAULT_AP_TAGS
from relay.classifier import MalformedPacketError
from relay.models import InboundMessage
from relay.models import PacketKind
from relay.models import PrintMessage
from relay.models import TypedPacket


class PacketDecodeError(ValueError):
    pass


PRINTJSON_KINDS: dict[str, PacketKind] = {
    "ItemSend": PacketKind.ITEM_SENT,
    "ItemCheat": PacketKind.ITEM_CHEATED,
    "Hint": PacketKind.ITEM_HINTED,
    "Join": PacketKind.JOIN,
    "Part": PacketKind.LEAVE,
    "Chat": PacketKind.CHAT,
    "ServerChat": PacketKind.SERVER_CHAT,
    "Tutorial": PacketKind.TUTORIAL,
    "TagsChanged": PacketKind.TAGS_UPDATED,
    "CommandResult": PacketKind.USER_COMMAND,
    "AdminCommandResult": PacketKind.ADMIN,
    "Goal": PacketKind.GOALED,
    "Release": PacketKind.RELEASED,
    "Collect": PacketKind.COLLECTED,
    "Countdown": PacketKind.COUNTDOWN,
}

ITEM_KINDS = (PacketKind.ITEM_SENT, PacketKind.ITEM_CHEATED, PacketKind.ITEM_HINTED)


def build_connect_packet(
    slot: str,
    password: str | None = None,
    tags: Iterable[str] = DEFAULT_AP_TAGS,
    version: tuple[int, int, int] = AP_CLIENT_VERSION,
    *,
    client_uuid: str | None = None,
) -> dict[str, Any]:
    tag_list = [str(t) for t in tags]
    if "TextOnly" not in tag_list:
        tag_list.append("TextOnly")
    major, minor, build = version
    return {
        "cmd": "Connect",
        "game": "",
        "name": slot,
        "password": password or "",
        "uuid": client_uuid or uuid.uuid4().hex,
        "version": {"major": major, "minor": minor, "build": build, "class": "Version"},
        "items_handling": 0,
        "tags": tag_list,
        "slot_data": False,
    }


def build_say_packet(text: str) -> dict[str, Any]:
    return {"cmd": "Say", "text": text}


def build_get_data_package_packet(games: Iterable[str] | None = None) -> dict[str, Any]:
    packet: dict[str, Any] = {"cmd": "GetDataPackage"}
    game_list = [str(g) for g in (games or [])]
    if game_list:
        packet["games"] = game_list
    return packet


def encode_frame(packets: list[dict[str, Any]]) -> str:
    return json.dumps(packets)


def parse_frame(raw: str | bytes) -> list[dict[str, Any]]:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PacketDecodeError(f"invalid JSON frame: {e}") from e
    if isinstance(decoded, dict):
        return [decoded]
    if isinstance(decoded, list):
        return [p for p in decoded if isinstance(p, dict)]
    raise PacketDecodeError(f"unexpected frame type: {type(decoded).__name__}")


def _node_text(node: dict[str, Any], names: NameTable) -> str:
    node_type = node.get("type") or "text"
    text = node.get("text", "")
    try:
        if node_type == "player_id":
            return names.player_name(int(text))
        if node_type == "item_id":
            return names.item_name(int(text), node.get("player"))
        if node_type == "location_id":
            return names.location_name(int(text), node.get("player"))
    except (TypeError, ValueError):
        return str(text)
    return str(text)


def printjson_text(nodes: list[Any] | None, names: NameTable) -> str:
    parts = []
    for node in nodes or []:
        if isinstance(node, dict):
            parts.append(_node_text(node, names))
        elif node is not None:
            parts.append(str(node))
    return "".join(parts)


def _item_payload(kind: PacketKind, packet: dict[str, Any], names: NameTable) -> dict[str, Any]:
    item = packet.get("item")
    receiving = packet.get("receiving")
    if not isinstance(item, dict) or receiving is None or item.get("item") is None:
        raise MalformedPacketError(f"{kind.value} packet without item/receiving")
    payload: dict[str, Any] = {
        "item": names.item_name(item["item"], receiving),
        "receiver": names.player_name(receiving),
    }
    if kind != PacketKind.ITEM_CHEATED:
        payload["sender"] = names.player_name(item.get("player"))
    if item.get("location") is not None:
        payload["location"] = names.location_name(item["location"], item.get("player"))
    if kind == PacketKind.ITEM_HINTED:
        payload["found"] = bool(packet.get("found"))
    return payload


def _typed_payload(kind: PacketKind, packet: dict[str, Any], names: NameTable) -> dict[str, Any]:
    if kind in ITEM_KINDS:
        return _item_payload(kind, packet, names)
    payload: dict[str, Any] = {}
    if packet.get("slot") is not None:
        payload["player"] = names.player_name(packet["slot"])
    if packet.get("tags") is not None:
        payload["tags"] = list(packet.get("tags") or [])
    if packet.get("message") is not None:
        payload["message"] = str(packet["message"])
    if packet.get("countdown") is not None:
        payload["countdown"] = packet["countdown"]
    return payload


def to_inbound(packet: dict[str, Any], names: NameTable) -> InboundMessage | None:
    cmd = packet.get("cmd")
    if cmd == "Print":
        return PrintMessage(str(packet.get("text") or ""))
    if cmd != "PrintJSON":
        return None

    text = printjson_text(packet.get("data"), names)
    kind = PRINTJSON_KINDS.get(str(packet.get("type") or ""))
    if kind is None:
        return PrintMessage(text)

    try:
        payload = _typed_payload(kind, packet, names)
    except MalformedPacketError:
        raise
    except (TypeError, ValueError) as e:
        raise MalformedPacketError(f"{kind.value} packet with bad field: {e}") from e
    return TypedPacket(kind=kind, text=text, payload=payload)

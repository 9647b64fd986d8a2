from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class ChannelCategory(str, Enum):
    CHAT = "chat"
    TRADE = "trade"
    HINT = "hint"
    LOG = "log"


class PacketKind(str, Enum):
    JOIN = "join"
    LEAVE = "leave"
    CHAT = "chat"
    TRADE = "trade"
    HINT = "hint"
    ITEM_SENT = "item_sent"
    ITEM_HINTED = "item_hinted"
    ITEM_CHEATED = "item_cheated"
    COLLECTED = "collected"
    RELEASED = "released"
    GOALED = "goaled"
    TAGS_UPDATED = "tags_updated"
    ADMIN = "admin"
    TUTORIAL = "tutorial"
    USER_COMMAND = "user_command"
    SERVER_CHAT = "server_chat"
    MESSAGE = "message"
    COUNTDOWN = "countdown"


@dataclass(frozen=True, slots=True)
class PrintMessage:
    text: str


@dataclass(frozen=True, slots=True)
class TypedPacket:
    kind: PacketKind
    text: str
    payload: dict[str, Any] = field(default_factory=dict)


InboundMessage = Union[PrintMessage, TypedPacket]


@dataclass(frozen=True, slots=True)
class ClassifiedEvent:
    categories: tuple[ChannelCategory, ...]
    title: str
    body: str
    mentions: tuple[str, ...] = ()
    color: int = 0xEEEEEE
    fields: tuple[tuple[str, str], ...] = ()

    @property
    def category(self) -> ChannelCategory:
        return self.categories[0]

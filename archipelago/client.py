from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Iterable, Protocol

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed

from archipelago.packets import PacketDecodeError
from archipelago.packets import build_connect_packet
from archipelago.packets import build_say_packet
from archipelago.packets import encode_frame
from archipelago.packets import parse_frame
from config.defaults import DEFAULT_AP_TAGS


class ArchipelagoEvents(Protocol):
    async def on_packet(self, packet: dict[str, Any]) -> None: ...

    async def on_disconnect(self, code: int | None, reason: str) -> None: ...


def build_server_url(host: str, use_tls: bool = False) -> str:
    host = (host or "").strip()
    if not host:
        raise ValueError("game server host is empty")
    if host.startswith(("ws://", "wss://")):
        return host
    return f"{'wss' if use_tls else 'ws'}://{host}"


class ArchipelagoClient:
    """Text-only websocket client for an Archipelago multiworld server.

    The server opens with ``RoomInfo``; the client answers with ``Connect``
    and from then on hands every decoded packet to ``events.on_packet``.
    """

    def __init__(
        self,
        url: str,
        slot: str,
        password: str | None,
        events: ArchipelagoEvents,
        *,
        tags: Iterable[str] = DEFAULT_AP_TAGS,
        connect_func: Callable[..., Awaitable[Any]] = ws_connect,
    ) -> None:
        self.url = url
        self.slot = slot
        self.password = password
        self.tags = tuple(tags)
        self._events = events
        self._connect_func = connect_func
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        await self.close()
        print(f"[AP] connecting to {self.url} as slot={self.slot}")
        ws = await self._connect_func(self.url, max_size=None)
        self._closing = False
        self._ws = ws
        self._reader = asyncio.create_task(self._read_loop(ws))

    async def _send(self, packets: list[dict[str, Any]]) -> bool:
        ws = self._ws
        if ws is None:
            return False
        try:
            await ws.send(encode_frame(packets))
        except ConnectionClosed as e:
            print(f"[AP] send failed, connection closed: {e}")
            return False
        return True

    async def send_packets(self, packets: list[dict[str, Any]]) -> bool:
        return await self._send(packets)

    async def send_say(self, text: str) -> bool:
        return await self._send([build_say_packet(text)])

    async def _handle_frame(self, raw: str | bytes) -> None:
        try:
            packets = parse_frame(raw)
        except PacketDecodeError as e:
            print(f"[AP] skipping undecodable frame: {e}")
            return
        for packet in packets:
            if packet.get("cmd") == "RoomInfo":
                await self._send([build_connect_packet(self.slot, self.password, self.tags)])
            try:
                await self._events.on_packet(packet)
            except Exception as e:
                print(f"[AP] packet handler failed cmd={packet.get('cmd')}: {e}")

    async def _read_loop(self, ws: Any) -> None:
        code: int | None = None
        reason = ""
        try:
            async for raw in ws:
                await self._handle_frame(raw)
            code = getattr(ws, "close_code", None)
            reason = getattr(ws, "close_reason", None) or ""
        except ConnectionClosed as e:
            code = e.rcvd.code if e.rcvd is not None else None
            reason = e.rcvd.reason if e.rcvd is not None else str(e)
        except Exception as e:
            print(f"[AP] reader crashed: {e}")
            reason = str(e)

        if self._ws is ws:
            self._ws = None
        if self._closing:
            return
        print(f"[AP] connection closed code={code} reason={reason!r}")
        await self._events.on_disconnect(code, reason)

    async def close(self) -> None:
        ws = self._ws
        reader = self._reader
        self._closing = True
        self._ws = None
        self._reader = None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                print(f"[AP] close failed: {e}")
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

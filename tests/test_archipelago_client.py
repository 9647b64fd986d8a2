from __future__ import annotations

import asyncio
import json
import unittest

try:
    from archipelago.client import ArchipelagoClient
    from archipelago.client import build_server_url
except ModuleNotFoundError:  # pragma: no cover - environment-dependent
    ArchipelagoClient = None
    build_server_url = None


class FakeWebSocket:
    def __init__(self, frames, *, close_code=1000, close_reason=""):
        self._frames: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self._frames.put_nowait(frame)
        self.sent: list[list[dict]] = []
        self.close_code = close_code
        self.close_reason = close_reason
        self.closed = False

    def finish(self):
        self._frames.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._frames.get()
        if frame is None:
            raise StopAsyncIteration
        return frame

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True
        self.finish()


class RecordingEvents:
    def __init__(self, *, fail_on=None):
        self.packets: list[dict] = []
        self.disconnects: list[tuple] = []
        self.fail_on = fail_on
        self.disconnected = asyncio.Event()

    async def on_packet(self, packet):
        self.packets.append(packet)
        if packet.get("cmd") == self.fail_on:
            raise RuntimeError("handler boom")

    async def on_disconnect(self, code, reason):
        self.disconnects.append((code, reason))
        self.disconnected.set()


@unittest.skipIf(ArchipelagoClient is None, "websockets not installed")
class ServerUrlTests(unittest.TestCase):
    def test_scheme_follows_tls_flag(self):
        self.assertEqual(build_server_url("archipelago.gg:38281"), "ws://archipelago.gg:38281")
        self.assertEqual(build_server_url("archipelago.gg:38281", True), "wss://archipelago.gg:38281")
        self.assertEqual(build_server_url("wss://host:1"), "wss://host:1")
        with self.assertRaises(ValueError):
            build_server_url("  ")


@unittest.skipIf(ArchipelagoClient is None, "websockets not installed")
class ArchipelagoClientTests(unittest.IsolatedAsyncioTestCase):
    def _client(self, ws, events):
        async def fake_connect(url, **kwargs):
            self.connect_calls.append((url, kwargs))
            return ws

        self.connect_calls = []
        return ArchipelagoClient("ws://host:1", "RelayBot", "pw", events, connect_func=fake_connect)

    async def test_room_info_answers_with_connect(self):
        ws = FakeWebSocket([json.dumps([{"cmd": "RoomInfo", "seed_name": "abc"}])])
        events = RecordingEvents()
        client = self._client(ws, events)

        await client.connect()
        self.assertTrue(client.connected)
        ws.finish()
        await asyncio.wait_for(events.disconnected.wait(), 1)

        self.assertEqual(self.connect_calls[0][0], "ws://host:1")
        self.assertEqual(len(ws.sent), 1)
        connect_packet = ws.sent[0][0]
        self.assertEqual(connect_packet["cmd"], "Connect")
        self.assertEqual(connect_packet["name"], "RelayBot")
        self.assertEqual(connect_packet["password"], "pw")
        self.assertIn("TextOnly", connect_packet["tags"])
        self.assertEqual([p["cmd"] for p in events.packets], ["RoomInfo"])

    async def test_bad_frames_and_handler_errors_do_not_stop_reader(self):
        ws = FakeWebSocket(
            [
                "{broken",
                json.dumps({"cmd": "Print", "text": "first"}),
                json.dumps([{"cmd": "Print", "text": "second"}]),
            ]
        )
        events = RecordingEvents(fail_on="Print")
        client = self._client(ws, events)

        await client.connect()
        ws.finish()
        await asyncio.wait_for(events.disconnected.wait(), 1)

        self.assertEqual([p["text"] for p in events.packets], ["first", "second"])

    async def test_server_close_reports_disconnect(self):
        ws = FakeWebSocket([], close_code=1011, close_reason="restart")
        events = RecordingEvents()
        client = self._client(ws, events)

        await client.connect()
        ws.finish()
        await asyncio.wait_for(events.disconnected.wait(), 1)

        self.assertEqual(events.disconnects, [(1011, "restart")])
        self.assertFalse(client.connected)

    async def test_local_close_does_not_report_disconnect(self):
        ws = FakeWebSocket([])
        events = RecordingEvents()
        client = self._client(ws, events)

        await client.connect()
        await client.close()
        await asyncio.sleep(0)

        self.assertTrue(ws.closed)
        self.assertEqual(events.disconnects, [])

    async def test_send_say_without_connection_returns_false(self):
        client = self._client(FakeWebSocket([]), RecordingEvents())
        self.assertFalse(await client.send_say("hello"))

    async def test_send_say_frames_say_packet(self):
        ws = FakeWebSocket([])
        client = self._client(ws, RecordingEvents())
        await client.connect()

        self.assertTrue(await client.send_say("[Alice] hi"))
        self.assertEqual(ws.sent[-1], [{"cmd": "Say", "text": "[Alice] hi"}])
        await client.close()


if __name__ == "__main__":
    unittest.main()

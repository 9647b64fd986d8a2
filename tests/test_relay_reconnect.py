from __future__ import annotations

import asyncio
import unittest

from relay.reconnect import ReconnectState
from relay.reconnect import Reconnector


async def _drain(reconnector: Reconnector) -> None:
    while reconnector.pending_task is not None:
        await reconnector.pending_task


class ReconnectorTests(unittest.IsolatedAsyncioTestCase):
    def _make(self, outcomes: list[bool], *, max_attempts: int = 5, base: float = 5.0):
        self.delays: list[float] = []
        self.connect_calls = 0

        async def fake_sleep(delay: float) -> None:
            self.delays.append(delay)

        async def connect() -> None:
            self.connect_calls += 1
            ok = outcomes.pop(0) if outcomes else False
            if not ok:
                raise ConnectionError("refused")

        return Reconnector(connect, max_attempts=max_attempts, base_delay_seconds=base, sleep_func=fake_sleep)

    async def test_linear_backoff_until_given_up(self):
        reconnector = self._make([])
        connected = await reconnector.connect_now()
        await _drain(reconnector)

        self.assertFalse(connected)
        self.assertEqual(self.delays, [5.0, 10.0, 15.0, 20.0, 25.0])
        self.assertEqual(self.connect_calls, 6)
        self.assertEqual(reconnector.state, ReconnectState.GIVEN_UP)
        self.assertIsNone(reconnector.pending_task)

    async def test_given_up_schedules_nothing_more(self):
        reconnector = self._make([], max_attempts=2)
        await reconnector.connect_now()
        await _drain(reconnector)

        self.assertFalse(reconnector.schedule_retry())
        self.assertIsNone(reconnector.pending_task)
        self.assertEqual(self.delays, [5.0, 10.0])

    async def test_success_resets_counter(self):
        reconnector = self._make([False, False, True])
        await reconnector.connect_now()
        await _drain(reconnector)

        self.assertEqual(self.delays, [5.0, 10.0])
        self.assertEqual(reconnector.attempt_count, 0)
        self.assertEqual(reconnector.state, ReconnectState.CONNECTED)

        # a later drop starts counting from one again
        self.assertTrue(reconnector.schedule_retry())
        self.assertEqual(reconnector.attempt_count, 1)
        reconnector.cancel_retry()

    async def test_cancel_retry_clears_timer_without_connecting(self):
        gate = asyncio.Event()

        async def blocking_sleep(delay: float) -> None:
            await gate.wait()

        calls = 0

        async def connect() -> None:
            nonlocal calls
            calls += 1

        reconnector = Reconnector(connect, max_attempts=5, base_delay_seconds=1.0, sleep_func=blocking_sleep)
        self.assertTrue(reconnector.schedule_retry())
        task = reconnector.pending_task
        self.assertEqual(reconnector.state, ReconnectState.RETRY_SCHEDULED)

        reconnector.cancel_retry()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual(calls, 0)
        self.assertEqual(reconnector.attempt_count, 0)
        self.assertEqual(reconnector.state, ReconnectState.IDLE)
        self.assertIsNone(reconnector.pending_task)

    async def test_next_delay_reports_upcoming_backoff(self):
        reconnector = self._make([], base=2.0)
        self.assertEqual(reconnector.next_delay(), 2.0)
        reconnector.attempt_count = 2
        self.assertEqual(reconnector.next_delay(), 6.0)


if __name__ == "__main__":
    unittest.main()

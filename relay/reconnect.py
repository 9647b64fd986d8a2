from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable

from config.defaults import DEFAULT_MAX_RETRIES
from config.defaults import DEFAULT_RETRY_BASE_SECONDS


class ReconnectState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RETRY_SCHEDULED = "retry_scheduled"
    GIVEN_UP = "given_up"


class Reconnector:
    """Linear-backoff retry loop around an async connect function.

    Attempt N waits ``base_delay_seconds * N``. Once ``max_attempts`` retries
    have been used the reconnector stays in GIVEN_UP until ``cancel_retry``
    or ``connect_now`` is called from outside.
    """

    def __init__(
        self,
        connect_func: Callable[[], Awaitable[object]],
        *,
        max_attempts: int = DEFAULT_MAX_RETRIES,
        base_delay_seconds: float = DEFAULT_RETRY_BASE_SECONDS,
        sleep_func: Callable[[float], Awaitable[object]] = asyncio.sleep,
        label: str = "AP",
    ) -> None:
        self._connect = connect_func
        self.max_attempts = max(0, int(max_attempts))
        self.base_delay_seconds = max(0.0, float(base_delay_seconds))
        self._sleep = sleep_func
        self.label = label
        self.attempt_count = 0
        self.state = ReconnectState.IDLE
        self._pending: asyncio.Task | None = None

    @property
    def pending_task(self) -> asyncio.Task | None:
        return self._pending

    def next_delay(self) -> float:
        return self.base_delay_seconds * (self.attempt_count + 1)

    def schedule_retry(self) -> bool:
        if self.attempt_count >= self.max_attempts:
            self._clear_pending()
            self.state = ReconnectState.GIVEN_UP
            print(
                f"[{self.label}] max reconnection attempts reached ({self.max_attempts}); "
                "giving up until restarted"
            )
            return False

        self._clear_pending()
        self.attempt_count += 1
        delay = self.base_delay_seconds * self.attempt_count
        self.state = ReconnectState.RETRY_SCHEDULED
        print(f"[{self.label}] reconnection attempt #{self.attempt_count} in {delay:g}s")
        self._pending = asyncio.create_task(self._run_attempt(self.attempt_count, delay))
        return True

    async def _run_attempt(self, attempt: int, delay: float) -> None:
        await self._sleep(delay)
        # The timer has fired; from here on a reschedule must not cancel this task.
        self._pending = None
        self.state = ReconnectState.CONNECTING
        try:
            await self._connect()
        except Exception as e:
            print(f"[{self.label}] retry #{attempt} failed: {e}")
            self.schedule_retry()
            return
        print(f"[{self.label}] reconnected after {attempt} attempt(s)")
        self.mark_connected()

    async def connect_now(self) -> bool:
        self._clear_pending()
        self.state = ReconnectState.CONNECTING
        try:
            await self._connect()
        except Exception as e:
            print(f"[{self.label}] connection failed: {e}")
            self.schedule_retry()
            return False
        self.mark_connected()
        return True

    def mark_connected(self) -> None:
        self._clear_pending()
        self.attempt_count = 0
        self.state = ReconnectState.CONNECTED

    def cancel_retry(self) -> None:
        had_timer = self._pending is not None
        self._clear_pending()
        self.attempt_count = 0
        if self.state != ReconnectState.CONNECTED:
            self.state = ReconnectState.IDLE
        if had_timer:
            print(f"[{self.label}] reconnection timer cleared")

    def _clear_pending(self) -> None:
        task = self._pending
        self._pending = None
        if task is not None and not task.done():
            task.cancel()

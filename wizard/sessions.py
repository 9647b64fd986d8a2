from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from config.defaults import DEFAULT_SETUP_TTL_SECONDS


@dataclass(slots=True)
class SetupSession:
    user_id: int
    step: str
    choices: dict[str, Any] = field(default_factory=dict)
    dm_channel: Any = None
    # last bot message carrying this session's buttons
    prompt_message: Any = None
    created_at: float = 0.0
    updated_at: float = 0.0


class SetupSessionStore:
    """One in-progress setup session per user, expired after ``ttl_seconds`` idle.

    Expiry is checked lazily in ``get`` and in bulk by ``sweep_expired``, which
    the background sweeper calls on an interval.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_SETUP_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._sessions: dict[int, SetupSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _expired(self, session: SetupSession, now: float) -> bool:
        return self.ttl_seconds > 0 and (now - session.updated_at) > self.ttl_seconds

    def create(self, user_id: int, step: str, *, dm_channel: Any = None) -> SetupSession:
        now = self._clock()
        session = SetupSession(
            user_id=int(user_id),
            step=step,
            dm_channel=dm_channel,
            created_at=now,
            updated_at=now,
        )
        self._sessions[int(user_id)] = session
        return session

    def get(self, user_id: int) -> SetupSession | None:
        session = self._sessions.get(int(user_id))
        if session is None:
            return None
        if self._expired(session, self._clock()):
            del self._sessions[int(user_id)]
            return None
        return session

    def set(self, user_id: int, session: SetupSession) -> None:
        session.updated_at = self._clock()
        self._sessions[int(user_id)] = session

    def touch(self, user_id: int) -> bool:
        session = self._sessions.get(int(user_id))
        if session is None:
            return False
        session.updated_at = self._clock()
        return True

    def delete(self, user_id: int) -> bool:
        return self._sessions.pop(int(user_id), None) is not None

    def sweep_expired(self) -> int:
        now = self._clock()
        stale = [uid for uid, s in self._sessions.items() if self._expired(s, now)]
        for uid in stale:
            del self._sessions[uid]
        return len(stale)

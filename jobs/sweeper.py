from __future__ import annotations

import asyncio

from wizard.sessions import SetupSessionStore


async def setup_session_sweep_loop(
    *,
    sessions: SetupSessionStore,
    interval_seconds: float = 60,
) -> None:
    while True:
        try:
            removed = sessions.sweep_expired()
            if removed:
                print(f"[Setup] expired {removed} idle setup session(s); active={len(sessions)}")
        except Exception as e:
            print(f"[Setup] sweep loop error: {e}")
        await asyncio.sleep(max(5, float(interval_seconds)))

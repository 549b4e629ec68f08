"""
Intake sessions and the per-requester Session Store.

One ``IntakeSession`` per requester while an intake is in progress.
Sessions live in process memory only and expire after 30 minutes of
inactivity.  Expiry is evaluated lazily on ``get``; there is no
background sweep.

Concurrency: ``SessionStore.lock(key)`` serialises every read-modify-write
for one requester.  Locks are per key, so different requesters never
contend with each other.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable

from pydantic import BaseModel, Field

from bloodlink.intake.fields import REQUIRED_FIELDS, Stage

logger = logging.getLogger("intake.session")

DEFAULT_TIMEOUT_MINUTES = 30


def _now() -> datetime:
    return datetime.now(timezone.utc)


class IntakeSession(BaseModel):
    stage: Stage = Stage.INITIAL
    fields: dict[str, str] = Field(default_factory=dict)
    last_updated: datetime = Field(default_factory=_now)

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def get_field(self, name: str, default: str | None = None) -> str | None:
        return self.fields.get(name, default)

    def set_field(self, name: str, value: str) -> None:
        self.fields[name] = value

    def missing_required(self) -> list[str]:
        return [f for f in REQUIRED_FIELDS if not self.fields.get(f)]

    def reset(self) -> None:
        """Drop every collected field and go back to the first question."""
        self.fields.clear()
        self.stage = Stage.INITIAL

    def touch(self, now: datetime | None = None) -> None:
        self.last_updated = now or _now()


class _KeyLock:
    """An asyncio.Lock plus a count of coroutines holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class SessionStore:
    """
    In-memory map of requester id → IntakeSession with sliding expiry.

    ``get``/``put``/``delete`` never await, so each is atomic on the event
    loop.  Callers that read, mutate and write back a session must hold
    ``lock(key)`` for the whole turn.
    """

    def __init__(
        self,
        timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._timeout = timedelta(minutes=timeout_minutes)
        self._clock = clock
        self._sessions: dict[str, IntakeSession] = {}
        self._locks: dict[str, _KeyLock] = {}

    # ── Public API ──

    def get(self, key: str) -> IntakeSession | None:
        """Return the live session for ``key``; expired sessions are dropped."""
        session = self._sessions.get(key)
        if session is None:
            return None

        age = self._clock() - session.last_updated
        if age > self._timeout:
            logger.info(
                "Session for %s expired (idle %.0fs), discarding",
                key, age.total_seconds(),
            )
            self._sessions.pop(key, None)
            return None
        return session

    def put(self, key: str, session: IntakeSession) -> None:
        session.touch(self._clock())
        self._sessions[key] = session

    def delete(self, key: str) -> bool:
        return self._sessions.pop(key, None) is not None

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        """Per-requester mutual exclusion."""
        entry = self._locks.get(key)
        if entry is None:
            entry = _KeyLock()
            self._locks[key] = entry
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(key, None)

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def lock_count(self) -> int:
        return len(self._locks)

"""
Tests for intake sessions and the per-requester Session Store.

Tests cover:
  - put / get / delete
  - Lazy 30-minute expiry, sliding on every put
  - Per-requester serialisation under lock(key)
  - Different requesters never block each other
  - Lock entries are released once idle
"""

import asyncio

import pytest

from bloodlink.intake.fields import Stage
from bloodlink.intake.session import IntakeSession, SessionStore


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  IntakeSession
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestIntakeSession:

    def test_new_session_starts_initial_and_empty(self):
        session = IntakeSession()
        assert session.stage is Stage.INITIAL
        assert session.fields == {}

    def test_missing_required_lists_uncollected(self):
        session = IntakeSession(fields={"blood_type": "A+", "hospital": "Square Hospital"})
        missing = session.missing_required()
        assert "blood_type" not in missing
        assert "location" in missing
        assert "hemoglobin_point" not in missing  # optional

    def test_reset_clears_fields(self, complete_fields):
        session = IntakeSession(stage=Stage.CONFIRMATION, fields=dict(complete_fields))
        session.reset()
        assert session.stage is Stage.INITIAL
        assert session.fields == {}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Store Basics
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestStoreBasics:

    def test_get_unknown_returns_none(self, store):
        assert store.get("nobody") is None

    def test_put_then_get(self, store, clock):
        session = IntakeSession()
        store.put("user-1", session)
        assert store.get("user-1") is session
        assert session.last_updated == clock.now

    def test_delete(self, store):
        store.put("user-1", IntakeSession())
        assert store.delete("user-1") is True
        assert store.delete("user-1") is False
        assert store.get("user-1") is None

    def test_active_count(self, store):
        store.put("user-1", IntakeSession())
        store.put("user-2", IntakeSession())
        assert store.active_count == 2


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Expiry
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestExpiry:

    def test_session_alive_at_thirty_minutes(self, store, clock):
        store.put("user-1", IntakeSession())
        clock.advance(30)
        assert store.get("user-1") is not None

    def test_session_discarded_after_thirty_one_minutes(self, store, clock):
        store.put("user-1", IntakeSession())
        clock.advance(31)
        assert store.get("user-1") is None
        assert store.active_count == 0

    def test_put_slides_the_window(self, store, clock):
        session = IntakeSession()
        store.put("user-1", session)
        clock.advance(20)
        store.put("user-1", session)
        clock.advance(20)
        assert store.get("user-1") is session

    def test_custom_timeout(self, clock):
        store = SessionStore(timeout_minutes=5, clock=clock)
        store.put("user-1", IntakeSession())
        clock.advance(6)
        assert store.get("user-1") is None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Locking
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestLocking:

    @pytest.mark.asyncio
    async def test_same_key_is_serialised(self, store):
        """Critical sections for one requester never interleave."""
        trace = []

        async def turn(label):
            async with store.lock("user-1"):
                trace.append(f"{label}-start")
                await asyncio.sleep(0.01)
                trace.append(f"{label}-end")

        await asyncio.gather(turn("a"), turn("b"), turn("c"))

        assert trace == ["a-start", "a-end", "b-start", "b-end", "c-start", "c-end"]

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self, store):
        release = asyncio.Event()
        entered = []

        async def slow():
            async with store.lock("user-1"):
                entered.append("user-1")
                await release.wait()

        async def fast():
            async with store.lock("user-2"):
                entered.append("user-2")

        slow_task = asyncio.create_task(slow())
        await asyncio.sleep(0)
        await asyncio.wait_for(fast(), timeout=1)
        assert entered == ["user-1", "user-2"]

        release.set()
        await slow_task

    @pytest.mark.asyncio
    async def test_read_modify_write_is_not_lost(self, store):
        store.put("user-1", IntakeSession(fields={"count": "0"}))

        async def increment():
            async with store.lock("user-1"):
                session = store.get("user-1")
                value = int(session.get_field("count"))
                await asyncio.sleep(0)
                session.set_field("count", str(value + 1))
                store.put("user-1", session)

        await asyncio.gather(*(increment() for _ in range(20)))
        assert store.get("user-1").get_field("count") == "20"

    @pytest.mark.asyncio
    async def test_lock_entries_released_when_idle(self, store):
        async with store.lock("user-1"):
            assert store.lock_count() == 1
        assert store.lock_count() == 0

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self, store):
        with pytest.raises(RuntimeError):
            async with store.lock("user-1"):
                raise RuntimeError("boom")
        assert store.lock_count() == 0
        async with store.lock("user-1"):
            pass

"""
Tests for the Intake Engine entry point.

Tests cover:
  - Intent starts an intake; bare mentions go to the fallback
  - Expired sessions are re-evaluated by the intent detector
  - Full conversation from intent to committed record
  - Concurrent messages for one requester are linearised
  - Abort and message truncation
"""

import asyncio

import pytest

from bloodlink.intake.fields import FIELDS, OPENING_PROMPT, Stage


async def _say(engine, *messages, requester="user-1"):
    replies = []
    for message in messages:
        replies.append(await engine.process_message(requester, message))
    return replies


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Routing
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestRouting:

    @pytest.mark.asyncio
    async def test_handle_message_reports_stage(self, engine):
        opened = await engine.handle_message("user-1", "create blood request")
        chatted = await engine.handle_message("user-2", "hello")

        assert opened.text == OPENING_PROMPT
        assert opened.stage is Stage.INITIAL
        assert chatted.text == "Fallback reply"
        assert chatted.stage is None

    @pytest.mark.asyncio
    async def test_intent_opens_session(self, engine, store, fallback):
        reply = await engine.process_message("user-1", "I want to create blood request")

        assert reply == OPENING_PROMPT
        assert store.get("user-1").stage is Stage.INITIAL
        assert fallback.calls == []

    @pytest.mark.asyncio
    async def test_bare_blood_goes_to_fallback(self, engine, store, fallback):
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
        reply = await engine.process_message("user-1", "blood", history)

        assert reply == "Fallback reply"
        assert fallback.calls == [("blood", history)]
        assert store.get("user-1") is None

    @pytest.mark.asyncio
    async def test_active_session_never_reaches_fallback(self, engine, fallback):
        await _say(engine, "need blood urgently", "what?")
        assert fallback.calls == []
        assert engine.current_stage("user-1") is Stage.INITIAL

    @pytest.mark.asyncio
    async def test_expired_session_reevaluated_by_intent(self, engine, clock, fallback):
        await _say(engine, "create blood request", "A+")
        assert engine.current_stage("user-1") is Stage.HOSPITAL

        clock.advance(31)
        reply = await engine.process_message("user-1", "Square Hospital")

        assert reply == "Fallback reply"
        assert engine.current_stage("user-1") is None

    @pytest.mark.asyncio
    async def test_expired_session_restarts_on_intent(self, engine, clock, store):
        await _say(engine, "create blood request", "A+")
        clock.advance(31)

        reply = await engine.process_message("user-1", "create blood request")

        assert reply == OPENING_PROMPT
        assert store.get("user-1").fields == {}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Full Journey
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestFullJourney:

    @pytest.mark.asyncio
    async def test_intent_to_committed_record(self, engine, store, repository):
        replies = await _say(
            engine,
            "Please help, I need blood urgently",
            "B positive",
            "Square Hospital",
            "16 West Panthapath, Dhaka",
            "Dhanmondi",
            "Open heart surgery",
            "we need 3 bags",
            "tomorrow",
            "10:30 AM",
            "skip",
            "Please call before coming",
        )

        assert replies[0] == OPENING_PROMPT
        assert replies[1].startswith("Great! You need B+ blood.")
        assert replies[6].endswith(FIELDS["date"].prompt)
        assert "Date: 11/03/2025" in replies[-1]
        assert replies[-1].endswith("Is this information correct? (Yes/No)")
        assert engine.current_stage("user-1") is Stage.CONFIRMATION

        final = await engine.process_message("user-1", "Yes")

        assert final.startswith("✅ Success!")
        assert store.get("user-1") is None
        record = repository.list_by_requester("user-1")[0]
        assert record.blood_type == "B+"
        assert record.bag_needed == "3"
        assert record.hemoglobin_point == "Not specified"
        assert record.additional_info == "Please call before coming"

    @pytest.mark.asyncio
    async def test_rejecting_summary_restarts(self, engine, store, repository):
        await _say(
            engine,
            "create blood request", "O-", "Square Hospital", "Panthapath, Dhaka",
            "Dhanmondi", "Anemia", "2", "today", "14:00", "9", "skip",
        )
        reply = await engine.process_message("user-1", "No, that's wrong")

        assert reply.startswith("I'm sorry about that. Let's start over.")
        assert store.get("user-1").stage is Stage.INITIAL
        assert store.get("user-1").fields == {}
        assert len(repository) == 0


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Concurrency
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_messages_apply_in_order(self, engine, store):
        await _say(engine, "create blood request")

        await asyncio.gather(
            engine.process_message("user-1", "A-"),
            engine.process_message("user-1", "Square Hospital"),
            engine.process_message("user-1", "Panthapath, Dhaka"),
        )

        session = store.get("user-1")
        assert session.stage is Stage.ZONE
        assert session.fields == {
            "blood_type": "A-",
            "hospital": "Square Hospital",
            "location": "Panthapath, Dhaka",
        }

    @pytest.mark.asyncio
    async def test_requesters_are_isolated(self, engine, store):
        await asyncio.gather(
            _say(engine, "create blood request", "AB+", requester="alice"),
            _say(engine, "create blood request", "O-", requester="bob"),
        )
        assert store.get("alice").get_field("blood_type") == "AB+"
        assert store.get("bob").get_field("blood_type") == "O-"
        assert store.lock_count() == 0

    @pytest.mark.asyncio
    async def test_each_reply_carries_its_own_stage(self, engine):
        await _say(engine, "create blood request")

        first, second = await asyncio.gather(
            engine.handle_message("user-1", "A+"),
            engine.handle_message("user-1", "Square Hospital"),
        )

        assert first.stage is Stage.HOSPITAL
        assert first.text.endswith(FIELDS["hospital"].prompt)
        assert second.stage is Stage.LOCATION
        assert second.text.endswith(FIELDS["location"].prompt)
        assert engine.current_stage("user-1") is Stage.LOCATION


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Abort / Limits
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestAbortAndLimits:

    @pytest.mark.asyncio
    async def test_abort(self, engine, store):
        await _say(engine, "create blood request")
        assert await engine.abort("user-1") is True
        assert await engine.abort("user-1") is False
        assert store.get("user-1") is None

    @pytest.mark.asyncio
    async def test_long_message_truncated(self, engine, fallback):
        engine.max_message_length = 50
        await engine.process_message("user-1", "x" * 500)
        assert len(fallback.calls[0][0]) == 50

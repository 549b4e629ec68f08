"""
Shared fixtures for the BloodLink test suite.

External collaborators (Gemini, GCS) are replaced with in-process fakes so
tests run fast and offline.  "Today" is pinned so date rules are stable.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from bloodlink.intake.commit import CommitController
from bloodlink.intake.dialogue import DialogueStateMachine
from bloodlink.intake.engine import IntakeEngine
from bloodlink.intake.fallback import FallbackResponder
from bloodlink.intake.fields import Stage
from bloodlink.intake.repository import InMemoryBloodRequestRepository
from bloodlink.intake.session import IntakeSession, SessionStore

TODAY = date(2025, 3, 10)


# ─── Fakes ───


class FakeClock:
    """Settable UTC clock for SessionStore expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


class FakeFallback(FallbackResponder):
    """Records every call and answers with a fixed string."""

    def __init__(self, reply: str = "Fallback reply"):
        self.reply = reply
        self.calls: list[tuple[str, list]] = []

    async def respond(self, text, history):
        self.calls.append((text, list(history)))
        return self.reply


# ─── Fixtures ───


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(timeout_minutes=30, clock=clock)


@pytest.fixture
def repository():
    return InMemoryBloodRequestRepository()


@pytest.fixture
def fallback():
    return FakeFallback()


@pytest.fixture
def dialogue():
    return DialogueStateMachine(today=lambda: TODAY)


@pytest.fixture
def commit(repository, store):
    return CommitController(repository, store, today=lambda: TODAY)


@pytest.fixture
def engine(store, dialogue, commit, fallback):
    return IntakeEngine(store=store, dialogue=dialogue, commit=commit, fallback=fallback)


@pytest.fixture
def complete_fields():
    """Every field collected, as the session holds them at confirmation."""
    return {
        "blood_type": "O+",
        "hospital": "Dhaka Medical College Hospital",
        "location": "Bakshibazar, Dhaka",
        "zone": "Lalbagh",
        "patient_problem": "Thalassemia transfusion",
        "bag_needed": "2",
        "date": "12/03/2025",
        "time": "14:30",
        "hemoglobin_point": "8.5",
        "additional_info": "",
    }


@pytest.fixture
def confirming_session(complete_fields):
    return IntakeSession(stage=Stage.CONFIRMATION, fields=dict(complete_fields))

"""
Intake Setup: wires together the intake engine and its collaborators.

Called once during app startup.  Tests call ``initialize_engine`` directly
with fakes for the repository and fallback responder.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from bloodlink import settings
from bloodlink.intake.commit import CommitController
from bloodlink.intake.dialogue import DialogueStateMachine
from bloodlink.intake.engine import IntakeEngine
from bloodlink.intake.fallback import (
    FallbackResponder,
    GeminiFallbackResponder,
    StaticFallbackResponder,
)
from bloodlink.intake.history import ConversationStore
from bloodlink.intake.repository import (
    BloodRequestRepository,
    GCSBloodRequestRepository,
    InMemoryBloodRequestRepository,
)
from bloodlink.intake.session import SessionStore

logger = logging.getLogger("intake.setup")

# Module-level singletons (set during initialize)
_engine: IntakeEngine | None = None
_repository: BloodRequestRepository | None = None
_conversation_store: ConversationStore | None = None


def _default_repository() -> BloodRequestRepository:
    if settings.REQUEST_STORE == "gcs":
        logger.info("Blood requests stored in GCS bucket %s", settings.GCS_BUCKET_NAME)
        return GCSBloodRequestRepository(settings.GCS_BUCKET_NAME)
    if settings.REQUEST_STORE != "memory":
        logger.warning(
            "Unknown REQUEST_STORE %r, falling back to in-memory storage",
            settings.REQUEST_STORE,
        )
    return InMemoryBloodRequestRepository()


def _default_fallback() -> FallbackResponder:
    if not settings.GOOGLE_API_KEY:
        logger.warning("GOOGLE_API_KEY not set, general chat will answer with a fixed apology")
        return StaticFallbackResponder()
    return GeminiFallbackResponder(
        model_name=settings.FALLBACK_MODEL,
        max_history=settings.MAX_HISTORY,
    )


def initialize_engine(
    repository: BloodRequestRepository | None = None,
    fallback: FallbackResponder | None = None,
    today: Callable[[], date] = date.today,
    store: SessionStore | None = None,
) -> IntakeEngine:
    """Build the engine and its collaborators and publish them as singletons."""
    global _engine, _repository, _conversation_store

    logger.info("Initializing BloodLink intake engine...")

    _repository = repository or _default_repository()
    store = store or SessionStore(timeout_minutes=settings.SESSION_TIMEOUT_MINUTES)
    fallback = fallback or _default_fallback()

    _engine = IntakeEngine(
        store=store,
        dialogue=DialogueStateMachine(today=today),
        commit=CommitController(_repository, store, today=today),
        fallback=fallback,
        max_message_length=settings.MAX_MESSAGE_LENGTH,
    )
    _conversation_store = ConversationStore()

    logger.info(
        "Intake engine initialized: repository=%s, fallback=%s",
        type(_repository).__name__, type(fallback).__name__,
    )
    return _engine


def reset() -> None:
    """Forget the singletons (used between tests)."""
    global _engine, _repository, _conversation_store
    _engine = None
    _repository = None
    _conversation_store = None


def get_engine() -> IntakeEngine | None:
    return _engine


def get_repository() -> BloodRequestRepository | None:
    return _repository


def get_conversation_store() -> ConversationStore | None:
    return _conversation_store

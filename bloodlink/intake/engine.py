"""
Intake Engine: the single inbound entry point.

Per message:

  1. Under the requester's lock, look up the live session (expired ones
     are dropped by the store).
  2. Active session: one dialogue step.  A confirmed summary goes to the
     commit controller; anything else is written back to the store.
  3. No session but the message expresses intake intent: open a session
     and ask for the blood type.
  4. Otherwise the message is handed to the fallback responder, outside
     the lock, since it never touches session state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bloodlink.intake import intent
from bloodlink.intake.commit import CommitController
from bloodlink.intake.dialogue import DialogueStateMachine, TurnOutcome
from bloodlink.intake.fallback import FallbackResponder
from bloodlink.intake.fields import OPENING_PROMPT, Stage
from bloodlink.intake.session import IntakeSession, SessionStore

logger = logging.getLogger("intake.engine")

DEFAULT_MAX_MESSAGE_LENGTH = 10_000


@dataclass
class EngineReply:
    text: str
    # Stage of the requester's session right after this message, read under
    # the same lock; None when no intake is in progress
    stage: Stage | None = None


class IntakeEngine:

    def __init__(
        self,
        store: SessionStore,
        dialogue: DialogueStateMachine,
        commit: CommitController,
        fallback: FallbackResponder,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ) -> None:
        self.store = store
        self.dialogue = dialogue
        self.commit = commit
        self.fallback = fallback
        self.max_message_length = max_message_length

    async def process_message(
        self,
        requester_id: str,
        text: str,
        history: list[dict[str, str]] | None = None,
    ) -> str:
        """Handle one inbound message and return the reply to show verbatim."""
        return (await self.handle_message(requester_id, text, history)).text

    async def handle_message(
        self,
        requester_id: str,
        text: str,
        history: list[dict[str, str]] | None = None,
    ) -> EngineReply:
        """
        Handle one inbound message; the reply carries the resulting stage.

        ``history`` is only forwarded to the fallback responder; the intake
        flow itself is driven entirely by the stored session.
        """
        if len(text) > self.max_message_length:
            logger.warning(
                "Message from %s truncated from %d to %d chars",
                requester_id, len(text), self.max_message_length,
            )
            text = text[: self.max_message_length]

        async with self.store.lock(requester_id):
            session = self.store.get(requester_id)

            if session is not None:
                turn = self.dialogue.step(session, text)
                if turn.outcome is TurnOutcome.CONFIRMED:
                    reply = await self.commit.commit(requester_id, session)
                    return EngineReply(reply, self.current_stage(requester_id))
                self.store.put(requester_id, session)
                return EngineReply(turn.reply, session.stage)

            if intent.detect(text):
                logger.info(
                    "Intake started for %s (matched %r)",
                    requester_id, intent.matched_phrase(text),
                )
                self.store.put(requester_id, IntakeSession())
                return EngineReply(OPENING_PROMPT, Stage.INITIAL)

        logger.debug("No intake for %s, using fallback responder", requester_id)
        return EngineReply(await self.fallback.respond(text, history or []))

    def current_stage(self, requester_id: str) -> Stage | None:
        session = self.store.get(requester_id)
        return session.stage if session is not None else None

    async def abort(self, requester_id: str) -> bool:
        """Discard an in-progress intake.  Returns False if there was none."""
        async with self.store.lock(requester_id):
            removed = self.store.delete(requester_id)
        if removed:
            logger.info("Intake aborted for %s", requester_id)
        return removed

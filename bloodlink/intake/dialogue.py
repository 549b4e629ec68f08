"""
Dialogue State Machine: advances an intake session by one message.

Deterministic, no LLM.  Each turn:

  1. Opportunistic backfill: any not-yet-collected field recognisable in
     the message (blood type, hospital, location, zone, patient problem,
     bag count) is stored.  Fields already set are never overwritten.
  2. Stage dispatch: the handler for ``session.stage`` runs the stage's
     extractor and validator, then either advances or re-prompts.

Backfill is a hint, not an answer: every stage is still asked in order, and
the answer given at a stage replaces whatever the backfill stored for it.

The session-age check happens before this, in ``SessionStore.get``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable

from bloodlink.intake.commit import (
    CONFIRM_REPROMPT,
    RESTART_PROMPT,
    is_affirmative,
    is_negative,
    render_summary,
)
from bloodlink.intake.extractors import extract_date, extract_opportunistic
from bloodlink.intake.fields import (
    FIELDS,
    NEXT_STAGE,
    NOT_SPECIFIED,
    FieldDescriptor,
    Stage,
    field_for_stage,
)
from bloodlink.intake.session import IntakeSession
from bloodlink.intake.validators import validate_date

logger = logging.getLogger("intake.dialogue")

SKIP_WORDS = ("skip", "unknown")

_STILL_NEED_BLOOD_TYPE = (
    "I still need to know what blood type you're looking for. Please specify "
    "one of the following: A+, A-, B+, B-, AB+, AB-, O+, or O-."
)


class TurnOutcome(str, Enum):
    ADVANCED = "advanced"
    EXTRACTION_MISS = "extraction_miss"        # nothing usable found, re-prompt
    VALIDATION_FAILURE = "validation_failure"  # found, but out of range
    RESET = "reset"                            # requester rejected the summary
    CONFIRMED = "confirmed"                    # commit controller takes over


@dataclass
class Turn:
    outcome: TurnOutcome
    reply: str = ""
    backfilled: list[str] = field(default_factory=list)


class DialogueStateMachine:
    """Pure over (session, message): mutates the session, returns a Turn."""

    def __init__(self, today: Callable[[], date] = date.today) -> None:
        self._today = today
        self._handlers: dict[Stage, Callable[[IntakeSession, str], Turn]] = {
            Stage.INITIAL: self._handle_blood_type,
            Stage.BLOOD_TYPE: self._handle_blood_type,
            Stage.HOSPITAL: self._handle_free_text,
            Stage.LOCATION: self._handle_free_text,
            Stage.ZONE: self._handle_free_text,
            Stage.PATIENT_PROBLEM: self._handle_free_text,
            Stage.BAG_NEEDED: self._handle_bag_count,
            Stage.DATE: self._handle_date,
            Stage.TIME: self._handle_time,
            Stage.HEMOGLOBIN_POINT: self._handle_hemoglobin,
            Stage.ADDITIONAL_INFO: self._handle_additional_info,
            Stage.CONFIRMATION: self._handle_confirmation,
        }

    def step(self, session: IntakeSession, message: str) -> Turn:
        backfilled = self.backfill(session, message)
        if backfilled:
            logger.debug("Backfilled %s at stage %s", backfilled, session.stage.value)

        turn = self._handlers[session.stage](session, message)
        turn.backfilled = backfilled
        return turn

    def backfill(self, session: IntakeSession, message: str) -> list[str]:
        """Store every recognisable field that is not collected yet."""
        filled = []
        for name, value in extract_opportunistic(message).items():
            if not session.has_field(name):
                session.set_field(name, value)
                filled.append(name)
        return filled

    # ── Transitions ──

    def _advance(
        self,
        session: IntakeSession,
        descriptor: FieldDescriptor,
        value: str,
        acknowledgement: str | None = None,
    ) -> Turn:
        session.set_field(descriptor.name, value)
        previous = session.stage

        stage = NEXT_STAGE[previous]
        session.stage = stage
        logger.info("Intake stage %s -> %s", previous.value, stage.value)

        parts = [acknowledgement or descriptor.acknowledge(value), field_for_stage(stage).prompt]
        return Turn(TurnOutcome.ADVANCED, " ".join(p for p in parts if p))

    @staticmethod
    def _reprompt(session: IntakeSession, outcome: TurnOutcome, reply: str) -> Turn:
        logger.debug("Re-prompting at stage %s (%s)", session.stage.value, outcome.value)
        return Turn(outcome, reply)

    # ── Stage handlers ──

    def _handle_blood_type(self, session: IntakeSession, message: str) -> Turn:
        descriptor = FIELDS["blood_type"]
        retry = session.stage is Stage.BLOOD_TYPE

        value = descriptor.extractor(message)
        if value is None:
            reply = _STILL_NEED_BLOOD_TYPE if retry else descriptor.reprompt
            return self._reprompt(session, TurnOutcome.EXTRACTION_MISS, reply)

        acknowledgement = f"Thank you! You need {value} blood." if retry else None
        return self._advance(session, descriptor, value, acknowledgement)

    def _handle_free_text(self, session: IntakeSession, message: str) -> Turn:
        descriptor = field_for_stage(session.stage)
        value = descriptor.extractor(message)
        if value is None:
            return self._reprompt(session, TurnOutcome.EXTRACTION_MISS, descriptor.reprompt)
        return self._advance(session, descriptor, value)

    def _handle_bag_count(self, session: IntakeSession, message: str) -> Turn:
        descriptor = FIELDS["bag_needed"]
        value = descriptor.extractor(message)
        if value is None:
            return self._reprompt(session, TurnOutcome.EXTRACTION_MISS, descriptor.reprompt)
        if not descriptor.validator(value):
            return self._reprompt(
                session, TurnOutcome.VALIDATION_FAILURE, descriptor.invalid_prompt
            )
        return self._advance(session, descriptor, value)

    def _handle_date(self, session: IntakeSession, message: str) -> Turn:
        descriptor = FIELDS["date"]
        today = self._today()
        value = extract_date(message, today=today)
        if value is None:
            return self._reprompt(session, TurnOutcome.EXTRACTION_MISS, descriptor.reprompt)
        if not validate_date(value, today=today):
            return self._reprompt(
                session, TurnOutcome.VALIDATION_FAILURE, descriptor.invalid_prompt
            )
        return self._advance(session, descriptor, value)

    def _handle_time(self, session: IntakeSession, message: str) -> Turn:
        descriptor = FIELDS["time"]
        value = descriptor.extractor(message)
        if value is None or not descriptor.validator(value):
            return self._reprompt(session, TurnOutcome.EXTRACTION_MISS, descriptor.reprompt)
        return self._advance(session, descriptor, value)

    def _handle_hemoglobin(self, session: IntakeSession, message: str) -> Turn:
        descriptor = FIELDS["hemoglobin_point"]
        if message.strip().lower() in SKIP_WORDS:
            return self._advance(session, descriptor, NOT_SPECIFIED, "That's fine.")

        value = descriptor.extractor(message)
        if value is None:
            return self._reprompt(session, TurnOutcome.EXTRACTION_MISS, descriptor.reprompt)
        if not descriptor.validator(value):
            return self._reprompt(
                session, TurnOutcome.VALIDATION_FAILURE, descriptor.invalid_prompt
            )
        return self._advance(session, descriptor, value)

    def _handle_additional_info(self, session: IntakeSession, message: str) -> Turn:
        descriptor = FIELDS["additional_info"]
        value = "" if "skip" in message.lower() else descriptor.extractor(message)
        session.set_field(descriptor.name, value)
        session.stage = Stage.CONFIRMATION
        logger.info("Intake stage %s -> %s", Stage.ADDITIONAL_INFO.value, Stage.CONFIRMATION.value)
        return Turn(TurnOutcome.ADVANCED, render_summary(session.fields))

    def _handle_confirmation(self, session: IntakeSession, message: str) -> Turn:
        if is_affirmative(message):
            return Turn(TurnOutcome.CONFIRMED)
        if is_negative(message):
            session.reset()
            logger.info("Summary rejected, intake reset to %s", Stage.INITIAL.value)
            return Turn(TurnOutcome.RESET, RESTART_PROMPT)
        return self._reprompt(session, TurnOutcome.EXTRACTION_MISS, CONFIRM_REPROMPT)

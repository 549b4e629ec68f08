"""
Confirmation / Commit Controller.

Renders the confirmation summary, interprets the requester's yes/no reply,
and on "yes" turns the session into an ``IntakeDraft`` and hands it to the
persistence collaborator.

Repair policy: values that were accepted earlier but no longer validate
(bag count, hemoglobin, date) are silently replaced by their catalog
defaults.  The requester has already confirmed the summary, so the commit
never fails on them.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from pydantic import BaseModel

from bloodlink.intake.fields import FIELDS, NOT_SPECIFIED, Stage
from bloodlink.intake.repository import BloodRequestRepository
from bloodlink.intake.session import IntakeSession, SessionStore
from bloodlink.intake.validators import (
    validate_blood_bags,
    validate_date,
    validate_hemoglobin,
)

logger = logging.getLogger("intake.commit")

AFFIRMATIVE_WORDS = ("yes", "correct", "right")
NEGATIVE_WORDS = ("no", "wrong", "incorrect")

CONFIRM_REPROMPT = "Please confirm if the information is correct by saying 'Yes' or 'No'."

RESTART_PROMPT = (
    "I'm sorry about that. Let's start over. What blood type do you need? "
    "(A+, A-, B+, B-, AB+, AB-, O+, O-)"
)

MISSING_INFO_PROMPT = (
    "I'm missing some required information. Let's start over. "
    "What blood type do you need?"
)

PERSISTENCE_APOLOGY = (
    "I'm sorry, I couldn't create your blood request due to a technical issue. "
    "Please try using the 'Create Request' feature directly from the app menu."
)

_SUMMARY_ORDER = (
    "blood_type", "hospital", "location", "zone", "patient_problem",
    "bag_needed", "date", "time",
)


def is_affirmative(message: str) -> bool:
    lowered = message.lower()
    # "incorrect" contains "correct"
    if "incorrect" in lowered:
        return False
    # Plain substring match, and checked before the negatives: "No, that's not
    # right" is a yes because of "right"
    return any(word in lowered for word in AFFIRMATIVE_WORDS)


def is_negative(message: str) -> bool:
    lowered = message.lower()
    return any(word in lowered for word in NEGATIVE_WORDS)


def render_summary(fields: dict[str, str]) -> str:
    """Confirmation prompt listing everything collected so far."""
    lines = [
        "Thank you for providing all the details. "
        "Please confirm the following information:",
        "",
    ]
    for name in _SUMMARY_ORDER:
        lines.append(f"{FIELDS[name].label}: {fields.get(name, '')}")

    hemoglobin = fields.get("hemoglobin_point")
    if hemoglobin and hemoglobin != NOT_SPECIFIED:
        lines.append(f"{FIELDS['hemoglobin_point'].label}: {hemoglobin}")

    additional = fields.get("additional_info")
    if additional:
        lines.append(f"{FIELDS['additional_info'].label}: {additional}")

    lines.append("")
    lines.append("Is this information correct? (Yes/No)")
    return "\n".join(lines)


class IntakeDraft(BaseModel):
    """Complete, validated field set at the moment of commit."""

    blood_type: str
    hospital: str
    location: str
    zone: str
    patient_problem: str
    bag_needed: str
    date: str
    time: str
    hemoglobin_point: str = NOT_SPECIFIED
    additional_info: str = ""


def render_success(draft: IntakeDraft, record_id: str) -> str:
    lines = [
        "✅ Success! I've created a blood request for you with the following details:",
        "",
    ]
    for name in _SUMMARY_ORDER:
        lines.append(f"{FIELDS[name].label}: {getattr(draft, name)}")

    if draft.hemoglobin_point != NOT_SPECIFIED:
        lines.append(f"{FIELDS['hemoglobin_point'].label}: {draft.hemoglobin_point} g/dL")
    else:
        lines.append(f"{FIELDS['hemoglobin_point'].label}: {NOT_SPECIFIED}")
    lines.append(f"{FIELDS['additional_info'].label}: {draft.additional_info or 'None'}")
    lines.append(f"Request ID: {record_id}")
    lines.append("")
    lines.append(
        "Your request is now active and potential donors can see it. You can "
        "check the status of your request in the \"My Requests\" section. "
        "Is there anything else you need help with?"
    )
    return "\n".join(lines)


class CommitController:
    """Creates the final record on confirmation, then clears the session."""

    def __init__(
        self,
        repository: BloodRequestRepository,
        store: SessionStore,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._repository = repository
        self._store = store
        self._today = today

    def build_draft(self, session: IntakeSession) -> IntakeDraft:
        """Project session fields into a draft, repairing stale values."""
        today = self._today()
        fields = dict(session.fields)

        if not validate_blood_bags(fields.get("bag_needed", "")):
            fields["bag_needed"] = FIELDS["bag_needed"].default(today)

        hemoglobin = fields.get("hemoglobin_point") or NOT_SPECIFIED
        if hemoglobin != NOT_SPECIFIED and not validate_hemoglobin(hemoglobin):
            hemoglobin = FIELDS["hemoglobin_point"].default(today)
        fields["hemoglobin_point"] = hemoglobin

        if not validate_date(fields.get("date", ""), today=today):
            fields["date"] = FIELDS["date"].default(today)

        fields.setdefault("additional_info", "")
        return IntakeDraft(**{k: v for k, v in fields.items() if k in IntakeDraft.model_fields})

    async def commit(self, requester_id: str, session: IntakeSession) -> str:
        """
        Persist the confirmed request.

        Returns the message for the requester.  Afterwards the store holds
        either the session reset to INITIAL (fields missing) or no session
        at all (committed, or persistence failed).
        """
        missing = session.missing_required()
        if missing:
            logger.warning(
                "Confirmation for %s with missing fields %s, restarting intake",
                requester_id, missing,
            )
            session.stage = Stage.INITIAL
            self._store.put(requester_id, session)
            return MISSING_INFO_PROMPT

        draft = self.build_draft(session)
        try:
            record_id = await self._repository.create_blood_request_record(
                requester_id=requester_id, **draft.model_dump()
            )
        except Exception as exc:
            logger.error(
                "Failed to create blood request for %s: %s",
                requester_id, exc, exc_info=True,
            )
            self._store.delete(requester_id)
            return PERSISTENCE_APOLOGY

        self._store.delete(requester_id)
        logger.info("Intake committed for %s as record %s", requester_id, record_id)
        return render_success(draft, record_id)


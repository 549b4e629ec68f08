"""Intent detection: should this message open a blood request intake?"""

from __future__ import annotations

# Multi-word phrases only: a bare "blood" is an ordinary question, not an intent.
INTENT_PHRASES: tuple[str, ...] = (
    "create blood request",
    "need blood donation",
    "request blood donation",
    "looking for blood donor",
    "need blood urgently",
    "blood donation request",
)


def matched_phrase(message: str) -> str | None:
    lowered = message.lower()
    for phrase in INTENT_PHRASES:
        if phrase in lowered:
            return phrase
    return None


def detect(message: str) -> bool:
    """True iff the message contains one of the intake trigger phrases."""
    return matched_phrase(message) is not None

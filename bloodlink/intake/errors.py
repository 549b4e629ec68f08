"""
Intake errors.

Extraction misses and validation failures never surface as exceptions;
the dialogue recovers from them by re-prompting.  Only persistence
problems cross the core boundary as raised errors.
"""

from __future__ import annotations


class IntakeError(Exception):
    pass


class PersistenceError(IntakeError):
    """Raised when the record store is unreachable or rejects a write."""
    pass


class RecordNotFoundError(IntakeError):
    pass

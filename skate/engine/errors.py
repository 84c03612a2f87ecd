"""
skate.engine.errors — Typed rejection reasons
===============================================

Every rejection the rules engine or the service layer can produce.  Each
error carries the HTTP status it maps to so the API layer needs a single
exception handler.
"""

from __future__ import annotations


class SkateError(Exception):
    """Base class for recoverable, request-level errors."""

    kind = "SkateError"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.message, "error": self.kind}


class NotFound(SkateError):
    kind = "NotFound"
    status_code = 404


class InvalidState(SkateError):
    """The action is not legal for the challenge's current status."""
    kind = "InvalidState"


class NotYourTurn(SkateError):
    kind = "NotYourTurn"
    status_code = 403


class SelfJoin(SkateError):
    kind = "SelfJoin"


class ValidationError(SkateError):
    kind = "ValidationError"


class ConcurrentModification(SkateError):
    """Raised after the compare-and-swap retry budget is exhausted."""
    kind = "ConcurrentModification"
    status_code = 409


class StaleRecord(Exception):
    """Store signal: ``expected_version`` no longer matches the stored record."""

    def __init__(self, challenge_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Challenge {challenge_id} is at version {actual}, expected {expected}"
        )
        self.challenge_id = challenge_id
        self.expected = expected
        self.actual = actual

"""
skate.engine.rules — Challenge State Machine
==============================================

Pure functions only.  No storage, no HTTP, no clock reads: the caller
passes ``now`` and the current :class:`Challenge`, and gets back a
:class:`Transition` describing the fields to change (or a typed error).

State machine on ``status``::

    open   --(join: opponent != creator)---------> active
    active --(acting player's letters == SKATE)---> completed
    active --(now > expires_at, no attempt)-------> expired

``completed`` and ``expired`` are terminal.  An open challenge never
expires or completes.

Letters always accrue to the player who *misses*, in the fixed order
S → K → A → T → E.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from skate.constants import (
    DEFAULT_TURN_WINDOW,
    DIFFICULTY_MAX,
    DIFFICULTY_MIN,
    SKATE_WORD,
    TRICK_MAX_LENGTH,
)
from skate.engine.errors import InvalidState, NotYourTurn, SelfJoin, ValidationError
from skate.engine.records import Challenge, ChallengeStatus

__all__ = [
    "AttemptDraft",
    "Transition",
    "advance_status",
    "award_letter",
    "check_expiry",
    "is_valid_letters",
    "join",
    "new_challenge_fields",
    "next_letter",
    "other_participant",
    "record_attempt",
    "validate_patch",
]

_FORWARD: dict[ChallengeStatus, frozenset[ChallengeStatus]] = {
    ChallengeStatus.OPEN: frozenset({ChallengeStatus.ACTIVE}),
    ChallengeStatus.ACTIVE: frozenset({ChallengeStatus.COMPLETED, ChallengeStatus.EXPIRED}),
    ChallengeStatus.COMPLETED: frozenset(),
    ChallengeStatus.EXPIRED: frozenset(),
}

# PATCH field classes
MEDIA_FIELDS = frozenset({"video_url", "video_thumbnail"})
# Wire (camelCase) names used in error messages
MEDIA_WIRE_NAMES = {"video_url": "videoUrl", "video_thumbnail": "videoThumbnail"}
STAKE_FIELDS = frozenset({"difficulty", "buy_in"})
RULE_FIELDS = frozenset({
    "status",
    "creator_letters",
    "opponent_letters",
    "current_turn",
    "opponent_id",
    "expires_at",
    "loser_id",
})
IMMUTABLE_FIELDS = frozenset({
    "id", "creator_id", "trick", "created_at", "updated_at", "version",
})


# ---------------------------------------------------------------------------
# Transition — output of every rule
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AttemptDraft:
    """The trick attempt a transition wants recorded."""

    user_id: str
    landed: bool
    video_url: str | None = None


@dataclass(frozen=True, slots=True)
class Transition:
    """Fields to merge onto the challenge, plus an optional attempt."""

    changes: dict[str, Any] = field(default_factory=dict)
    attempt: AttemptDraft | None = None

    @property
    def new_status(self) -> ChallengeStatus | None:
        return self.changes.get("status")


# ---------------------------------------------------------------------------
# Letter helpers
# ---------------------------------------------------------------------------
def is_valid_letters(letters: str) -> bool:
    """True when *letters* is a prefix of SKATE (the empty string included)."""
    return len(letters) <= len(SKATE_WORD) and SKATE_WORD.startswith(letters)


def next_letter(letters: str) -> str:
    """The letter a player earns on their next miss."""
    if not is_valid_letters(letters):
        raise ValueError(f"Corrupt letter string: {letters!r}")
    if len(letters) == len(SKATE_WORD):
        raise InvalidState("Player has already spelled SKATE")
    return SKATE_WORD[len(letters)]


def other_participant(challenge: Challenge, user_id: str) -> str:
    if user_id == challenge.creator_id and challenge.opponent_id is not None:
        return challenge.opponent_id
    if user_id == challenge.opponent_id:
        return challenge.creator_id
    raise ValidationError(f"User {user_id} is not a participant in this challenge")


def advance_status(current: ChallengeStatus, target: ChallengeStatus) -> ChallengeStatus:
    """Validate a forward-only status move and return *target*."""
    if target not in _FORWARD[current]:
        raise InvalidState(f"Challenge is {current}; cannot move to {target}")
    return target


def _letter_changes(challenge: Challenge, user_id: str) -> dict[str, Any]:
    """Give *user_id* their next letter; finish the game on SKATE."""
    letters_field = "creator_letters" if user_id == challenge.creator_id else "opponent_letters"
    letters = challenge.letters_for(user_id) + next_letter(challenge.letters_for(user_id))
    changes: dict[str, Any] = {letters_field: letters}
    if letters == SKATE_WORD:
        changes.update(
            status=advance_status(challenge.status, ChallengeStatus.COMPLETED),
            current_turn=None,
            expires_at=None,
            loser_id=user_id,
        )
    return changes


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------
def _check_difficulty(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("difficulty must be an integer")
    if not DIFFICULTY_MIN <= value <= DIFFICULTY_MAX:
        raise ValidationError(
            f"difficulty must be between {DIFFICULTY_MIN} and {DIFFICULTY_MAX}"
        )
    return value


def _check_buy_in(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("buyIn must be an integer number of cents")
    if value < 0:
        raise ValidationError("buyIn cannot be negative")
    return value


def _check_media(name: str, value: Any) -> str | None:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{name} must be a string or null")
    return value


def new_challenge_fields(
    *,
    creator_id: str,
    trick: str,
    difficulty: int = 1,
    buy_in: int = 0,
    video_url: str | None = None,
    video_thumbnail: str | None = None,
) -> dict[str, Any]:
    """Validate create input; the store fills in ids, timestamps and defaults."""
    if not creator_id or not creator_id.strip():
        raise ValidationError("creatorId is required")
    trick = (trick or "").strip()
    if not trick:
        raise ValidationError("trick is required")
    if len(trick) > TRICK_MAX_LENGTH:
        raise ValidationError(f"trick must be at most {TRICK_MAX_LENGTH} characters")
    return {
        "creator_id": creator_id,
        "trick": trick,
        "difficulty": _check_difficulty(difficulty),
        "buy_in": _check_buy_in(buy_in),
        "video_url": _check_media("videoUrl", video_url),
        "video_thumbnail": _check_media("videoThumbnail", video_thumbnail),
    }


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------
def join(
    challenge: Challenge,
    user_id: str,
    *,
    now: datetime,
    turn_window: timedelta = DEFAULT_TURN_WINDOW,
) -> Transition:
    """Second player accepts an open challenge and attempts first."""
    if challenge.status != ChallengeStatus.OPEN:
        raise InvalidState("Challenge is not open")
    if user_id == challenge.creator_id:
        raise SelfJoin("You cannot join your own challenge")
    return Transition(changes={
        "opponent_id": user_id,
        "status": advance_status(challenge.status, ChallengeStatus.ACTIVE),
        "current_turn": user_id,
        "expires_at": now + turn_window,
    })


# ---------------------------------------------------------------------------
# Record attempt outcome
# ---------------------------------------------------------------------------
def record_attempt(
    challenge: Challenge,
    user_id: str,
    landed: bool,
    *,
    now: datetime,
    turn_window: timedelta = DEFAULT_TURN_WINDOW,
    video_url: str | None = None,
) -> Transition:
    """The turn holder reports whether they landed the trick.

    Landed: nobody gets a letter.  Missed: the acting player gets the
    next letter.  Either way the turn passes and the deadline resets,
    unless the miss spelled SKATE, which ends the challenge.
    """
    if challenge.status != ChallengeStatus.ACTIVE:
        raise InvalidState("Challenge is not active")
    if user_id != challenge.current_turn:
        raise NotYourTurn("It is not your turn")

    changes: dict[str, Any] = {
        "current_turn": other_participant(challenge, user_id),
        "expires_at": now + turn_window,
    }
    if not landed:
        changes.update(_letter_changes(challenge, user_id))

    return Transition(
        changes=changes,
        attempt=AttemptDraft(user_id=user_id, landed=landed, video_url=video_url),
    )


# ---------------------------------------------------------------------------
# Expire check
# ---------------------------------------------------------------------------
def check_expiry(challenge: Challenge, now: datetime) -> Transition | None:
    """Forfeit the turn holder once the deadline has passed.

    Returns ``None`` when nothing changes.
    """
    if challenge.status != ChallengeStatus.ACTIVE or challenge.expires_at is None:
        return None
    if now <= challenge.expires_at:
        return None
    return Transition(changes={
        "status": advance_status(challenge.status, ChallengeStatus.EXPIRED),
        "loser_id": challenge.current_turn,
        "current_turn": None,
        "expires_at": None,
    })


# ---------------------------------------------------------------------------
# Generic PATCH — only fields the rules do not own
# ---------------------------------------------------------------------------
def validate_patch(challenge: Challenge, fields: dict[str, Any]) -> Transition:
    """Screen a partial update before it reaches the store.

    Media references may change on any live challenge; stakes only while
    the challenge is still open.  Everything else is owned by the state
    machine or immutable.
    """
    if not fields:
        raise ValidationError("No fields to update")

    rule_owned = sorted(RULE_FIELDS.intersection(fields))
    if rule_owned:
        raise ValidationError(
            f"Fields {rule_owned} change only through join, attempts or an admin override"
        )
    frozen = sorted(IMMUTABLE_FIELDS.intersection(fields))
    if frozen:
        raise ValidationError(f"Fields {frozen} are immutable")
    unknown = sorted(set(fields) - MEDIA_FIELDS - STAKE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields {unknown}")

    if challenge.is_terminal:
        raise InvalidState(f"Challenge is {challenge.status}; no further changes allowed")
    if STAKE_FIELDS.intersection(fields) and challenge.status != ChallengeStatus.OPEN:
        raise InvalidState("Difficulty and buy-in are fixed once the challenge is joined")

    changes: dict[str, Any] = {}
    for key, value in fields.items():
        if key == "difficulty":
            changes[key] = _check_difficulty(value)
        elif key == "buy_in":
            changes[key] = _check_buy_in(value)
        else:
            changes[key] = _check_media(MEDIA_WIRE_NAMES[key], value)
    return Transition(changes=changes)


# ---------------------------------------------------------------------------
# Admin override — deliberately outside the normal turn rules
# ---------------------------------------------------------------------------
def award_letter(challenge: Challenge, user_id: str) -> Transition:
    """Hand *user_id* their next letter regardless of whose turn it is.

    Used only by the audited admin path.  The turn and deadline are left
    alone unless the letter finishes the game.
    """
    if challenge.status != ChallengeStatus.ACTIVE:
        raise InvalidState("Letters can only be awarded on an active challenge")
    if user_id not in (challenge.creator_id, challenge.opponent_id):
        raise ValidationError(f"User {user_id} is not a participant in this challenge")
    return Transition(changes=_letter_changes(challenge, user_id))

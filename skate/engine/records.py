"""
skate.engine.records — Challenge, TrickAttempt and User records
=================================================================

Plain immutable records shared by the rules engine, the stores and the
API.  Stores hand out these snapshots; a mutation produces a new record
via :func:`dataclasses.replace`, never an in-place edit.

JSON uses camelCase (``creatorId``); Python attributes are snake_case.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

__all__ = [
    "AuditEntry",
    "Challenge",
    "ChallengeStatus",
    "TERMINAL_STATUSES",
    "TrickAttempt",
    "User",
    "utcnow",
]


def utcnow() -> datetime:
    return datetime.now(UTC)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class ChallengeStatus(enum.StrEnum):
    """Lifecycle of a challenge.  Only ever moves left to right."""
    OPEN = "open"
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


TERMINAL_STATUSES: frozenset[ChallengeStatus] = frozenset({
    ChallengeStatus.COMPLETED,
    ChallengeStatus.EXPIRED,
})


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class User:
    id: str
    username: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username}


# ---------------------------------------------------------------------------
# Challenge
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Challenge:
    """One SKATE contest between a creator and (once joined) an opponent."""

    id: str
    creator_id: str
    trick: str
    status: ChallengeStatus = ChallengeStatus.OPEN
    opponent_id: str | None = None
    creator_letters: str = ""
    opponent_letters: str = ""
    current_turn: str | None = None
    expires_at: datetime | None = None
    difficulty: int = 1
    buy_in: int = 0
    video_url: str | None = None
    video_thumbnail: str | None = None
    loser_id: str | None = None
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def winner_id(self) -> str | None:
        if self.loser_id is None:
            return None
        if self.loser_id == self.creator_id:
            return self.opponent_id
        return self.creator_id

    def letters_for(self, user_id: str) -> str:
        if user_id == self.creator_id:
            return self.creator_letters
        if user_id == self.opponent_id:
            return self.opponent_letters
        raise KeyError(user_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "creatorId": self.creator_id,
            "opponentId": self.opponent_id,
            "trick": self.trick,
            "status": str(self.status),
            "creatorLetters": self.creator_letters,
            "opponentLetters": self.opponent_letters,
            "currentTurn": self.current_turn,
            "expiresAt": _iso(self.expires_at),
            "difficulty": self.difficulty,
            "buyIn": self.buy_in,
            "videoUrl": self.video_url,
            "videoThumbnail": self.video_thumbnail,
            "loserId": self.loser_id,
            "winnerId": self.winner_id,
            "version": self.version,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


# Maps the camelCase wire names onto record attributes.
CHALLENGE_JSON_FIELDS: dict[str, str] = {
    "id": "id",
    "creatorId": "creator_id",
    "opponentId": "opponent_id",
    "trick": "trick",
    "status": "status",
    "creatorLetters": "creator_letters",
    "opponentLetters": "opponent_letters",
    "currentTurn": "current_turn",
    "expiresAt": "expires_at",
    "difficulty": "difficulty",
    "buyIn": "buy_in",
    "videoUrl": "video_url",
    "videoThumbnail": "video_thumbnail",
    "loserId": "loser_id",
    "version": "version",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


# ---------------------------------------------------------------------------
# Trick attempt — append-only
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TrickAttempt:
    id: str
    challenge_id: str
    user_id: str
    landed: bool
    video_url: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "challengeId": self.challenge_id,
            "userId": self.user_id,
            "videoUrl": self.video_url,
            "landed": self.landed,
            "timestamp": _iso(self.timestamp),
        }


# ---------------------------------------------------------------------------
# Audit entry — one per admin override
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AuditEntry:
    id: str
    actor_id: str
    action: str
    challenge_id: str
    before: dict | None
    after: dict | None
    reason: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "actorId": self.actor_id,
            "action": self.action,
            "challengeId": self.challenge_id,
            "before": self.before,
            "after": self.after,
            "reason": self.reason,
            "timestamp": _iso(self.timestamp),
        }

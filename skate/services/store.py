"""
skate.services.store — Challenge Store interface + in-memory store
====================================================================

The store is a dumb keyed container.  It assigns ids, timestamps and
defaults, and it stamps every update with a new ``version`` so callers
can do compare-and-swap.  It never enforces game rules — that is the job
of :mod:`skate.engine.rules`, applied by the service before an update.

:meth:`ChallengeStore.commit_transition` is the one write path for a rule
outcome: the versioned challenge update, the trick attempt it produced
and the admin audit entry (if any) land together or not at all.

Two implementations share the :class:`ChallengeStore` interface:

* :class:`MemoryChallengeStore` — dicts behind one lock, lost on restart.
* :class:`skate.services.sql_store.SqlChallengeStore` — SQLAlchemy.
"""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any

from skate.engine.errors import StaleRecord, ValidationError
from skate.engine.records import (
    AuditEntry,
    Challenge,
    ChallengeStatus,
    TrickAttempt,
    User,
    utcnow,
)

# Fields the store owns; callers can never overwrite them through update.
STORE_OWNED_FIELDS = frozenset({"id", "version", "created_at", "updated_at"})

ATTEMPT_FIELDS = frozenset({"challenge_id", "user_id", "landed", "video_url"})


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class Commit:
    """Everything one :meth:`ChallengeStore.commit_transition` wrote."""

    challenge: Challenge
    attempt: TrickAttempt | None = None
    audit: AuditEntry | None = None


class ChallengeStore(ABC):
    """Keyed persistence for challenges, attempts, users and audit entries."""

    # -- Challenges ---------------------------------------------------------
    @abstractmethod
    def create_challenge(self, fields: dict[str, Any]) -> Challenge: ...

    @abstractmethod
    def get_challenge(self, challenge_id: str) -> Challenge | None: ...

    @abstractmethod
    def list_challenges(self) -> list[Challenge]: ...

    @abstractmethod
    def commit_transition(
        self,
        challenge_id: str,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
        attempt: dict[str, Any] | None = None,
        audit: dict[str, Any] | None = None,
    ) -> Commit | None:
        """Merge *fields* and journal *attempt* / *audit* in one atomic write.

        *attempt* carries ``user_id``, ``landed`` and ``video_url``;
        *audit* carries ``actor_id``, ``action``, ``before`` and ``reason``.
        The store fills in ids, timestamps, ``challenge_id`` and the audit
        ``after`` snapshot.  Returns ``None`` if the id is unknown.  Raises
        :class:`StaleRecord` when *expected_version* no longer matches.  If
        anything fails, nothing is written.
        """

    def update_challenge(
        self,
        challenge_id: str,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> Challenge | None:
        """Merge *fields*, refresh ``updated_at`` and bump ``version``.

        Returns ``None`` if the id is unknown.  Raises :class:`StaleRecord`
        (and changes nothing) when *expected_version* is given and no
        longer matches.
        """
        commit = self.commit_transition(
            challenge_id, fields, expected_version=expected_version
        )
        return commit.challenge if commit else None

    def list_challenges_for_user(self, user_id: str) -> list[Challenge]:
        return [
            c for c in self.list_challenges()
            if user_id in (c.creator_id, c.opponent_id)
        ]

    # -- Attempts -----------------------------------------------------------
    @abstractmethod
    def create_attempt(self, fields: dict[str, Any]) -> TrickAttempt: ...

    @abstractmethod
    def list_attempts(self, challenge_id: str) -> list[TrickAttempt]: ...

    def _attempt_values(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Check an attempt payload and stamp its id and timestamp."""
        missing = sorted({"challenge_id", "user_id", "landed"} - set(fields))
        unknown = sorted(set(fields) - ATTEMPT_FIELDS)
        if missing or unknown:
            raise ValidationError(f"Bad attempt fields: missing {missing}, unknown {unknown}")
        if not isinstance(fields["landed"], bool):
            raise ValidationError("landed must be a boolean")
        return {"video_url": None, **fields, "id": new_id(), "timestamp": utcnow()}

    # -- Users --------------------------------------------------------------
    @abstractmethod
    def create_user(self, username: str, user_id: str | None = None) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    def list_users(self) -> list[User]:
        """Ordered by username."""

    # -- Audit --------------------------------------------------------------
    @abstractmethod
    def add_audit_entry(
        self,
        *,
        actor_id: str,
        action: str,
        challenge_id: str,
        before: dict | None,
        after: dict | None,
        reason: str | None = None,
    ) -> AuditEntry: ...

    @abstractmethod
    def list_audit_entries(self, limit: int = 100) -> list[AuditEntry]:
        """Most recent first."""

    def _audit_values(
        self,
        *,
        actor_id: str,
        action: str,
        challenge_id: str,
        before: dict | None,
        after: dict | None,
        reason: str | None = None,
    ) -> dict[str, Any]:
        if not actor_id or not action:
            raise ValidationError("Audit entries need an actor and an action")
        return {
            "id": new_id(),
            "actor_id": actor_id,
            "action": action,
            "challenge_id": challenge_id,
            "before": before,
            "after": after,
            "reason": reason,
            "timestamp": utcnow(),
        }


def challenge_defaults(fields: dict[str, Any]) -> dict[str, Any]:
    """Apply creation defaults the way both stores do."""
    now = utcnow()
    owned = STORE_OWNED_FIELDS.intersection(fields)
    if owned:
        raise ValidationError(f"Fields {sorted(owned)} are assigned by the store")
    values = {
        "status": ChallengeStatus.OPEN,
        "opponent_id": None,
        "creator_letters": "",
        "opponent_letters": "",
        "current_turn": None,
        "expires_at": None,
        "video_url": None,
        "video_thumbnail": None,
        "loser_id": None,
        **fields,
        "id": new_id(),
        "version": 1,
        "created_at": now,
        "updated_at": now,
    }
    values["status"] = ChallengeStatus(values["status"])
    return values


def update_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Reject store-owned keys and normalize ``status``."""
    owned = STORE_OWNED_FIELDS.intersection(fields)
    if owned:
        raise ValidationError(f"Fields {sorted(owned)} are assigned by the store")
    if "status" in fields:
        return {**fields, "status": ChallengeStatus(fields["status"])}
    return dict(fields)


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------
class MemoryChallengeStore(ChallengeStore):
    """Non-durable store.  One lock guards every read-modify-write.

    Dicts preserve insertion order, which gives ``list_challenges`` its
    creation ordering.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._challenges: dict[str, Challenge] = {}
        self._attempts: dict[str, TrickAttempt] = {}
        self._users: dict[str, User] = {}
        self._audit: list[AuditEntry] = []

    # -- Challenges ---------------------------------------------------------
    def create_challenge(self, fields: dict[str, Any]) -> Challenge:
        challenge = Challenge(**challenge_defaults(fields))
        with self._lock:
            self._challenges[challenge.id] = challenge
        return challenge

    def get_challenge(self, challenge_id: str) -> Challenge | None:
        with self._lock:
            return self._challenges.get(challenge_id)

    def list_challenges(self) -> list[Challenge]:
        with self._lock:
            return list(self._challenges.values())

    def commit_transition(
        self,
        challenge_id: str,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
        attempt: dict[str, Any] | None = None,
        audit: dict[str, Any] | None = None,
    ) -> Commit | None:
        fields = update_values(fields)
        with self._lock:
            current = self._challenges.get(challenge_id)
            if current is None:
                return None
            if expected_version is not None and current.version != expected_version:
                raise StaleRecord(challenge_id, expected_version, current.version)

            # Build every record before touching shared state
            updated = replace(
                current,
                **fields,
                version=current.version + 1,
                updated_at=utcnow(),
            )
            new_attempt = None
            if attempt is not None:
                new_attempt = TrickAttempt(
                    **self._attempt_values({**attempt, "challenge_id": challenge_id})
                )
            entry = None
            if audit is not None:
                entry = AuditEntry(**self._audit_values(
                    **audit, challenge_id=challenge_id, after=updated.to_dict(),
                ))

            self._challenges[challenge_id] = updated
            if new_attempt is not None:
                self._attempts[new_attempt.id] = new_attempt
            if entry is not None:
                self._audit.append(entry)
            return Commit(updated, new_attempt, entry)

    # -- Attempts -----------------------------------------------------------
    def create_attempt(self, fields: dict[str, Any]) -> TrickAttempt:
        attempt = TrickAttempt(**self._attempt_values(fields))
        with self._lock:
            self._attempts[attempt.id] = attempt
        return attempt

    def list_attempts(self, challenge_id: str) -> list[TrickAttempt]:
        with self._lock:
            return [a for a in self._attempts.values() if a.challenge_id == challenge_id]

    # -- Users --------------------------------------------------------------
    def create_user(self, username: str, user_id: str | None = None) -> User:
        user = User(id=user_id or new_id(), username=username)
        with self._lock:
            if user.id in self._users:
                raise ValidationError(f"User id {user.id} already exists")
            if any(u.username == username for u in self._users.values()):
                raise ValidationError(f"Username {username!r} is taken")
            self._users[user.id] = user
        return user

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> User | None:
        with self._lock:
            return next((u for u in self._users.values() if u.username == username), None)

    def list_users(self) -> list[User]:
        with self._lock:
            return sorted(self._users.values(), key=lambda u: u.username)

    # -- Audit --------------------------------------------------------------
    def add_audit_entry(
        self,
        *,
        actor_id: str,
        action: str,
        challenge_id: str,
        before: dict | None,
        after: dict | None,
        reason: str | None = None,
    ) -> AuditEntry:
        entry = AuditEntry(**self._audit_values(
            actor_id=actor_id,
            action=action,
            challenge_id=challenge_id,
            before=before,
            after=after,
            reason=reason,
        ))
        with self._lock:
            self._audit.append(entry)
        return entry

    def list_audit_entries(self, limit: int = 100) -> list[AuditEntry]:
        with self._lock:
            return list(reversed(self._audit))[:limit]

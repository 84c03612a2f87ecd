"""
skate.services.challenge_service — Rules → Store orchestration
================================================================

Every mutation follows the same read-modify-write cycle:

  1. Read the current record from the store
  2. Apply the lazy expire check (an overdue turn forfeits first)
  3. Ask :mod:`skate.engine.rules` for the transition (or a typed error)
  4. Commit with ``commit_transition(..., expected_version=record.version)``,
     together with the trick attempt or audit entry the step produced
  5. On :class:`StaleRecord`, re-read and start over (bounded)

Step 4 is the only place challenge records change after creation, so two
requests racing on one challenge cannot both apply: the loser re-reads,
sees the winner's state, and gets the rule's verdict on *that*.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict
from datetime import datetime, timedelta

from skate.constants import DEFAULT_TURN_WINDOW
from skate.engine import rules
from skate.engine.errors import ConcurrentModification, NotFound, StaleRecord, ValidationError
from skate.engine.records import (
    Challenge,
    ChallengeStatus,
    TrickAttempt,
    User,
    utcnow,
)
from skate.engine.rules import Transition
from skate.services.store import ChallengeStore, Commit

logger = logging.getLogger(__name__)

MAX_CAS_RETRIES = 5

# A rule: (current challenge, now) -> transition or None for "no change"
Rule = Callable[[Challenge, datetime], Transition | None]


class ChallengeService:
    """Stateless between calls; all state lives in the store."""

    def __init__(
        self,
        store: ChallengeStore,
        *,
        turn_window: timedelta = DEFAULT_TURN_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.turn_window = turn_window
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    # -------------------------------------------------------------------
    # Core cycle
    # -------------------------------------------------------------------
    def _require(self, challenge_id: str) -> Challenge:
        challenge = self.store.get_challenge(challenge_id)
        if challenge is None:
            raise NotFound(f"Challenge {challenge_id} not found")
        return challenge

    def _apply(
        self,
        current: Challenge,
        transition: Transition | None,
        audit: dict | None = None,
    ) -> Commit:
        if transition is None or not (transition.changes or transition.attempt):
            return Commit(current)
        commit = self.store.commit_transition(
            current.id,
            transition.changes,
            expected_version=current.version,
            attempt=asdict(transition.attempt) if transition.attempt else None,
            audit={**audit, "before": current.to_dict()} if audit else None,
        )
        if commit is None:
            raise NotFound(f"Challenge {current.id} not found")
        if transition.new_status is not None:
            logger.info(
                "Challenge %s: %s → %s", current.id, current.status, commit.challenge.status
            )
        return commit

    def transition(self, challenge_id: str, rule: Rule, *, audit: dict | None = None) -> Commit:
        """Run *rule* against the freshest record and commit it atomically.

        *audit* (``actor_id``, ``action``, ``reason``) asks the store to
        journal an admin audit entry in the same write; the ``before``
        snapshot is the record the rule saw.  Returns the :class:`Commit`.
        Typed rule errors propagate unchanged.
        """
        for attempt in range(1, MAX_CAS_RETRIES + 1):
            current = self._require(challenge_id)
            now = self.now()
            try:
                current = self._apply(current, rules.check_expiry(current, now)).challenge
                return self._apply(current, rule(current, now), audit)
            except StaleRecord as exc:
                logger.debug("Retrying challenge %s after CAS miss (%d/%d): %s",
                             challenge_id, attempt, MAX_CAS_RETRIES, exc)
        logger.warning("Giving up on challenge %s after %d CAS misses",
                       challenge_id, MAX_CAS_RETRIES)
        raise ConcurrentModification(
            "Challenge is being modified concurrently; please retry"
        )

    def _refresh(self, challenge: Challenge) -> Challenge:
        """Lazy expire check for read paths."""
        if rules.check_expiry(challenge, self.now()) is None:
            return challenge
        return self.expire_overdue(challenge.id)

    # -------------------------------------------------------------------
    # Challenges
    # -------------------------------------------------------------------
    def create_challenge(
        self,
        *,
        creator_id: str,
        trick: str,
        difficulty: int = 1,
        buy_in: int = 0,
        video_url: str | None = None,
        video_thumbnail: str | None = None,
    ) -> Challenge:
        fields = rules.new_challenge_fields(
            creator_id=creator_id,
            trick=trick,
            difficulty=difficulty,
            buy_in=buy_in,
            video_url=video_url,
            video_thumbnail=video_thumbnail,
        )
        challenge = self.store.create_challenge(fields)
        logger.info(
            "Challenge %s created by %s: %r (difficulty=%d, buy_in=%d)",
            challenge.id, creator_id, challenge.trick, challenge.difficulty, challenge.buy_in,
        )
        return challenge

    def get_challenge(self, challenge_id: str) -> Challenge:
        return self._refresh(self._require(challenge_id))

    def list_challenges(self, status: ChallengeStatus | None = None) -> list[Challenge]:
        challenges = [self._refresh(c) for c in self.store.list_challenges()]
        if status is not None:
            challenges = [c for c in challenges if c.status == status]
        return challenges

    def list_user_challenges(self, user_id: str) -> list[Challenge]:
        return [self._refresh(c) for c in self.store.list_challenges_for_user(user_id)]

    def patch_challenge(self, challenge_id: str, fields: dict) -> Challenge:
        updated = self.transition(
            challenge_id, lambda c, now: rules.validate_patch(c, fields)
        ).challenge
        logger.info("Challenge %s patched: %s", challenge_id, sorted(fields))
        return updated

    def join_challenge(self, challenge_id: str, user_id: str) -> Challenge:
        if not user_id:
            raise ValidationError("userId is required")
        updated = self.transition(
            challenge_id,
            lambda c, now: rules.join(c, user_id, now=now, turn_window=self.turn_window),
        ).challenge
        logger.info("User %s joined challenge %s", user_id, challenge_id)
        return updated

    # -------------------------------------------------------------------
    # Attempts
    # -------------------------------------------------------------------
    def record_attempt(
        self,
        challenge_id: str,
        user_id: str,
        landed: bool,
        video_url: str | None = None,
    ) -> tuple[TrickAttempt, Challenge]:
        """Apply the turn holder's outcome and journal the attempt in one write."""
        commit = self.transition(
            challenge_id,
            lambda c, now: rules.record_attempt(
                c, user_id, landed,
                now=now, turn_window=self.turn_window, video_url=video_url,
            ),
        )
        updated = commit.challenge
        logger.info(
            "Challenge %s: %s %s (creator=%r, opponent=%r)",
            challenge_id, user_id, "landed" if landed else "missed",
            updated.creator_letters, updated.opponent_letters,
        )
        return commit.attempt, updated

    def list_attempts(self, challenge_id: str) -> list[TrickAttempt]:
        self._require(challenge_id)
        return self.store.list_attempts(challenge_id)

    # -------------------------------------------------------------------
    # Expiry
    # -------------------------------------------------------------------
    def expire_overdue(self, challenge_id: str) -> Challenge:
        """Commit the expire check for one challenge; a no-op when not due."""
        return self.transition(challenge_id, lambda c, now: None).challenge

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------
    def list_users(self) -> list[User]:
        return self.store.list_users()

    def create_user(self, username: str, user_id: str | None = None) -> User:
        username = (username or "").strip()
        if not username:
            raise ValidationError("username is required")
        user = self.store.create_user(username, user_id=user_id)
        logger.info("User %s registered as %r", user.id, user.username)
        return user

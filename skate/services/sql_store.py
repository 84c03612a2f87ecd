"""
skate.services.sql_store — SQLAlchemy-backed Challenge Store
==============================================================

Durable implementation of :class:`skate.services.store.ChallengeStore`.

Compare-and-swap is a single statement::

    UPDATE challenges SET ..., version = version + 1
    WHERE id = :id AND version = :expected

so two API workers racing on the same challenge cannot both win, even
across processes.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError

from skate.database.engine import get_session
from skate.database.models import AdminLogRow, ChallengeRow, TrickAttemptRow, UserRow
from skate.engine.errors import StaleRecord, ValidationError
from skate.engine.records import (
    AuditEntry,
    Challenge,
    ChallengeStatus,
    TrickAttempt,
    User,
    utcnow,
)
from skate.services.store import (
    ChallengeStore,
    Commit,
    challenge_defaults,
    new_id,
    update_values,
)

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; every timestamp we write is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_challenge(row: ChallengeRow) -> Challenge:
    return Challenge(
        id=row.id,
        creator_id=row.creator_id,
        trick=row.trick,
        status=ChallengeStatus(row.status),
        opponent_id=row.opponent_id,
        creator_letters=row.creator_letters,
        opponent_letters=row.opponent_letters,
        current_turn=row.current_turn,
        expires_at=_aware(row.expires_at),
        difficulty=row.difficulty,
        buy_in=row.buy_in,
        video_url=row.video_url,
        video_thumbnail=row.video_thumbnail,
        loser_id=row.loser_id,
        version=row.version,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _to_attempt(row: TrickAttemptRow) -> TrickAttempt:
    return TrickAttempt(
        id=row.id,
        challenge_id=row.challenge_id,
        user_id=row.user_id,
        landed=row.landed,
        video_url=row.video_url,
        timestamp=_aware(row.timestamp),
    )


def _audit_row(values: dict[str, Any]) -> AdminLogRow:
    values = dict(values)
    return AdminLogRow(
        before_snapshot=values.pop("before"),
        after_snapshot=values.pop("after"),
        **values,
    )


def _to_audit(row: AdminLogRow) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        actor_id=row.actor_id,
        action=row.action,
        challenge_id=row.challenge_id,
        before=row.before_snapshot,
        after=row.after_snapshot,
        reason=row.reason,
        timestamp=_aware(row.timestamp),
    )


class SqlChallengeStore(ChallengeStore):
    """Challenge store on any SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -- Challenges ---------------------------------------------------------
    def create_challenge(self, fields: dict[str, Any]) -> Challenge:
        values = challenge_defaults(fields)
        values["status"] = str(values["status"])
        with get_session(self.engine) as session:
            row = ChallengeRow(**values)
            session.add(row)
            session.flush()
            return _to_challenge(row)

    def get_challenge(self, challenge_id: str) -> Challenge | None:
        with get_session(self.engine) as session:
            row = session.scalar(select(ChallengeRow).where(ChallengeRow.id == challenge_id))
            return _to_challenge(row) if row else None

    def list_challenges(self) -> list[Challenge]:
        with get_session(self.engine) as session:
            rows = session.scalars(select(ChallengeRow).order_by(ChallengeRow.seq)).all()
            return [_to_challenge(r) for r in rows]

    def list_challenges_for_user(self, user_id: str) -> list[Challenge]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(ChallengeRow)
                .where(
                    (ChallengeRow.creator_id == user_id)
                    | (ChallengeRow.opponent_id == user_id)
                )
                .order_by(ChallengeRow.seq)
            ).all()
            return [_to_challenge(r) for r in rows]

    def commit_transition(
        self,
        challenge_id: str,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
        attempt: dict[str, Any] | None = None,
        audit: dict[str, Any] | None = None,
    ) -> Commit | None:
        values = update_values(fields)
        if "status" in values:
            values["status"] = str(values["status"])

        stmt = (
            update(ChallengeRow)
            .where(ChallengeRow.id == challenge_id)
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(ChallengeRow.version == expected_version)
        stmt = stmt.values(
            **values,
            version=ChallengeRow.version + 1,
            updated_at=utcnow(),
        )

        # One session: the UPDATE and the journal rows commit or roll back together
        with get_session(self.engine) as session:
            result = session.execute(stmt)
            row = session.scalar(select(ChallengeRow).where(ChallengeRow.id == challenge_id))
            if row is None:
                return None
            if result.rowcount == 0:
                logger.debug(
                    "CAS miss on challenge %s (expected v%s, stored v%d)",
                    challenge_id, expected_version, row.version,
                )
                raise StaleRecord(challenge_id, expected_version or 0, row.version)
            challenge = _to_challenge(row)

            attempt_row = None
            if attempt is not None:
                attempt_row = TrickAttemptRow(
                    **self._attempt_values({**attempt, "challenge_id": challenge_id})
                )
                session.add(attempt_row)
            audit_row = None
            if audit is not None:
                audit_row = _audit_row(self._audit_values(
                    **audit, challenge_id=challenge_id, after=challenge.to_dict(),
                ))
                session.add(audit_row)
            session.flush()

            return Commit(
                challenge,
                _to_attempt(attempt_row) if attempt_row is not None else None,
                _to_audit(audit_row) if audit_row is not None else None,
            )

    # -- Attempts -----------------------------------------------------------
    def create_attempt(self, fields: dict[str, Any]) -> TrickAttempt:
        with get_session(self.engine) as session:
            row = TrickAttemptRow(**self._attempt_values(fields))
            session.add(row)
            session.flush()
            return _to_attempt(row)

    def list_attempts(self, challenge_id: str) -> list[TrickAttempt]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(TrickAttemptRow)
                .where(TrickAttemptRow.challenge_id == challenge_id)
                .order_by(TrickAttemptRow.seq)
            ).all()
            return [_to_attempt(r) for r in rows]

    # -- Users --------------------------------------------------------------
    def create_user(self, username: str, user_id: str | None = None) -> User:
        user = User(id=user_id or new_id(), username=username)
        try:
            with get_session(self.engine) as session:
                session.add(UserRow(id=user.id, username=user.username))
        except IntegrityError as exc:
            raise ValidationError(f"Username {username!r} or id {user.id} is taken") from exc
        return user

    def get_user(self, user_id: str) -> User | None:
        with get_session(self.engine) as session:
            row = session.get(UserRow, user_id)
            return User(id=row.id, username=row.username) if row else None

    def get_user_by_username(self, username: str) -> User | None:
        with get_session(self.engine) as session:
            row = session.scalar(select(UserRow).where(UserRow.username == username))
            return User(id=row.id, username=row.username) if row else None

    def list_users(self) -> list[User]:
        with get_session(self.engine) as session:
            rows = session.scalars(select(UserRow).order_by(UserRow.username)).all()
            return [User(id=r.id, username=r.username) for r in rows]

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
        with get_session(self.engine) as session:
            row = _audit_row(self._audit_values(
                actor_id=actor_id,
                action=action,
                challenge_id=challenge_id,
                before=before,
                after=after,
                reason=reason,
            ))
            session.add(row)
            session.flush()
            return _to_audit(row)

    def list_audit_entries(self, limit: int = 100) -> list[AuditEntry]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(AdminLogRow).order_by(AdminLogRow.seq.desc()).limit(limit)
            ).all()
            return [_to_audit(r) for r in rows]

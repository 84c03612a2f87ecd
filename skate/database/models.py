"""
skate.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables backing :class:`skate.services.sql_store.SqlChallengeStore`:

- users           — Player identities (opaque id + display name)
- challenges      — One row per SKATE contest, versioned for CAS updates
- trick_attempts  — Append-only attempt journal
- admin_log       — Append-only audit trail of admin overrides
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests)
JsonDoc = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all SKATE ORM models."""


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------
class ChallengeRow(Base):
    __tablename__ = "challenges"

    # Insertion order for list endpoints; ``id`` stays the public key
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    creator_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    opponent_id: Mapped[str | None] = mapped_column(String(64), default=None, index=True)
    trick: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open")
    creator_letters: Mapped[str] = mapped_column(String(5), nullable=False, default="")
    opponent_letters: Mapped[str] = mapped_column(String(5), nullable=False, default="")
    current_turn: Mapped[str | None] = mapped_column(String(64), default=None)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    buy_in: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    video_url: Mapped[str | None] = mapped_column(Text, default=None)
    video_thumbnail: Mapped[str | None] = mapped_column(Text, default=None)
    loser_id: Mapped[str | None] = mapped_column(String(64), default=None)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_challenges_status_expires", "status", "expires_at"),
    )


# ---------------------------------------------------------------------------
# Trick attempts — append-only
# ---------------------------------------------------------------------------
class TrickAttemptRow(Base):
    __tablename__ = "trick_attempts"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    challenge_id: Mapped[str] = mapped_column(
        ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    video_url: Mapped[str | None] = mapped_column(Text, default=None)
    landed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Admin log — append-only audit trail
# ---------------------------------------------------------------------------
class AdminLogRow(Base):
    __tablename__ = "admin_log"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    challenge_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JsonDoc, default=None)
    after_snapshot: Mapped[dict | None] = mapped_column(JsonDoc, default=None)
    reason: Mapped[str | None] = mapped_column(Text, default=None)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

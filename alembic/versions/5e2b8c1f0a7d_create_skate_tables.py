"""Create users, challenges, trick_attempts and admin_log tables

Revision ID: 5e2b8c1f0a7d
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5e2b8c1f0a7d"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create the challenge schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
    )

    op.create_table(
        "challenges",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column("creator_id", sa.String(64), nullable=False),
        sa.Column("opponent_id", sa.String(64), nullable=True),
        sa.Column("trick", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="open"),
        sa.Column("creator_letters", sa.String(5), nullable=False, server_default=""),
        sa.Column("opponent_letters", sa.String(5), nullable=False, server_default=""),
        sa.Column("current_turn", sa.String(64), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("difficulty", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("buy_in", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("video_thumbnail", sa.Text(), nullable=True),
        sa.Column("loser_id", sa.String(64), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_challenges_creator_id", "challenges", ["creator_id"])
    op.create_index("ix_challenges_opponent_id", "challenges", ["opponent_id"])
    op.create_index("ix_challenges_status_expires", "challenges", ["status", "expires_at"])

    op.create_table(
        "trick_attempts",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column(
            "challenge_id",
            sa.String(64),
            sa.ForeignKey("challenges.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("landed", sa.Boolean(), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_trick_attempts_challenge_id", "trick_attempts", ["challenge_id"])

    op.create_table(
        "admin_log",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column("actor_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("challenge_id", sa.String(64), nullable=False),
        sa.Column("before_snapshot", _json, nullable=True),
        sa.Column("after_snapshot", _json, nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_admin_log_challenge_id", "admin_log", ["challenge_id"])


def downgrade() -> None:
    """Drop the challenge schema."""
    op.drop_index("ix_admin_log_challenge_id", table_name="admin_log")
    op.drop_table("admin_log")
    op.drop_index("ix_trick_attempts_challenge_id", table_name="trick_attempts")
    op.drop_table("trick_attempts")
    op.drop_index("ix_challenges_status_expires", table_name="challenges")
    op.drop_index("ix_challenges_opponent_id", table_name="challenges")
    op.drop_index("ix_challenges_creator_id", table_name="challenges")
    op.drop_table("challenges")
    op.drop_table("users")

"""Create profiles, games, lessons and user_lesson_progress.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*names: str) -> list[sa.Column]:
    return [
        sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
        for name in names
    ]


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False, unique=True),
        sa.Column("username", sa.String(64), nullable=True),
        sa.Column("display_name", sa.String(128), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("blitz_elo", sa.Integer(), nullable=True),
        sa.Column("rapid_elo", sa.Integer(), nullable=True),
        sa.Column("bullet_elo", sa.Integer(), nullable=True),
        sa.Column("total_games", sa.Integer(), nullable=True),
        sa.Column("wins", sa.Integer(), nullable=True),
        sa.Column("losses", sa.Integer(), nullable=True),
        sa.Column("draws", sa.Integer(), nullable=True),
        sa.Column("preferred_time_controls", sa.JSON(), nullable=True),
        sa.Column("ai_learning_preferences", sa.JSON(), nullable=True),
        *_timestamps("created_at", "updated_at"),
    )
    op.create_table(
        "games",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("white_player_id", sa.String(64), nullable=True),
        sa.Column("black_player_id", sa.String(64), nullable=True),
        sa.Column("game_type", sa.String(16), nullable=False),
        sa.Column("time_control", sa.Integer(), nullable=False),
        sa.Column("increment", sa.Integer(), nullable=True),
        sa.Column("moves", sa.JSON(), nullable=False),
        sa.Column("result", sa.String(16), nullable=True),
        sa.Column("termination", sa.String(32), nullable=True),
        sa.Column("final_position", sa.Text(), nullable=True),
        sa.Column("ai_engine", sa.String(32), nullable=True),
        sa.Column("ai_difficulty", sa.Float(), nullable=True),
        *_timestamps("created_at"),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "lessons",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("difficulty", sa.String(32), nullable=True),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps("created_at", "updated_at"),
    )
    op.create_table(
        "user_lesson_progress",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("lesson_id", sa.String(36), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=True),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson"),
    )


def downgrade() -> None:
    op.drop_table("user_lesson_progress")
    op.drop_table("lessons")
    op.drop_table("games")
    op.drop_table("profiles")

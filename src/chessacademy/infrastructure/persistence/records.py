from __future__ import annotations

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from src.chessacademy.infrastructure.persistence.base import Base


def _new_id() -> str:
    return str(uuid4())


class ProfileRecord(Base):  # type: ignore[misc]
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False, unique=True)
    username = Column(String(64), nullable=True)
    display_name = Column(String(128), nullable=True)
    avatar_url = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    blitz_elo = Column(Integer, nullable=True, default=1500)
    rapid_elo = Column(Integer, nullable=True, default=1500)
    bullet_elo = Column(Integer, nullable=True, default=1500)
    total_games = Column(Integer, nullable=True, default=0)
    wins = Column(Integer, nullable=True, default=0)
    losses = Column(Integer, nullable=True, default=0)
    draws = Column(Integer, nullable=True, default=0)
    preferred_time_controls = Column(JSON, nullable=True)
    ai_learning_preferences = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class GameRecord(Base):  # type: ignore[misc]
    __tablename__ = "games"

    id = Column(String(36), primary_key=True, default=_new_id)
    white_player_id = Column(String(64), nullable=True)
    black_player_id = Column(String(64), nullable=True)
    game_type = Column(String(16), nullable=False)
    time_control = Column(Integer, nullable=False)
    increment = Column(Integer, nullable=True, default=0)
    moves = Column(JSON, nullable=False, default=list)
    result = Column(String(16), nullable=True)
    termination = Column(String(32), nullable=True)
    final_position = Column(Text, nullable=True)
    ai_engine = Column(String(32), nullable=True)
    ai_difficulty = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    ended_at = Column(DateTime(timezone=True), nullable=True)


class LessonRecord(Base):  # type: ignore[misc]
    __tablename__ = "lessons"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    difficulty = Column(String(32), nullable=True)
    category = Column(String(64), nullable=False)
    content = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=True, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class LessonProgressRecord(Base):  # type: ignore[misc]
    __tablename__ = "user_lesson_progress"
    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False)
    lesson_id = Column(String(36), nullable=False)
    completed = Column(Boolean, nullable=True, default=False)
    score = Column(Integer, nullable=True)
    attempts = Column(Integer, nullable=True, default=0)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


__all__ = ["GameRecord", "LessonProgressRecord", "LessonRecord", "ProfileRecord"]

"""Lesson catalogue and per-user lesson progress."""

from .catalog import (
    InvalidScoreError,
    Lesson,
    LessonError,
    LessonNotFoundError,
    LessonProgress,
    LessonService,
    summarize,
)

__all__ = [
    "InvalidScoreError",
    "Lesson",
    "LessonError",
    "LessonNotFoundError",
    "LessonProgress",
    "LessonService",
    "summarize",
]

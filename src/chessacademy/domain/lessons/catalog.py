from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from src.chessacademy.infrastructure.persistence.record_store import RecordStore, StoreResult

DIFFICULTY_ORDER = ("beginner", "intermediate", "advanced", "master")


class LessonError(RuntimeError):
    code: str = "lesson_error"


class LessonNotFoundError(LessonError):
    code = "lesson_not_found"


class InvalidScoreError(LessonError):
    code = "invalid_score"


@dataclass(frozen=True)
class Lesson:
    id: str
    title: str
    category: str
    description: str | None = None
    difficulty: str | None = None
    content: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Lesson":
        return cls(
            id=row["id"],
            title=row["title"],
            category=row["category"],
            description=row.get("description"),
            difficulty=row.get("difficulty"),
            content=dict(row.get("content") or {}),
        )

    @property
    def difficulty_rank(self) -> int:
        try:
            return DIFFICULTY_ORDER.index((self.difficulty or "").lower())
        except ValueError:
            return len(DIFFICULTY_ORDER)


@dataclass(frozen=True)
class LessonProgress:
    lesson_id: str
    completed: bool = False
    score: int | None = None
    attempts: int = 0
    last_attempt_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LessonProgress":
        return cls(
            lesson_id=row["lesson_id"],
            completed=bool(row.get("completed")),
            score=row.get("score"),
            attempts=row.get("attempts") or 0,
            last_attempt_at=row.get("last_attempt_at"),
            completed_at=row.get("completed_at"),
        )


def summarize(lessons: List[Lesson], progress: List[LessonProgress]) -> Dict[str, int]:
    active_ids = {lesson.id for lesson in lessons}
    completed = sum(1 for item in progress if item.completed and item.lesson_id in active_ids)
    completion = round(completed / len(lessons) * 100) if lessons else 0
    average = round(sum(item.score or 0 for item in progress) / len(progress)) if progress else 0
    return {
        "totalLessons": len(lessons),
        "completedLessons": completed,
        "completionPercent": completion,
        "averageScore": average,
    }


class LessonService:
    """Lesson catalogue reads and per-user progress upserts."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def list_lessons(self) -> StoreResult:
        result = self._store.select("lessons", filters={"is_active": True})
        if not result.ok:
            return result
        lessons = [Lesson.from_row(row) for row in result.data]
        lessons.sort(key=lambda lesson: (lesson.difficulty_rank, lesson.title.lower()))
        return StoreResult(data=lessons)

    def progress_for(self, user_id: str) -> StoreResult:
        result = self._store.select("user_lesson_progress", filters={"user_id": user_id})
        if not result.ok:
            return result
        return StoreResult(data=[LessonProgress.from_row(row) for row in result.data])

    def start_lesson(self, user_id: str, lesson_id: str) -> StoreResult:
        lookup = self._require_active(lesson_id)
        if not lookup.ok:
            return lookup

        existing = self._existing_progress(user_id, lesson_id)
        if not existing.ok:
            return existing
        attempts = (existing.data.attempts if existing.data else 0) + 1
        result = self._store.upsert(
            "user_lesson_progress",
            {
                "user_id": user_id,
                "lesson_id": lesson_id,
                "attempts": attempts,
                "last_attempt_at": datetime.now(timezone.utc),
            },
        )
        if not result.ok:
            return result
        return StoreResult(data=LessonProgress.from_row(result.data))

    def complete_lesson(self, user_id: str, lesson_id: str, score: int) -> StoreResult:
        if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100:
            raise InvalidScoreError("score must be an integer between 0 and 100.")

        lookup = self._require_active(lesson_id)
        if not lookup.ok:
            return lookup

        existing = self._existing_progress(user_id, lesson_id)
        if not existing.ok:
            return existing
        previous: LessonProgress | None = existing.data
        best = max(score, previous.score or 0) if previous else score
        now = datetime.now(timezone.utc)
        result = self._store.upsert(
            "user_lesson_progress",
            {
                "user_id": user_id,
                "lesson_id": lesson_id,
                "completed": True,
                "score": best,
                "attempts": previous.attempts if previous and previous.attempts else 1,
                "last_attempt_at": previous.last_attempt_at if previous and previous.last_attempt_at else now,
                "completed_at": now,
            },
        )
        if not result.ok:
            return result
        return StoreResult(data=LessonProgress.from_row(result.data))

    def overview(self, user_id: str | None) -> StoreResult:
        lessons = self.list_lessons()
        if not lessons.ok:
            return lessons

        progress: List[LessonProgress] = []
        if user_id is not None:
            fetched = self.progress_for(user_id)
            if not fetched.ok:
                return fetched
            progress = fetched.data

        by_lesson = {item.lesson_id: item for item in progress}
        return StoreResult(
            data={
                "lessons": lessons.data,
                "progress": by_lesson,
                "summary": summarize(lessons.data, progress),
            }
        )

    def _require_active(self, lesson_id: str) -> StoreResult:
        result = self._store.select_one("lessons", id=lesson_id)
        if not result.ok:
            if result.error == "not_found":
                raise LessonNotFoundError(f"Lesson {lesson_id} not found.")
            return result
        if result.data.get("is_active") is False:
            raise LessonNotFoundError(f"Lesson {lesson_id} is not active.")
        return StoreResult(data=Lesson.from_row(result.data))

    def _existing_progress(self, user_id: str, lesson_id: str) -> StoreResult:
        result = self._store.select_one("user_lesson_progress", user_id=user_id, lesson_id=lesson_id)
        if result.error == "not_found":
            return StoreResult(data=None)
        if not result.ok:
            return result
        return StoreResult(data=LessonProgress.from_row(result.data))


__all__ = [
    "DIFFICULTY_ORDER",
    "InvalidScoreError",
    "Lesson",
    "LessonError",
    "LessonNotFoundError",
    "LessonProgress",
    "LessonService",
    "summarize",
]

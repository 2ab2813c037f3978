from __future__ import annotations

import pytest

from src.chessacademy.domain.lessons import (
    InvalidScoreError,
    Lesson,
    LessonNotFoundError,
    LessonProgress,
    LessonService,
    summarize,
)


@pytest.fixture
def lessons(store):
    rows = [
        {"id": "l-fork", "title": "Knight forks", "category": "tactics", "difficulty": "intermediate"},
        {"id": "l-mate", "title": "Back rank mates", "category": "tactics", "difficulty": "beginner"},
        {"id": "l-open", "title": "Italian game", "category": "openings", "difficulty": "beginner"},
        {"id": "l-end", "title": "Lucena position", "category": "endgames", "difficulty": "advanced"},
        {"id": "l-old", "title": "Retired lesson", "category": "tactics", "is_active": False},
    ]
    for row in rows:
        assert store.insert("lessons", row).ok
    return LessonService(store)


def test_list_lessons_orders_by_difficulty_then_title(lessons: LessonService) -> None:
    result = lessons.list_lessons()

    assert result.ok
    assert [lesson.id for lesson in result.data] == ["l-mate", "l-open", "l-fork", "l-end"]


def test_start_lesson_counts_attempts(lessons: LessonService) -> None:
    first = lessons.start_lesson("user-1", "l-fork")
    second = lessons.start_lesson("user-1", "l-fork")

    assert first.data.attempts == 1
    assert second.data.attempts == 2
    assert second.data.completed is False
    assert second.data.last_attempt_at is not None


def test_complete_lesson_keeps_best_score(lessons: LessonService) -> None:
    lessons.start_lesson("user-1", "l-mate")

    high = lessons.complete_lesson("user-1", "l-mate", 90)
    low = lessons.complete_lesson("user-1", "l-mate", 40)

    assert high.data.score == 90
    assert low.data.score == 90
    assert low.data.completed is True
    assert low.data.attempts == 1
    assert low.data.completed_at is not None


def test_complete_without_start_records_single_attempt(lessons: LessonService) -> None:
    result = lessons.complete_lesson("user-2", "l-end", 0)

    assert result.data.attempts == 1
    assert result.data.score == 0


@pytest.mark.parametrize("score", [-1, 101, 50.5, "80", True, None])
def test_complete_lesson_rejects_invalid_scores(lessons: LessonService, score) -> None:
    with pytest.raises(InvalidScoreError):
        lessons.complete_lesson("user-1", "l-mate", score)


@pytest.mark.parametrize("lesson_id", ["missing", "l-old"])
def test_unknown_or_inactive_lessons_raise(lessons: LessonService, lesson_id: str) -> None:
    with pytest.raises(LessonNotFoundError):
        lessons.start_lesson("user-1", lesson_id)


def test_overview_merges_progress_and_summary(lessons: LessonService) -> None:
    lessons.complete_lesson("user-1", "l-mate", 80)
    lessons.complete_lesson("user-1", "l-open", 61)
    lessons.start_lesson("user-1", "l-fork")
    lessons.complete_lesson("user-2", "l-end", 100)

    result = lessons.overview("user-1")

    assert result.ok
    assert set(result.data["progress"]) == {"l-mate", "l-open", "l-fork"}
    assert result.data["summary"] == {
        "totalLessons": 4,
        "completedLessons": 2,
        "completionPercent": 50,
        "averageScore": 47,
    }


def test_overview_without_user_has_no_progress(lessons: LessonService) -> None:
    result = lessons.overview(None)

    assert result.data["progress"] == {}
    assert result.data["summary"]["completedLessons"] == 0


def test_summarize_ignores_progress_on_inactive_lessons() -> None:
    catalogue = [Lesson(id="a", title="A", category="c")]
    progress = [
        LessonProgress(lesson_id="a", completed=True, score=70),
        LessonProgress(lesson_id="gone", completed=True, score=100),
    ]

    summary = summarize(catalogue, progress)

    assert summary["completedLessons"] == 1
    assert summary["completionPercent"] == 100
    assert summarize([], []) == {
        "totalLessons": 0,
        "completedLessons": 0,
        "completionPercent": 0,
        "averageScore": 0,
    }

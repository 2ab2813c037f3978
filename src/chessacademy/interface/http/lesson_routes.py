from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, request

from src.chessacademy.domain.lessons import (
    InvalidScoreError,
    Lesson,
    LessonNotFoundError,
    LessonProgress,
    LessonService,
)
from src.chessacademy.interface.http.common import (
    current_user_id,
    domain_error,
    isoformat,
    unauthenticated,
)
from src.chessacademy.interface.telemetry.logging import get_logger

lesson_bp = Blueprint("lessons", __name__)
logger = get_logger("chessacademy.api.lessons")


def _lessons() -> LessonService:
    return current_app.extensions["lesson_service"]


def _serialize_progress(progress: LessonProgress | None) -> dict[str, Any] | None:
    if progress is None:
        return None
    return {
        "lessonId": progress.lesson_id,
        "completed": progress.completed,
        "score": progress.score,
        "attempts": progress.attempts,
        "lastAttemptAt": isoformat(progress.last_attempt_at),
        "completedAt": isoformat(progress.completed_at),
    }


def _serialize_lesson(lesson: Lesson, progress: LessonProgress | None) -> dict[str, Any]:
    return {
        "id": lesson.id,
        "title": lesson.title,
        "description": lesson.description,
        "difficulty": lesson.difficulty,
        "category": lesson.category,
        "content": lesson.content,
        "progress": _serialize_progress(progress),
    }


@lesson_bp.get("")
def list_lessons():
    result = _lessons().overview(current_user_id())
    if not result.ok:
        logger.warning("lessons_fetch_failed", error=result.error)
        return domain_error("lessons_unavailable", "Failed to load lessons", status=502)

    overview = result.data
    return (
        jsonify(
            {
                "lessons": [
                    _serialize_lesson(lesson, overview["progress"].get(lesson.id))
                    for lesson in overview["lessons"]
                ],
                "summary": overview["summary"],
            }
        ),
        200,
    )


@lesson_bp.post("/<lesson_id>/start")
def start_lesson(lesson_id: str):
    user_id = current_user_id()
    if user_id is None:
        return unauthenticated()

    try:
        result = _lessons().start_lesson(user_id, lesson_id)
    except LessonNotFoundError as exc:
        return domain_error(exc.code, str(exc), status=404)
    if not result.ok:
        logger.warning("lesson_start_failed", lesson_id=lesson_id, error=result.error)
        return domain_error("lesson_unavailable", "Failed to start lesson", status=502)

    logger.info("lesson_started", lesson_id=lesson_id, attempts=result.data.attempts)
    return jsonify(_serialize_progress(result.data)), 200


@lesson_bp.post("/<lesson_id>/complete")
def complete_lesson(lesson_id: str):
    user_id = current_user_id()
    if user_id is None:
        return unauthenticated()

    payload = request.get_json(silent=True) or {}
    try:
        result = _lessons().complete_lesson(user_id, lesson_id, payload.get("score"))
    except InvalidScoreError as exc:
        return domain_error(exc.code, str(exc), status=400)
    except LessonNotFoundError as exc:
        return domain_error(exc.code, str(exc), status=404)
    if not result.ok:
        logger.warning("lesson_complete_failed", lesson_id=lesson_id, error=result.error)
        return domain_error("lesson_unavailable", "Failed to complete lesson", status=502)

    logger.info("lesson_completed", lesson_id=lesson_id, score=result.data.score)
    return jsonify(_serialize_progress(result.data)), 200


__all__ = ["lesson_bp"]

from __future__ import annotations

from dataclasses import replace
from typing import Any
from uuid import UUID

from flask import Blueprint, current_app, jsonify, request

from src.chessacademy.domain.chess import (
    GameMode,
    GameStatus,
    IllegalMoveError,
    SessionCompletedError,
    SessionNotFoundError,
    Side,
    TimeControl,
    get_time_control,
)
from src.chessacademy.domain.chess.time_controls import classify
from src.chessacademy.infrastructure.config import AppConfig
from src.chessacademy.interface.http.common import (
    current_user_id,
    domain_error,
    isoformat,
    trace_id,
)
from src.chessacademy.interface.http.session_registry import LiveSession, SessionRegistry
from src.chessacademy.interface.telemetry.logging import get_logger

gameplay_bp = Blueprint("gameplay", __name__)
logger = get_logger("chessacademy.api.sessions")


def _registry() -> SessionRegistry:
    return current_app.extensions["session_registry"]


def _serialize_session(live: LiveSession) -> dict[str, Any]:
    with live.scheduler.lock:
        snapshot = live.clock.snapshot()
        notices = list(live.notices)
    return {
        "id": str(live.id),
        "mode": snapshot.mode.value,
        "status": snapshot.status.value,
        "result": snapshot.result.value if snapshot.result else None,
        "termination": snapshot.termination,
        "humanSide": snapshot.human_side.value,
        "activeSide": snapshot.active_side.value,
        "currentFen": snapshot.fen,
        "moves": list(snapshot.moves),
        "clock": {
            "white": snapshot.white_remaining,
            "black": snapshot.black_remaining,
            "initial": live.time_control.initial_seconds,
            "increment": live.time_control.increment_seconds,
        },
        "timeControl": live.time_control.name,
        "thinking": snapshot.thinking,
        "notices": notices,
        "createdAt": isoformat(live.created_at),
        "traceId": trace_id(),
    }


def _is_count(value: Any) -> bool:
    # JSON booleans decode to bool, which is an int subclass.
    return isinstance(value, int) and not isinstance(value, bool)


def _resolve_time_control(payload: dict[str, Any]) -> TimeControl:
    if "initialSeconds" in payload:
        initial = payload.get("initialSeconds")
        increment = payload.get("increment", 0)
        if not _is_count(initial) or not _is_count(increment) or initial <= 0 or increment < 0:
            raise ValueError("initialSeconds must be a positive integer and increment non-negative.")
        bucket = classify(initial)
        return TimeControl(bucket.name, initial, increment, rating_field=bucket.rating_field)

    cfg: AppConfig = current_app.config["APP_CONFIG"]
    control = get_time_control(str(payload.get("timeControl", cfg.default_time_control)))
    increment = payload.get("increment")
    if increment is not None:
        if not _is_count(increment) or increment < 0:
            raise ValueError("increment must be a non-negative integer.")
        control = replace(control, increment_seconds=increment)
    return control


def _lookup(session_id: str) -> LiveSession | tuple:
    try:
        session_uuid = UUID(session_id)
    except ValueError:
        return domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)
    try:
        return _registry().get(session_uuid)
    except SessionNotFoundError:
        logger.warning("session_not_found", session_id=session_id)
        return domain_error(SessionNotFoundError.code, "Session not found.", status=404)


@gameplay_bp.post("")
def create_session():
    payload = request.get_json(silent=True) or {}

    try:
        mode = GameMode(payload.get("mode", "ai"))
    except ValueError:
        return domain_error("invalid_mode", "mode must be 'ai', 'local' or 'online'.")

    try:
        human_side = Side(payload.get("humanSide", "white"))
    except ValueError:
        return domain_error("invalid_side", "humanSide must be 'white' or 'black'.")

    try:
        time_control = _resolve_time_control(payload)
    except ValueError as exc:
        return domain_error("invalid_time_control", str(exc))

    live = _registry().create(
        mode=mode,
        time_control=time_control,
        human_side=human_side,
        user_id=current_user_id(),
    )
    logger.info(
        "session_created",
        session_id=str(live.id),
        mode=mode.value,
        human_side=human_side.value,
        time_control=time_control.name,
        initial_seconds=time_control.initial_seconds,
    )
    return jsonify(_serialize_session(live)), 201


@gameplay_bp.get("/<session_id>")
def get_session(session_id: str):
    live = _lookup(session_id)
    if isinstance(live, tuple):
        return live
    return jsonify(_serialize_session(live)), 200


@gameplay_bp.post("/<session_id>/moves")
def submit_move(session_id: str):
    live = _lookup(session_id)
    if isinstance(live, tuple):
        return live

    payload = request.get_json(silent=True) or {}
    from_square = payload.get("from")
    to_square = payload.get("to")
    promotion = payload.get("promotion", "q")
    if not isinstance(from_square, str) or not isinstance(to_square, str):
        return domain_error("invalid_move", "from and to must be provided as square names.", status=400)
    if promotion is not None and not isinstance(promotion, str):
        return domain_error("invalid_move", "promotion must be a piece letter.", status=400)

    with live.scheduler.lock:
        if live.clock.status is not GameStatus.playing:
            logger.warning("move_after_completion", session_id=session_id)
            return domain_error(SessionCompletedError.code, "Session already completed.", status=409)
        accepted = live.clock.submit_move(from_square, to_square, promotion)

    if not accepted:
        logger.warning("illegal_move_rejected", session_id=session_id, from_square=from_square, to_square=to_square)
        return domain_error(IllegalMoveError.code, f"Move {from_square}{to_square} was rejected.", status=409)

    body = _serialize_session(live)
    logger.info("move_accepted", session_id=session_id, total_moves=len(body["moves"]))
    return jsonify(body), 200


@gameplay_bp.post("/<session_id>/resign")
def resign_session(session_id: str):
    live = _lookup(session_id)
    if isinstance(live, tuple):
        return live

    payload = request.get_json(silent=True) or {}
    try:
        side = Side(payload.get("side", live.clock.human_side.value))
    except ValueError:
        return domain_error("invalid_side", "side must be 'white' or 'black'.")

    with live.scheduler.lock:
        resigned = live.clock.resign(side)
    if not resigned:
        return domain_error(SessionCompletedError.code, "Session already completed.", status=409)

    body = _serialize_session(live)
    logger.info("session_resigned", session_id=session_id, side=side.value, result=body["result"])
    return jsonify(body), 200


@gameplay_bp.post("/<session_id>/reset")
def reset_session(session_id: str):
    live = _lookup(session_id)
    if isinstance(live, tuple):
        return live

    with live.scheduler.lock:
        live.clock.reset()
        live.notices.clear()
        live.ended_at = None

    logger.info("session_reset", session_id=session_id)
    return jsonify(_serialize_session(live)), 200


@gameplay_bp.delete("/<session_id>")
def close_session(session_id: str):
    try:
        session_uuid = UUID(session_id)
    except ValueError:
        return domain_error("invalid_session_id", "sessionId must be a valid UUID.", status=400)
    try:
        _registry().close(session_uuid)
    except SessionNotFoundError:
        return domain_error(SessionNotFoundError.code, "Session not found.", status=404)

    logger.info("session_closed", session_id=session_id)
    return "", 204


__all__ = ["gameplay_bp"]

from __future__ import annotations

import gc
import weakref
from dataclasses import replace
from datetime import datetime
from uuid import UUID, uuid4

import chess
import pytest

from src.chessacademy.domain.chess import ManualScheduler
from src.chessacademy.infrastructure.persistence import RecordStore, StoreResult, create_session_factory
from src.chessacademy.interface.http.app import create_app

USER = {"X-User-Id": "user-1"}


def _create(client, **payload):
    response = client.post("/api/v1/sessions", json=payload, headers=USER)
    assert response.status_code == 201
    return response.get_json()


def test_create_ai_session_defaults_to_rapid(client):
    payload = _create(client)

    assert UUID(payload["id"])
    assert payload["mode"] == "ai"
    assert payload["status"] == "playing"
    assert payload["result"] is None
    assert payload["humanSide"] == "white"
    assert payload["activeSide"] == "white"
    assert payload["currentFen"] == chess.Board().fen()
    assert payload["moves"] == []
    assert payload["clock"] == {"white": 600, "black": 600, "initial": 600, "increment": 0}
    assert payload["timeControl"] == "rapid"
    assert payload["thinking"] is False
    assert payload["traceId"]
    assert isinstance(datetime.fromisoformat(payload["createdAt"]), datetime)


def test_create_session_with_custom_clock(client):
    payload = _create(client, mode="local", initialSeconds=300, increment=5)

    assert payload["timeControl"] == "blitz"
    assert payload["clock"] == {"white": 300, "black": 300, "initial": 300, "increment": 5}


@pytest.mark.parametrize(
    ("body", "code"),
    [
        ({"mode": "correspondence"}, "invalid_mode"),
        ({"humanSide": "green"}, "invalid_side"),
        ({"timeControl": "classical"}, "invalid_time_control"),
        ({"initialSeconds": 0}, "invalid_time_control"),
        ({"timeControl": "blitz", "increment": -2}, "invalid_time_control"),
        ({"initialSeconds": True}, "invalid_time_control"),
        ({"initialSeconds": 300, "increment": False}, "invalid_time_control"),
        ({"timeControl": "blitz", "increment": True}, "invalid_time_control"),
    ],
)
def test_create_session_rejects_bad_input(client, body, code):
    response = client.post("/api/v1/sessions", json=body)

    assert response.status_code == 400
    assert response.get_json()["code"] == code


def test_ai_session_as_black_waits_for_automated_opening(client, schedulers):
    payload = _create(client, humanSide="black", timeControl="blitz")
    assert payload["thinking"] is True
    assert payload["moves"] == []

    schedulers[-1].advance(0.5)

    state = client.get(f"/api/v1/sessions/{payload['id']}").get_json()
    assert len(state["moves"]) == 1
    assert state["activeSide"] == "black"
    assert state["thinking"] is False


def test_submit_illegal_move_returns_conflict(client):
    session_id = _create(client)["id"]

    response = client.post(f"/api/v1/sessions/{session_id}/moves", json={"from": "e7", "to": "e5"})

    assert response.status_code == 409
    assert response.get_json()["code"] == "illegal_move"


def test_submit_move_requires_squares(client):
    session_id = _create(client)["id"]

    response = client.post(f"/api/v1/sessions/{session_id}/moves", json={"uci": "e2e4"})

    assert response.status_code == 400
    assert response.get_json()["code"] == "invalid_move"


def test_legal_move_schedules_automated_reply(client, schedulers):
    session_id = _create(client)["id"]

    move = client.post(f"/api/v1/sessions/{session_id}/moves", json={"from": "e2", "to": "e4"})
    assert move.status_code == 200
    payload = move.get_json()
    assert payload["moves"] == ["e4"]
    assert payload["thinking"] is True

    blocked = client.post(f"/api/v1/sessions/{session_id}/moves", json={"from": "d2", "to": "d4"})
    assert blocked.status_code == 409

    schedulers[-1].advance(0.5)

    state = client.get(f"/api/v1/sessions/{session_id}").get_json()
    assert len(state["moves"]) == 2
    assert state["activeSide"] == "white"
    chess.Board(state["currentFen"])  # final position is valid


def test_clock_ticks_are_visible_in_session_state(client, schedulers):
    session_id = _create(client, mode="local", timeControl="bullet")["id"]

    schedulers[-1].advance(5)

    state = client.get(f"/api/v1/sessions/{session_id}").get_json()
    assert state["clock"]["white"] == 55
    assert state["clock"]["black"] == 60


def test_resign_completes_game_and_records_it(client, app):
    client.put("/api/v1/dashboard/profile", json={"username": "knight"}, headers=USER)
    session_id = _create(client, timeControl="blitz")["id"]

    resign = client.post(f"/api/v1/sessions/{session_id}/resign")
    assert resign.status_code == 200
    payload = resign.get_json()
    assert payload["status"] == "resigned"
    assert payload["result"] == "black_wins"
    assert payload["termination"] == "resignation"
    assert payload["notices"] == []

    again = client.post(f"/api/v1/sessions/{session_id}/resign")
    assert again.status_code == 409

    move = client.post(f"/api/v1/sessions/{session_id}/moves", json={"from": "e2", "to": "e4"})
    assert move.status_code == 409
    assert move.get_json()["code"] == "session_completed"

    games = app.extensions["record_store"].select("games").data
    assert len(games) == 1
    assert games[0]["white_player_id"] == "user-1"
    assert games[0]["result"] == "black_wins"
    assert games[0]["game_type"] == "blitz"


def test_time_forfeit_ends_session(client, schedulers):
    session_id = _create(client, mode="local", initialSeconds=3)["id"]

    schedulers[-1].advance(3)

    state = client.get(f"/api/v1/sessions/{session_id}").get_json()
    assert state["status"] == "checkmate"
    assert state["termination"] == "time_forfeit"
    assert state["result"] == "black_wins"
    assert state["clock"]["white"] == 0


def test_reset_starts_a_fresh_game(client, schedulers):
    session_id = _create(client, mode="local", timeControl="bullet")["id"]
    client.post(f"/api/v1/sessions/{session_id}/moves", json={"from": "e2", "to": "e4"})
    client.post(f"/api/v1/sessions/{session_id}/resign", json={"side": "black"})

    reset = client.post(f"/api/v1/sessions/{session_id}/reset")

    assert reset.status_code == 200
    payload = reset.get_json()
    assert payload["status"] == "playing"
    assert payload["moves"] == []
    assert payload["clock"]["white"] == 60
    assert payload["currentFen"] == chess.Board().fen()


def test_delete_closes_session(client, app):
    session_id = _create(client)["id"]

    assert client.delete(f"/api/v1/sessions/{session_id}").status_code == 204
    assert client.get(f"/api/v1/sessions/{session_id}").status_code == 404
    assert client.delete(f"/api/v1/sessions/{session_id}").status_code == 404
    assert len(app.extensions["session_registry"]) == 0


def test_unknown_and_malformed_session_ids(client):
    missing = client.get(f"/api/v1/sessions/{uuid4()}")
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "session_not_found"

    malformed = client.post("/api/v1/sessions/not-a-uuid/moves", json={"from": "e2", "to": "e4"})
    assert malformed.status_code == 400
    assert malformed.get_json()["code"] == "invalid_session_id"


def test_trace_header_is_echoed(client):
    response = client.post("/api/v1/sessions", json={"mode": "bogus"}, headers={"X-Trace-Id": "trace-123"})

    assert response.get_json()["traceId"] == "trace-123"


def test_healthcheck_counts_live_sessions(client):
    _create(client)

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "liveSessions": 1}


class GameInsertFailingStore(RecordStore):
    def insert(self, collection, values):
        if collection == "games":
            return StoreResult(error="disk I/O error")
        return super().insert(collection, values)


def test_failed_game_save_is_reported_as_notice(app_config, engine):
    store = GameInsertFailingStore(create_session_factory(engine=engine))
    flask_app = create_app(app_config, record_store=store, scheduler_factory=ManualScheduler)
    client = flask_app.test_client()
    notice = {"code": "game_not_saved", "message": "Failed to save the game result."}
    try:
        session_id = _create(client, timeControl="blitz")["id"]

        resign = client.post(f"/api/v1/sessions/{session_id}/resign")
        assert resign.status_code == 200
        payload = resign.get_json()
        assert payload["status"] == "resigned"
        assert payload["result"] == "black_wins"
        assert payload["termination"] == "resignation"
        assert payload["notices"] == [notice]

        state = client.get(f"/api/v1/sessions/{session_id}").get_json()
        assert state["status"] == "resigned"
        assert state["result"] == "black_wins"
        assert state["notices"] == [notice]

        reset = client.post(f"/api/v1/sessions/{session_id}/reset").get_json()
        assert reset["status"] == "playing"
        assert reset["notices"] == []
    finally:
        flask_app.extensions["session_registry"].close_all()


def test_finished_sessions_leave_the_registry(app_config, store):
    flask_app = create_app(
        replace(app_config, session_retention_seconds=0),
        record_store=store,
        scheduler_factory=ManualScheduler,
    )
    client = flask_app.test_client()
    try:
        session_ids = [_create(client, mode="local")["id"] for _ in range(5)]
        for session_id in session_ids:
            client.post(f"/api/v1/sessions/{session_id}/resign")

        health = client.get("/healthz").get_json()

        assert health["liveSessions"] == 0
        assert client.get(f"/api/v1/sessions/{session_ids[0]}").status_code == 404
    finally:
        flask_app.extensions["session_registry"].close_all()


def test_discarded_app_releases_its_registry(app_config, store):
    flask_app = create_app(app_config, record_store=store, scheduler_factory=ManualScheduler)
    registry = weakref.ref(flask_app.extensions["session_registry"])

    del flask_app
    gc.collect()

    assert registry() is None

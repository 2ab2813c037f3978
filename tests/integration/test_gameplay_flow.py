from __future__ import annotations

import random
import time
from dataclasses import replace

import chess
import pytest

from src.chessacademy.domain.chess import ClockSettings, GameResult
from src.chessacademy.domain.chess.simulation import play_random_game
from src.chessacademy.interface.http.app import create_app

USER = {"X-User-Id": "user-1"}


@pytest.fixture()
def threaded_client(app_config, store):
    flask_app = create_app(replace(app_config, ai_reply_delay_seconds=0.01), record_store=store)
    flask_app.config.update(TESTING=True)
    try:
        yield flask_app.test_client()
    finally:
        flask_app.extensions["session_registry"].close_all()


def test_local_game_to_checkmate(client, app):
    client.put("/api/v1/dashboard/profile", json={"username": "knight"}, headers=USER)
    create_response = client.post("/api/v1/sessions", json={"mode": "local"}, headers=USER)
    assert create_response.status_code == 201
    session_id = create_response.get_json()["id"]

    for from_square, to_square in (("f2", "f3"), ("e7", "e5"), ("g2", "g4"), ("d8", "h4")):
        response = client.post(
            f"/api/v1/sessions/{session_id}/moves",
            json={"from": from_square, "to": to_square},
        )
        assert response.status_code == 200

    payload = response.get_json()
    assert payload["status"] == "checkmate"
    assert payload["result"] == "black_wins"
    assert payload["moves"] == ["f3", "e5", "g4", "Qh4#"]
    assert chess.Board(payload["currentFen"]).is_checkmate()

    games = app.extensions["record_store"].select("games").data
    assert len(games) == 1
    assert games[0]["moves"] == ["f3", "e5", "g4", "Qh4#"]
    assert games[0]["termination"] == "checkmate"

    dashboard = client.get("/api/v1/dashboard", headers=USER).get_json()
    assert dashboard["totalGames"] == 0


def test_ai_game_alternates_turns(client, schedulers):
    session = client.post("/api/v1/sessions", json={"mode": "ai", "timeControl": "blitz"}).get_json()
    session_id = session["id"]
    board = chess.Board(session["currentFen"])

    for ply in range(3):
        human_move = sorted(board.legal_moves, key=lambda move: move.uci())[0]
        move_response = client.post(
            f"/api/v1/sessions/{session_id}/moves",
            json={
                "from": chess.square_name(human_move.from_square),
                "to": chess.square_name(human_move.to_square),
            },
        )
        assert move_response.status_code == 200
        schedulers[-1].advance(1.0)
        payload = client.get(f"/api/v1/sessions/{session_id}").get_json()
        if payload["status"] != "playing":
            break
        assert len(payload["moves"]) == 2 * (ply + 1)
        board = chess.Board(payload["currentFen"])
        assert board.turn == chess.WHITE

    final_state = client.get(f"/api/v1/sessions/{session_id}").get_json()
    assert final_state["clock"]["white"] <= 180
    assert final_state["clock"]["black"] <= 180


def test_threaded_session_replies_on_wall_clock(threaded_client):
    session_id = threaded_client.post("/api/v1/sessions", json={"mode": "ai"}).get_json()["id"]

    response = threaded_client.post(f"/api/v1/sessions/{session_id}/moves", json={"from": "e2", "to": "e4"})
    assert response.status_code == 200

    deadline = time.monotonic() + 3.0
    payload = response.get_json()
    while len(payload["moves"]) < 2 and time.monotonic() < deadline:
        time.sleep(0.02)
        payload = threaded_client.get(f"/api/v1/sessions/{session_id}").get_json()

    assert len(payload["moves"]) == 2
    assert payload["activeSide"] == "white"
    assert payload["thinking"] is False


def test_simulated_game_always_finishes_on_short_clock():
    settings = ClockSettings(initial_seconds=10, increment_seconds=0, reply_delay_seconds=1.0)

    game = play_random_game(settings, rng=random.Random(11), think_seconds=1.0)

    assert game.result in set(GameResult)
    assert game.termination is not None
    assert len(game.moves) <= 40
    assert 0 in (game.white_remaining, game.black_remaining) or game.termination != "time_forfeit"
    assert game.elapsed_seconds > 0


def test_simulated_game_respects_ply_cap():
    settings = ClockSettings(initial_seconds=100_000, reply_delay_seconds=0.0)

    game = play_random_game(settings, rng=random.Random(5), think_seconds=0.5, max_plies=10)

    assert len(game.moves) >= 10 or game.result is not None
    if game.result is None:
        assert game.termination is None

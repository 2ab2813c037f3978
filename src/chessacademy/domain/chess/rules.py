from __future__ import annotations

from dataclasses import dataclass
from typing import List

import chess


DEFAULT_PROMOTION = "q"


@dataclass(frozen=True)
class MoveAttempt:
    """Transient move input as produced by a drag-and-drop board."""

    from_square: str
    to_square: str
    promotion: str | None = DEFAULT_PROMOTION


@dataclass(frozen=True)
class GameOutcome:
    winner: chess.Color | None
    termination: str

    @property
    def is_checkmate(self) -> bool:
        return self.termination == "checkmate"


@dataclass(frozen=True)
class AppliedMove:
    """Result of pushing a move onto a private copy of the position."""

    board: chess.Board
    san: str
    uci: str
    outcome: GameOutcome | None


def legal_moves(board: chess.Board) -> List[chess.Move]:
    return list(board.legal_moves)


def resolve_move(board: chess.Board, attempt: MoveAttempt) -> chess.Move | None:
    """Translate a move attempt into a legal move for ``board``.

    Returns ``None`` for malformed squares, unknown promotion pieces and
    illegal moves alike. The promotion preference only applies when the
    plain from/to move is not legal on its own (i.e. a pawn reaching the
    last rank).
    """
    try:
        from_square = chess.parse_square(attempt.from_square.strip().lower())
        to_square = chess.parse_square(attempt.to_square.strip().lower())
    except (AttributeError, ValueError):
        return None

    move = chess.Move(from_square, to_square)
    if move in board.legal_moves:
        return move

    symbol = (attempt.promotion or DEFAULT_PROMOTION).strip().lower()
    if symbol not in chess.PIECE_SYMBOLS[chess.KNIGHT : chess.QUEEN + 1]:
        return None
    promoted = chess.Move(from_square, to_square, promotion=chess.PIECE_SYMBOLS.index(symbol))
    if promoted in board.legal_moves:
        return promoted
    return None


def outcome_of(board: chess.Board) -> GameOutcome | None:
    # Draw claims (threefold repetition, fifty moves) end the game immediately.
    outcome = board.outcome(claim_draw=True)
    if outcome is None:
        return None
    return GameOutcome(winner=outcome.winner, termination=outcome.termination.name.lower())


def apply_move(board: chess.Board, move: chess.Move) -> AppliedMove:
    """Apply ``move`` to a copy of ``board``; the original is left untouched."""
    if move not in board.legal_moves:
        raise ValueError(f"Move {move.uci()} is not legal in {board.fen()}")

    scratch = board.copy()
    san = scratch.san(move)
    scratch.push(move)
    return AppliedMove(board=scratch, san=san, uci=move.uci(), outcome=outcome_of(scratch))


__all__ = [
    "AppliedMove",
    "DEFAULT_PROMOTION",
    "GameOutcome",
    "MoveAttempt",
    "apply_move",
    "legal_moves",
    "outcome_of",
    "resolve_move",
]

from __future__ import annotations

import random
from typing import Protocol

import chess

from src.chessacademy.domain.chess.rules import legal_moves


class MoveSelector(Protocol):
    """Contract for anything that can pick the automated side's move."""

    @property
    def name(self) -> str:
        """Identifier recorded alongside finished games."""

    def select_move(self, board: chess.Board) -> chess.Move:
        """Pick a legal move for the supplied position."""


class RandomMoveSelector:
    """Placeholder opponent: a uniformly random legal move.

    There is no search and no evaluation. It exists so the session machinery
    has a baseline opponent until a real engine is plugged in behind
    :class:`MoveSelector`.
    """

    name = "random"

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def select_move(self, board: chess.Board) -> chess.Move:
        moves = legal_moves(board)
        if not moves:
            raise ValueError("No legal moves available in the current position.")
        return self._rng.choice(moves)


__all__ = ["MoveSelector", "RandomMoveSelector"]

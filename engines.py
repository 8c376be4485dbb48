"""
Baseline engines.

All implement: choose_move(board) -> chess.Move for the side to move.

- RandomEngine: uniformly random legal move
- GreedyCaptureEngine: two-ply material greedy, used for search rollouts
"""

import math

import chess
import numpy as np

from chess_env import Conclusion, apply_move, classify, legal_moves
from errors import InvariantError

# Score of a move that ends the game in a draw
DRAW_PENALTY = -16777216


class RandomEngine:
    """Picks a uniformly random legal move."""

    def __init__(self, seed=None, rng=None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def choose_move(self, board):
        moves = legal_moves(board)
        if not moves:
            raise InvariantError("No legal moves found")
        return moves[self.rng.integers(len(moves))]


class GreedyCaptureEngine:
    """
    Maximises the material balance left after the opponent's best reply.

    A move that mates scores best and a reply that mates us scores worst.
    Moves that draw on the spot are heavily penalised, pawn moves get a small
    bonus and remaining ties are broken at random.
    """

    def __init__(self, seed=None, rng=None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def choose_move(self, board):
        moves = legal_moves(board)
        if not moves:
            raise InvariantError("No legal moves found")
        if len(moves) == 1:
            return moves[0]
        best = -math.inf
        candidates = []
        for move in moves:
            score = self.score_move(board, move)
            if score > best:
                best = score
                candidates = [move]
            elif score == best:
                candidates.append(move)
        return candidates[self.rng.integers(len(candidates))]

    def score_move(self, board, move):
        child, gained = apply_move(board, move)
        conclusion = classify(child)
        if conclusion == Conclusion.CHECKMATE:
            return math.inf
        if conclusion.is_draw:
            return DRAW_PENALTY

        worst = math.inf
        for reply in child.legal_moves:
            reply_board, lost = apply_move(child, reply)
            reply_conclusion = classify(reply_board)
            if reply_conclusion == Conclusion.CHECKMATE:
                return -math.inf
            if reply_conclusion.is_draw:
                worst = DRAW_PENALTY
                break
            worst = min(worst, gained - lost)

        pawn_bonus = 1 if board.piece_type_at(move.from_square) == chess.PAWN else 0
        return worst * 2 + pawn_bonus


ENGINES = {
    'random': RandomEngine,
    'greedy': GreedyCaptureEngine,
}

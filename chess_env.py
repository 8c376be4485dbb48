from enum import Enum

import chess

from chess_helper import PIECE_VALUES
from errors import InvariantError


class Conclusion(Enum):
    NORMAL = "normal"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    TOO_WEAK = "too_weak"
    FIFTY_MOVE_RULE = "fifty_move_rule"
    REPETITION = "repetition"

    @property
    def is_draw(self):
        return self not in (Conclusion.NORMAL, Conclusion.CHECKMATE)


def position_key(board):
    """Transposition identity: piece layout, side to move, castling and en passant."""
    return board.board_fen(), board.turn, board.castling_rights, board.ep_square


def legal_moves(board):
    return list(board.legal_moves)


def apply_move(board, move):
    """Returns a new board with ``move`` played and the material gained by the mover."""
    delta = 0
    if board.is_en_passant(move):
        delta += PIECE_VALUES[chess.PAWN]
    else:
        captured = board.piece_at(move.to_square)
        if captured is not None:
            delta += PIECE_VALUES[captured.piece_type]
    if move.promotion:
        delta += PIECE_VALUES[move.promotion] - PIECE_VALUES[chess.PAWN]
    child = board.copy(stack=False)
    child.push(move)
    return child, delta


def classify(board, game_rules=False):
    """
    Classifies ``board`` for the side to move.

    Checkmate always means the side to move has lost. With ``game_rules`` the
    fifty-move rule and threefold repetition are checked as well; both need the
    board's move history, which search copies do not carry.
    """
    if board.king(chess.WHITE) is None or board.king(chess.BLACK) is None:
        raise InvariantError("Where is the king? " + board.fen())
    if not any(board.generate_legal_moves()):
        return Conclusion.CHECKMATE if board.is_check() else Conclusion.STALEMATE
    if board.is_insufficient_material():
        return Conclusion.TOO_WEAK
    if game_rules:
        if board.is_fifty_moves():
            return Conclusion.FIFTY_MOVE_RULE
        if board.is_repetition(3):
            return Conclusion.REPETITION
    return Conclusion.NORMAL


class ChessEnv:
    def __init__(self, board=None):
        self.board = chess.Board() if board is None else board.copy()
        self.plies = 0

    def step(self, move):
        self.board.push(move)
        self.plies += 1
        return self.conclusion()

    def conclusion(self):
        return classify(self.board, game_rules=True)

    @property
    def no_progress_plies(self):
        # python-chess resets the clock on captures and pawn moves
        return self.board.halfmove_clock

    def legal_moves(self):
        return legal_moves(self.board)

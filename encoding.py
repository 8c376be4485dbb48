"""
Sparse board encoding for the regression trees.

A board maps to the ascending list of indices of its "on" boolean features.
The compact layout walks files a..h and, inside each file, ranks 1..8:

* 8 slots per square: piece bits for white (knight, bishop, rook, king; a
  queen sets both bishop and rook) followed by the same four bits for black,
* 2 slots per square on ranks 2..7 marking a white or black pawn,
* 2 slots per file marking an en passant capturable pawn on rank 4 / rank 5,

followed by 4 castling slots (a1, h1, a8, h8). That gives 628 features.

The extended layout appends 322 tactical features: occupied / white / black per
square, squares black can legally move to, squares black can reach with
pseudo-legal moves, and two flags for the black king being in check or in
double check.
"""

import chess
import torch

from errors import InvariantError

BOARD_TENSOR_SIZE = 628
EXTENDED_TENSOR_SIZE = BOARD_TENSOR_SIZE + 322

# Full castling rights, every pawn promoted to a queen, nothing captured
MAX_COMPRESSED_SIZE = 54
MAX_EXTENDED_COMPRESSED_SIZE = 248

_PIECE_BITS = {
    chess.KNIGHT: (0,),
    chess.BISHOP: (1,),
    chess.ROOK: (2,),
    chess.QUEEN: (1, 2),
    chess.KING: (3,),
    chess.PAWN: (),
}
_CASTLING_SQUARES = (chess.A1, chess.H1, chess.A8, chess.H8)


def feature_count(extended=False):
    return EXTENDED_TENSOR_SIZE if extended else BOARD_TENSOR_SIZE


def _en_passant_pawn(board):
    """Square of the pawn that may be captured en passant, if any."""
    ep = board.ep_square
    if ep is None:
        return None
    if chess.square_rank(ep) == 2:
        return ep + 8
    if chess.square_rank(ep) == 5:
        return ep - 8
    return None


def encode(board, extended=False):
    features = []
    ctr = 0
    ep_pawn = _en_passant_pawn(board)
    for file in range(8):
        for rank in range(8):
            piece = board.piece_at(chess.square(file, rank))
            if piece is not None:
                offset = ctr if piece.color == chess.WHITE else ctr + 4
                features.extend(offset + bit for bit in _PIECE_BITS[piece.piece_type])
            ctr += 8
        for rank in range(1, 7):
            piece = board.piece_at(chess.square(file, rank))
            if piece is not None and piece.piece_type == chess.PAWN:
                features.append(ctr if piece.color == chess.WHITE else ctr + 1)
            ctr += 2
        for rank in (3, 4):
            if ep_pawn == chess.square(file, rank):
                features.append(ctr)
            ctr += 1
    for square in _CASTLING_SQUARES:
        if board.castling_rights & chess.BB_SQUARES[square]:
            features.append(ctr)
        ctr += 1
    if extended:
        _encode_tactical(board, features, ctr)
    return tuple(features)


def _encode_tactical(board, features, ctr):
    for file in range(8):
        for rank in range(8):
            piece = board.piece_at(chess.square(file, rank))
            if piece is not None:
                features.append(ctr)
                features.append(ctr + (1 if piece.color == chess.WHITE else 2))
            ctr += 3

    king = board.king(chess.BLACK)
    if king is None:
        raise InvariantError("Where is the king? " + board.fen())
    black = board.copy(stack=False)
    black.turn = chess.BLACK

    reachable = [False] * 64
    for move in black.legal_moves:
        reachable[move.to_square] = True
    ctr = _append_squares(features, reachable, ctr)
    for move in black.pseudo_legal_moves:
        reachable[move.to_square] = True
    ctr = _append_squares(features, reachable, ctr)

    checkers = len(board.attackers(chess.WHITE, king))
    if checkers > 0:
        features.append(ctr)
    if checkers > 1:
        features.append(ctr + 1)


def _append_squares(features, reachable, ctr):
    # feature order walks files then ranks, like the board layout above
    for file in range(8):
        for rank in range(8):
            if reachable[chess.square(file, rank)]:
                features.append(ctr)
            ctr += 1
    return ctr


def encode_dense(board, extended=False):
    dense = torch.zeros(feature_count(extended), dtype=torch.uint8)
    features = encode(board, extended)
    if features:
        dense[list(features)] = 1
    return dense

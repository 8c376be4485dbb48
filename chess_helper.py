import chess


# Piece values used by the material heuristics and the greedy capture engine
PIECE_VALUES = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0  # the king is never captured
}


def evaluate_material(board):
    """Material balance: positive favours white, negative favours black."""
    white_material = 0
    black_material = 0
    for piece in board.piece_map().values():
        value = PIECE_VALUES[piece.piece_type]
        if piece.color == chess.WHITE:
            white_material += value
        else:
            black_material += value
    return float(white_material - black_material)


def evaluate_material_offside(board):
    """Like evaluate_material, but pawns past the centre line count double."""
    advantage = 0
    for square, piece in board.piece_map().items():
        value = PIECE_VALUES[piece.piece_type]
        if piece.piece_type == chess.PAWN:
            rank = chess.square_rank(square)
            if (piece.color == chess.WHITE and rank > 3) or (piece.color == chess.BLACK and rank < 4):
                value = 2
        advantage += value if piece.color == chess.WHITE else -value
    return float(advantage)


def has_castling_rights(board):
    return board.castling_rights != chess.BB_EMPTY


MATERIAL_EVALUATORS = {
    'simple': evaluate_material,
    'offside': evaluate_material_offside,
}

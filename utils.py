import datetime
import os

import chess
import chess.pgn as pgn

from chess_helper import has_castling_rights


# Save game to PGN
def save_pgn(board, path="./games", prefix="game"):
    os.makedirs(path, exist_ok=True)
    game = pgn.Game.from_board(board)
    game.headers["Event"] = "Self Training"
    game.headers["Date"] = datetime.datetime.now().strftime("%Y.%m.%d")
    fname = f"{prefix}_{len(os.listdir(path))}.pgn"
    with open(os.path.join(path, fname), 'w') as f:
        f.write(str(game))


def get_symmetries(board, value):
    """
    Equivalent (board, value) pairs for a labeled position.

    Swapping colours and ranks always gives an equivalent position with the
    opposite value. Mirroring files is only sound once nobody can castle.
    """
    syms = [(board, value)]
    mirrored = board.mirror()
    syms.append((mirrored, -value))
    if not has_castling_rights(board):
        syms.append((board.transform(chess.flip_horizontal), value))
        syms.append((mirrored.transform(chess.flip_horizontal), -value))
    return syms


# Augment examples
def augment_examples(examples):
    augmented = []
    for board, value in examples:
        augmented.extend(get_symmetries(board, value))
    return augmented

"""
Concurrent self-play.

Workers play whole games with their own engine and board, then push the
labeled (and augmented) positions into one bounded queue followed by a done
marker. The caller drains the queue until every worker has reported done.
"""

import logging
import queue
from concurrent.futures import ThreadPoolExecutor

import chess

from chess_env import ChessEnv, Conclusion
from config import Config
from utils import augment_examples, save_pgn

logger = logging.getLogger(__name__)

_DONE = object()


def outcome_value(conclusion, board, value_scale=Config.VALUE_SCALE):
    """Game label from white's point of view."""
    if conclusion == Conclusion.CHECKMATE:
        return value_scale if board.turn == chess.BLACK else -value_scale
    return 0.0


def play_game(engine, no_progress_limit=Config.NO_PROGRESS_LIMIT, max_game_length=Config.MAX_GAME_LENGTH,
              value_scale=Config.VALUE_SCALE, env=None):
    """
    Plays ``engine`` against itself.

    Returns the positions that had a move played from them, the game value
    and the final env.
    """
    env = env if env is not None else ChessEnv()
    history = []
    conclusion = env.conclusion()
    while conclusion == Conclusion.NORMAL:
        history.append(env.board.copy(stack=False))
        # the checkmate on the last allowed ply still stands
        if env.no_progress_plies >= no_progress_limit or env.plies >= max_game_length:
            break
        moves = env.legal_moves()
        move = moves[0] if len(moves) == 1 else engine.choose_move(env.board)
        conclusion = env.step(move)
    value = outcome_value(conclusion, env.board, value_scale)
    return history, value, env


def self_play(engine_factory, num_games=Config.NUM_SELFPLAY_GAMES, num_workers=Config.NUM_WORKERS,
              queue_size=Config.QUEUE_SIZE, augment=Config.USE_AUGMENT_SYMMETRIES, pgn_dir=Config.PGN_DIR,
              **game_kwargs):
    """Returns the labeled (board, value) examples of ``num_games`` self-play games."""
    num_workers = max(1, min(num_workers, num_games))
    shares = [num_games // num_workers + (1 if i < num_games % num_workers else 0)
              for i in range(num_workers)]
    channel = queue.Queue(maxsize=queue_size)

    def worker(worker_id, games):
        try:
            engine = engine_factory()
            for game in range(games):
                history, value, env = play_game(engine, **game_kwargs)
                logger.info("Worker %d finished game %d: %s after %d plies",
                            worker_id, game, env.board.result(claim_draw=True), env.plies)
                if pgn_dir is not None:
                    save_pgn(env.board, path=pgn_dir, prefix=f"worker{worker_id}")
                examples = [(board, value) for board in history]
                if augment:
                    examples = augment_examples(examples)
                for example in examples:
                    channel.put(example)
        finally:
            channel.put(_DONE)

    examples = []
    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        futures = [executor.submit(worker, i, games) for i, games in enumerate(shares)]
        done = 0
        while done < len(futures):
            item = channel.get()
            if item is _DONE:
                done += 1
            else:
                examples.append(item)
        for future in futures:
            future.result()
    return examples

"""
Engine-versus-engine matches for comparing evaluation functions.
"""

import logging
from dataclasses import dataclass

import chess

from chess_env import ChessEnv, Conclusion
from config import Config

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Tally of a match, seen from the first engine."""
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def total_games(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def score(self) -> float:
        if self.total_games == 0:
            return 0.0
        return (self.wins + 0.5 * self.draws) / self.total_games


def play_match(engine_a, engine_b, games=Config.NUM_ARENA_GAMES,
               max_game_length=Config.MAX_GAME_LENGTH) -> MatchResult:
    """Plays ``games`` games, engine A taking white in the even-numbered ones."""
    result = MatchResult()
    for game in range(games):
        a_is_white = game % 2 == 0
        engines = {chess.WHITE: engine_a if a_is_white else engine_b,
                   chess.BLACK: engine_b if a_is_white else engine_a}
        env = ChessEnv()
        conclusion = env.conclusion()
        while conclusion == Conclusion.NORMAL and env.plies < max_game_length:
            moves = env.legal_moves()
            move = moves[0] if len(moves) == 1 else engines[env.board.turn].choose_move(env.board)
            conclusion = env.step(move)

        if conclusion == Conclusion.CHECKMATE:
            # the side to move has been mated
            if (env.board.turn == chess.BLACK) == a_is_white:
                result.wins += 1
            else:
                result.losses += 1
        else:
            result.draws += 1
        logger.info("Game %d: %s in %d plies", game, env.board.result(claim_draw=True), env.plies)

    logger.info("%d Wins, %d Losses, %d Draws", result.wins, result.losses, result.draws)
    return result

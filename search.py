"""
Truncated minimax over a deduplicated exploration graph.

Each move decision builds a fresh graph of reachable positions. Expansion is
bounded by a dilution budget that is divided by the branching factor at every
level, and a handful of greedy-capture rollouts add a few deep lines on top.
Positions reached through different move orders share one node, so the graph
is a DAG and nodes keep a set of parents. The graph is then resolved bottom-up:
leaves are scored with the evaluation function and scores flow to parents by
min/max once all of a node's children are final.

Scores are absolute: positive favours white, +inf/-inf are forced wins.
"""

import logging
import math
from collections import deque

import chess
import numpy as np

from chess_env import Conclusion, apply_move, classify, legal_moves, position_key
from config import Config
from engines import GreedyCaptureEngine
from errors import InvariantError

logger = logging.getLogger(__name__)


class ExplorationNode:
    def __init__(self, key, board, turn):
        self.key = key
        self.board = board
        self.turn = turn
        self.score = 0.0
        self.dilution = 0.0
        self.legal_moves = ()
        self.terminal = False
        self.unsolved = 0
        self.parents = set()


class ExplorationGraph:
    """Arena of exploration nodes addressed by integer handles."""

    def __init__(self):
        self.nodes = []
        self.index = {}

    def __len__(self):
        return len(self.nodes)

    def __getitem__(self, handle):
        return self.nodes[handle]

    def lookup(self, key):
        return self.index.get(key)

    def add(self, key, board, turn):
        handle = len(self.nodes)
        self.nodes.append(ExplorationNode(key, board, turn))
        self.index[key] = handle
        return handle

    def link(self, child, parent):
        self.nodes[child].parents.add(parent)

    def has_ancestor(self, handle, key):
        """True if ``handle`` or any of its ancestors is the node keyed ``key``."""
        pending = [handle]
        seen = set()
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            node = self.nodes[current]
            if node.key == key:
                return True
            pending.extend(node.parents)
        return False

    def resolve(self, evaluate):
        """Scores every node, propagating leaf evaluations up by min/max."""
        nodes = self.nodes
        for node in nodes:
            node.unsolved = 0
        for node in nodes:
            for parent in node.parents:
                if nodes[parent].turn == node.turn:
                    raise InvariantError("Unexpected double turn in minimax graph")
                nodes[parent].unsolved += 1
        for node in nodes:
            if node.terminal:
                continue
            if node.unsolved == 0:
                node.score = evaluate(node.board)
            else:
                node.score = math.inf if node.turn == chess.BLACK else -math.inf

        queue = deque(range(len(nodes)))
        remaining = len(queue)
        streak = 0
        while queue:
            while True:
                handle = queue.popleft()
                if nodes[handle].unsolved == 0:
                    remaining -= 1
                    streak = 0
                    break
                if streak == remaining:
                    raise InvariantError("Cyclic dependency in minimax graph")
                streak += 1
                queue.append(handle)

            node = nodes[handle]
            for parent in node.parents:
                parent_node = nodes[parent]
                parent_node.unsolved -= 1
                if node.turn == chess.BLACK:
                    parent_node.score = max(parent_node.score, node.score)
                else:
                    parent_node.score = min(parent_node.score, node.score)


class TruncatedMinimax:
    def __init__(self, dilution_limit=Config.DILUTION_LIMIT, rollout_beams=Config.ROLLOUT_BEAMS,
                 rollout_depth=Config.ROLLOUT_DEPTH, evaluate=None, max_depth=Config.MAX_SEARCH_DEPTH,
                 seed=None):
        if evaluate is None:
            raise ValueError("an evaluation function is required")
        self.dilution_limit = dilution_limit
        self.rollout_beams = rollout_beams
        self.rollout_depth = rollout_depth
        self.evaluate = evaluate
        self.max_depth = max_depth
        self.rng = np.random.default_rng(seed)
        self.rollout_policy = GreedyCaptureEngine(rng=self.rng)

    def choose_move(self, board):
        moves = legal_moves(board)
        if not moves:
            raise InvariantError("No possible moves")
        if len(moves) == 1:
            return moves[0]

        graph, root_children = self.build_graph(board, moves)
        graph.resolve(self.evaluate)

        multiply = 1.0 if board.turn == chess.WHITE else -1.0
        best = -math.inf
        candidates = []
        for handle, move in root_children:
            score = graph[handle].score * multiply
            if score < best:
                continue
            if score > best:
                best = score
                candidates = []
            candidates.append(move)
        if not candidates:
            raise InvariantError("Unexpectedly empty candidate list")
        logger.debug("Explored %d positions, best score %s over %d candidates",
                     len(graph), best, len(candidates))
        if len(candidates) == 1:
            return candidates[0]
        return candidates[self.rng.integers(len(candidates))]

    def build_graph(self, board, moves=None):
        """Builds the exploration graph for ``board``; returns it with (handle, move) per root move."""
        if moves is None:
            moves = legal_moves(board)
        moves = self._shuffled(moves)

        graph = ExplorationGraph()
        root_key = position_key(board)
        root = graph.add(root_key, board, board.turn)
        graph[root].legal_moves = moves
        blacklist = frozenset([root_key])

        root_children = []
        for move in moves:
            child, _ = apply_move(board, move)
            self._expand(graph, blacklist, root, child, 0, self.dilution_limit)
            root_children.append((graph.lookup(position_key(child)), move))

        for _ in range(self.rollout_beams):
            self._rollout(graph, root, board)
        return graph, root_children

    def _shuffled(self, moves):
        return tuple(moves[i] for i in self.rng.permutation(len(moves)))

    def _expand(self, graph, blacklist, parent, board, depth, dilution):
        key = position_key(board)
        handle = graph.lookup(key)
        if handle is not None:
            if key in blacklist or graph.has_ancestor(parent, key):
                return
            graph.link(handle, parent)
            node = graph[handle]
            if node.terminal or node.dilution >= dilution:
                return
            node.dilution = dilution
            board = node.board
        else:
            handle = graph.add(key, board, board.turn)
            graph.link(handle, parent)
            node = graph[handle]
            if self._classify(node):
                return
            node.dilution = dilution
            node.legal_moves = self._shuffled(legal_moves(board))

        branching = len(node.legal_moves)
        if branching == 0:
            raise InvariantError("Non-terminal node with no legal moves: " + board.fen())
        dilution /= branching
        if dilution < 1.0:
            return
        depth += 1
        if self.max_depth is not None and depth > self.max_depth:
            return

        blacklist = blacklist | {key}
        for move in node.legal_moves:
            child, _ = apply_move(board, move)
            self._expand(graph, blacklist, handle, child, depth, dilution)

    def _rollout(self, graph, root, board):
        parent = root
        for _ in range(self.rollout_depth):
            if graph[parent].terminal:
                return
            board, _ = apply_move(board, self.rollout_policy.choose_move(board))
            key = position_key(board)
            handle = graph.lookup(key)
            if handle is None:
                handle = graph.add(key, board, board.turn)
                graph.link(handle, parent)
                if self._classify(graph[handle]):
                    return
            else:
                if graph.has_ancestor(parent, key):
                    return
                graph.link(handle, parent)
            parent = handle

    @staticmethod
    def _classify(node):
        """Marks terminal nodes with their fixed score; returns True if terminal."""
        conclusion = classify(node.board)
        if conclusion == Conclusion.NORMAL:
            return False
        if conclusion == Conclusion.CHECKMATE:
            # the side to move is mated
            node.score = math.inf if node.turn == chess.BLACK else -math.inf
        else:
            node.score = 0.0
        node.terminal = True
        return True

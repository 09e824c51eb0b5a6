import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import List, Optional, Tuple

import chess

from banchess.config import CONFIG
from banchess.core.evaluator import (CENTER_SQUARES, WIN_SCORE, Evaluator,
                                     is_back_rank, is_castling_pair,
                                     is_knight_development)
from banchess.core.errors import SearchExhaustedError
from banchess.core.transposition import TT_EXACT, TT_LOWER, TT_UPPER, TranspositionTable
from banchess.core.types import Action, Ban
from banchess.core.utils import log_info

logger = logging.getLogger(__name__)

INF = 1000000
MAX_HEIGHT = 128


@dataclass(frozen=True)
class SearchResult:
    best_action: Action
    score: int
    depth: int
    nodes: int
    elapsed_ms: int
    pv: Tuple[Action, ...] = ()


@dataclass(frozen=True)
class SearchStatistics:
    nodes_evaluated: int
    transposition_table_size: int


class SearchEngine:
    """Iterative-deepening minimax with alpha-beta over bans and moves.

    Scores are from the root player's point of view. The maximizing side only
    changes when the active color changes, so a ban and the move that follows
    it on the other side stay on the same side of the tree.
    """

    def __init__(self, evaluator: Optional[Evaluator] = None, depth: Optional[int] = None,
                 time_limit_ms: Optional[int] = None,
                 use_transposition_table: Optional[bool] = None):
        cfg = CONFIG.search
        self.cfg = cfg
        self.evaluator = evaluator or Evaluator()
        self.max_depth = depth if depth is not None else cfg.max_depth
        self.time_limit_ms = time_limit_ms if time_limit_ms is not None else cfg.time_limit_ms
        self.use_tt = (use_transposition_table if use_transposition_table is not None
                       else cfg.use_transposition_table)
        self.tt = TranspositionTable()
        self.nodes = 0
        self.history = defaultdict(int)
        self.killers = [[None] * 2 for _ in range(MAX_HEIGHT)]

    def find_best_action(self, game, time_limit_ms: Optional[int] = None) -> Action:
        return self.search(game, time_limit_ms).best_action

    def search(self, game, time_limit_ms: Optional[int] = None,
               depth: Optional[int] = None) -> SearchResult:
        """Search ``game`` without changing it.

        ``depth`` overrides ``max_depth`` for this call only.
        """
        budget = (time_limit_ms if time_limit_ms is not None else self.time_limit_ms) / 1000.0
        max_depth = depth if depth is not None else self.max_depth
        self.nodes = 0
        self.tt.clear()
        self.history.clear()
        self.killers = [[None] * 2 for _ in range(MAX_HEIGHT)]
        root = game.clone()

        best_action: Optional[Action] = None
        best_score = 0
        pv: List[Action] = []
        completed = 0
        start_time = time.time()

        # Iterative Deepening
        for d in range(1, max_depth + 1):
            score, action = self._minimax(root, d, -INF, INF, True)
            completed = d
            if action is not None:
                best_action, best_score = action, score
                pv = self._get_pv_line(root, d, action)

            elapsed = time.time() - start_time
            log_info(d, best_score, self.nodes, elapsed, pv, self.cfg.forced_win_threshold)

            if abs(best_score) > self.cfg.forced_win_threshold:
                break
            if elapsed > budget * self.cfg.time_fraction:
                break
            if d > self.cfg.adaptive_depth and elapsed > budget * self.cfg.adaptive_time_fraction:
                break

        if best_action is None:
            actions = root.legal_actions()
            if not actions:
                raise SearchExhaustedError(f"No legal actions in {root.fen()}")
            best_action = actions[0]
            pv = [best_action]
            logger.warning("search found no best action, falling back to %s", best_action)

        elapsed_ms = int((time.time() - start_time) * 1000)
        return SearchResult(best_action, best_score, completed, self.nodes, elapsed_ms, tuple(pv))

    def get_statistics(self) -> SearchStatistics:
        return SearchStatistics(nodes_evaluated=self.nodes, transposition_table_size=len(self.tt))

    def _get_pv_line(self, root, depth: int, best_action: Action) -> List[Action]:
        pv = [best_action]
        if not self.use_tt:
            return pv
        curr = root.clone()
        curr.play(best_action)

        # Avoid infinite loops (max depth or repetition)
        seen = {curr.fen()}

        for _ in range(depth - 1):
            if curr.game_over():
                break
            entry = self.tt.get(curr)
            if not entry or entry.best_action is None:
                break

            action = entry.best_action
            if action not in curr.legal_actions():
                break

            pv.append(action)
            curr.play(action)

            fen = curr.fen()
            if fen in seen:
                break
            seen.add(fen)

        return pv

    def _leaf(self, game, maximizing: bool) -> int:
        score = self.evaluator.evaluate(game)
        return score if maximizing else -score

    def _minimax(self, game, depth: int, alpha: int, beta: int,
                 maximizing: bool, height: int = 0) -> Tuple[int, Optional[Action]]:
        self.nodes += 1

        # TT Lookup
        if self.use_tt:
            tt_entry = self.tt.get(game)
            if tt_entry and tt_entry.depth >= depth:
                if tt_entry.flag == TT_EXACT:
                    return tt_entry.score, tt_entry.best_action
                elif tt_entry.flag == TT_LOWER:
                    alpha = max(alpha, tt_entry.score)
                elif tt_entry.flag == TT_UPPER:
                    beta = min(beta, tt_entry.score)
                if alpha >= beta:
                    return tt_entry.score, tt_entry.best_action

        if depth == 0 or game.game_over():
            return self._leaf(game, maximizing), None

        alpha_orig, beta_orig = alpha, beta
        best_score = -INF if maximizing else INF
        best_action = None

        for action in self._order_actions(game, game.legal_actions(), height):
            child = game.clone()
            result = child.play(action)
            if not result.success:
                continue

            if result.flags.checkmate:
                # covers ban-caused mates too; sooner wins score higher
                score = WIN_SCORE + depth if maximizing else -(WIN_SCORE + depth)
            else:
                switches = child.active_player != game.active_player
                child_max = (not maximizing) if switches else maximizing
                score, _ = self._minimax(child, depth - 1, alpha, beta, child_max, height + 1)

            if maximizing:
                if score > best_score:
                    best_score, best_action = score, action
                alpha = max(alpha, best_score)
            else:
                if score < best_score:
                    best_score, best_action = score, action
                beta = min(beta, best_score)
            if alpha >= beta:
                self._update_cutoff(game, action, depth, height)
                break

        if best_action is None:
            return self._leaf(game, maximizing), None

        if self.use_tt:
            if best_score <= alpha_orig:
                flag = TT_UPPER
            elif best_score >= beta_orig:
                flag = TT_LOWER
            else:
                flag = TT_EXACT
            self.tt.store(game, depth, best_score, flag, best_action)
        return best_score, best_action

    def _update_cutoff(self, game, action: Action, depth: int, height: int):
        """Remember a quiet action that caused a cutoff: bans and non-captures."""
        if isinstance(action, Ban) or not game.board.is_capture(action.to_chess()):
            self.history[action] += depth * depth
            killers = self.killers[height]
            if action != killers[0]:
                killers[1] = killers[0]
                killers[0] = action

    def _order_actions(self, game, actions: List[Action], height: int = 0) -> List[Action]:
        board = game.board
        # stable sort keeps generation order among equals
        if height == 0:
            # static at the root: the chosen action must not depend on killer or history state
            return sorted(actions, key=lambda a: self._priority(board, a), reverse=True)
        killers = self.killers[height]

        def key(action):
            score = self._priority(board, action)
            if action == killers[0]:
                score += 90
            elif action == killers[1]:
                score += 80
            else:
                score += min(self.history.get(action, 0), 60)
            return score

        return sorted(actions, key=key, reverse=True)

    def _priority(self, board: chess.Board, action: Action) -> int:
        score = 0
        if isinstance(action, Ban):
            if action.to_square in CENTER_SQUARES:
                score += 40
            if is_knight_development(board, action.from_square, action.to_square):
                score += 30
            if is_castling_pair(board, action.from_square, action.to_square):
                score += 50
            return score

        move = action.to_chess()
        if board.is_capture(move):
            score += 100
        if move.to_square in CENTER_SQUARES:
            score += 50
        if is_back_rank(move.from_square) and board.piece_type_at(move.from_square) != chess.KING:
            score += 30
        if board.gives_check(move):
            score += 80
        return score

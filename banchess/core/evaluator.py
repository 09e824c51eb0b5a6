"""Static evaluator for ban-chess positions.

The score is a weighted sum of four terms, each computed from White's point
of view and then turned around for the side about to act:

- material;
- tapered piece-square tables (middlegame/endgame blend by phase);
- mobility, credited to the side about to act;
- ban potential: on a ban ply, how much the best available ban hurts the
  opponent; on a move ply, how much the ban in force hurts the mover.
"""

from typing import Optional

import chess

from banchess.config import CONFIG, EvalConfig
from .types import ActionType, Ban

WIN_SCORE = 10000

CENTER_SQUARES = frozenset([chess.D4, chess.E4, chess.D5, chess.E5])
KNIGHT_DEVELOPMENT_SQUARES = frozenset([
    chess.C3, chess.F3, chess.C6, chess.F6,
    chess.B5, chess.G5, chess.B4, chess.G4,
])
CASTLING_PAIRS = frozenset([
    (chess.E1, chess.G1), (chess.E1, chess.C1),
    (chess.E8, chess.G8), (chess.E8, chess.C8),
])
MAX_PHASE = 24


def is_castling_pair(board: chess.Board, from_sq: chess.Square, to_sq: chess.Square) -> bool:
    return (from_sq, to_sq) in CASTLING_PAIRS and board.piece_type_at(from_sq) == chess.KING


def is_knight_development(board: chess.Board, from_sq: chess.Square, to_sq: chess.Square) -> bool:
    return board.piece_type_at(from_sq) == chess.KNIGHT and to_sq in KNIGHT_DEVELOPMENT_SQUARES


def is_back_rank(sq: chess.Square) -> bool:
    return chess.square_rank(sq) in (0, 7)


class Evaluator:
    def __init__(self, cfg: Optional[EvalConfig] = None, weights: Optional[dict] = None):
        self.cfg = cfg or CONFIG.eval
        self.weights = dict(self.cfg.weights)
        if weights:
            self.weights.update(weights)

    def evaluate(self, game) -> int:
        """Return static eval, positive favors the side about to act."""
        white_score = self.evaluate_white(game)
        return white_score if game.active_player == chess.WHITE else -white_score

    def evaluate_white(self, game) -> int:
        """Return static eval from White's point of view."""
        board = game.board
        if game.in_checkmate():
            # the side python-chess has to move is the one that is mated
            return -WIN_SCORE if board.turn == chess.WHITE else WIN_SCORE
        if game.in_draw():
            return 0

        w = self.weights
        score = (w["material"] * self.material(board)
                 + w["position"] * self.position(board)
                 + w["mobility"] * self.mobility(game)
                 + w["ban_potential"] * self.ban_potential(game))
        return int(round(score))

    def material(self, board: chess.Board) -> int:
        score = 0
        for piece in board.piece_map().values():
            value = self.cfg.piece_values.get(chess.piece_name(piece.piece_type).upper(), 0)
            score += value if piece.color == chess.WHITE else -value
        return score

    def position(self, board: chess.Board) -> int:
        mg_score = 0
        eg_score = 0
        phase = 0
        for sq, piece in board.piece_map().items():
            pt = piece.piece_type
            if pt in (chess.KNIGHT, chess.BISHOP):
                phase += 1
            elif pt == chess.ROOK:
                phase += 2
            elif pt == chess.QUEEN:
                phase += 4

            p_name = chess.piece_name(pt).upper()
            table_mg = getattr(self.cfg, f"PST_{p_name}_MG", None)
            table_eg = getattr(self.cfg, f"PST_{p_name}_EG", None)
            # tables read rank 8 first from White's side
            idx = chess.square_mirror(sq) if piece.color == chess.WHITE else sq
            pst_mg = table_mg[idx] if table_mg else 0
            pst_eg = table_eg[idx] if table_eg else 0

            if piece.color == chess.WHITE:
                mg_score += pst_mg
                eg_score += pst_eg
            else:
                mg_score -= pst_mg
                eg_score -= pst_eg

        phase = min(phase, MAX_PHASE)
        return (mg_score * phase + eg_score * (MAX_PHASE - phase)) // MAX_PHASE

    def mobility(self, game) -> int:
        count = len(game.legal_actions()) * self.cfg.mobility_per_action
        return count if game.active_player == chess.WHITE else -count

    def ban_potential(self, game) -> int:
        """Ban pressure, positive when it favors White."""
        if game.action_type is ActionType.BAN:
            bonus = self.best_ban_value(game)
            return bonus if game.active_player == chess.WHITE else -bonus
        ban = game.current_ban
        if ban is None:
            return 0
        penalty = self.banned_move_impact(ban)
        # the mover is the one hurt by the ban
        return -penalty if game.active_player == chess.WHITE else penalty

    def ban_value(self, board: chess.Board, ban: Ban) -> int:
        bw = self.cfg.ban_weights
        value = 0
        if ban.to_square in CENTER_SQUARES:
            value += bw["center"]
        if is_knight_development(board, ban.from_square, ban.to_square):
            value += bw["development"]
        if is_castling_pair(board, ban.from_square, ban.to_square):
            value += bw["castling"]
        return value

    def best_ban_value(self, game) -> int:
        bans = game.legal_bans()
        if not bans:
            return 0
        board = game.board
        best = max(self.ban_value(board, ban) for ban in bans)
        if len(bans) == 1 and board.is_check():
            # banning the single escape from check mates
            best += self.cfg.ban_weights["only_escape"]
        return best

    def banned_move_impact(self, ban: Ban) -> int:
        bw = self.cfg.banned_move_weights
        impact = bw["base"]
        if ban.to_square in CENTER_SQUARES:
            impact += bw["center"]
        if is_back_rank(ban.from_square):
            impact += bw["undeveloped"]
        return impact

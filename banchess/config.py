# banchess/config.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import os
import tomllib

# Centipawns. The king never leaves the board, so it carries no material.
PIECE_VALUES = {
    "PAWN": 100,
    "KNIGHT": 320,
    "BISHOP": 330,
    "ROOK": 500,
    "QUEEN": 900,
    "KING": 0,
}

# Piece-square tables are laid out the way a diagram reads: rank 8 first,
# from White's point of view.

PST_PAWN = [
     0,  0,  0,  0,  0,  0,  0,  0,
    50, 50, 50, 50, 50, 50, 50, 50,
    10, 10, 20, 30, 30, 20, 10, 10,
     5,  5, 10, 25, 25, 10,  5,  5,
     0,  0,  0, 20, 20,  0,  0,  0,
     5, -5,-10,  0,  0,-10, -5,  5,
     5, 10, 10,-20,-20, 10, 10,  5,
     0,  0,  0,  0,  0,  0,  0,  0,
]

PST_PAWN_ENDGAME = [
     0,  0,  0,  0,  0,  0,  0,  0,
    80, 80, 80, 80, 80, 80, 80, 80,
    50, 50, 50, 50, 50, 50, 50, 50,
    30, 30, 30, 30, 30, 30, 30, 30,
    20, 20, 20, 20, 20, 20, 20, 20,
    10, 10, 10, 10, 10, 10, 10, 10,
     0,  0,  0,  0,  0,  0,  0,  0,
     0,  0,  0,  0,  0,  0,  0,  0,
]

PST_KNIGHT = [
    -50,-40,-30,-30,-30,-30,-40,-50,
    -40,-20,  0,  0,  0,  0,-20,-40,
    -30,  0, 10, 15, 15, 10,  0,-30,
    -30,  5, 15, 20, 20, 15,  5,-30,
    -30,  0, 15, 20, 20, 15,  0,-30,
    -30,  5, 10, 15, 15, 10,  5,-30,
    -40,-20,  0,  5,  5,  0,-20,-40,
    -50,-40,-30,-30,-30,-30,-40,-50,
]

PST_BISHOP = [
    -20,-10,-10,-10,-10,-10,-10,-20,
    -10,  0,  0,  0,  0,  0,  0,-10,
    -10,  0,  5, 10, 10,  5,  0,-10,
    -10,  5,  5, 10, 10,  5,  5,-10,
    -10,  0, 10, 10, 10, 10,  0,-10,
    -10, 10, 10, 10, 10, 10, 10,-10,
    -10,  5,  0,  0,  0,  0,  5,-10,
    -20,-10,-10,-10,-10,-10,-10,-20,
]

PST_ROOK = [
     0,  0,  0,  0,  0,  0,  0,  0,
     5, 10, 10, 10, 10, 10, 10,  5,
    -5,  0,  0,  0,  0,  0,  0, -5,
    -5,  0,  0,  0,  0,  0,  0, -5,
    -5,  0,  0,  0,  0,  0,  0, -5,
    -5,  0,  0,  0,  0,  0,  0, -5,
    -5,  0,  0,  0,  0,  0,  0, -5,
     0,  0,  0,  5,  5,  0,  0,  0,
]

PST_QUEEN = [
    -20,-10,-10, -5, -5,-10,-10,-20,
    -10,  0,  0,  0,  0,  0,  0,-10,
    -10,  0,  5,  5,  5,  5,  0,-10,
     -5,  0,  5,  5,  5,  5,  0, -5,
      0,  0,  5,  5,  5,  5,  0, -5,
    -10,  5,  5,  5,  5,  5,  0,-10,
    -10,  0,  5,  0,  0,  0,  0,-10,
    -20,-10,-10, -5, -5,-10,-10,-20,
]

PST_KING = [
    -30,-40,-40,-50,-50,-40,-40,-30,
    -30,-40,-40,-50,-50,-40,-40,-30,
    -30,-40,-40,-50,-50,-40,-40,-30,
    -30,-40,-40,-50,-50,-40,-40,-30,
    -20,-30,-30,-40,-40,-30,-30,-20,
    -10,-20,-20,-20,-20,-20,-20,-10,
     20, 20,  0,  0,  0,  0, 20, 20,
     20, 30, 10,  0,  0, 10, 30, 20,
]

PST_KING_ENDGAME = [
    -50,-40,-30,-20,-20,-30,-40,-50,
    -30,-20,-10,  0,  0,-10,-20,-30,
    -30,-10, 20, 30, 30, 20,-10,-30,
    -30,-10, 30, 40, 40, 30,-10,-30,
    -30,-10, 30, 40, 40, 30,-10,-30,
    -30,-10, 20, 30, 30, 20,-10,-30,
    -30,-30,  0,  0,  0,  0,-30,-30,
    -50,-30,-30,-30,-30,-30,-30,-50,
]


def _table(values: List[int]):
    return field(default_factory=lambda: list(values))


@dataclass
class SearchConfig:
    max_depth: int = 6
    time_limit_ms: int = 5000
    use_transposition_table: bool = True
    # stop deepening once a completed depth used this share of the budget
    time_fraction: float = 0.9
    # past this depth, stop once half the budget is gone
    adaptive_depth: int = 4
    adaptive_time_fraction: float = 0.5
    forced_win_threshold: int = 9000


@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    weights: Dict[str, float] = field(default_factory=lambda: {
        "material": 1.0, "position": 0.3, "ban_potential": 0.4, "mobility": 0.2
    })
    mobility_per_action: int = 10
    ban_weights: Dict[str, int] = field(default_factory=lambda: {
        "center": 40, "development": 30, "castling": 50, "only_escape": 10000
    })
    banned_move_weights: Dict[str, int] = field(default_factory=lambda: {
        "base": 10, "center": 20, "undeveloped": 15
    })
    PST_PAWN_MG: List[int] = _table(PST_PAWN)
    PST_PAWN_EG: List[int] = _table(PST_PAWN_ENDGAME)
    PST_KNIGHT_MG: List[int] = _table(PST_KNIGHT)
    PST_KNIGHT_EG: List[int] = _table(PST_KNIGHT)
    PST_BISHOP_MG: List[int] = _table(PST_BISHOP)
    PST_BISHOP_EG: List[int] = _table(PST_BISHOP)
    PST_ROOK_MG: List[int] = _table(PST_ROOK)
    PST_ROOK_EG: List[int] = _table(PST_ROOK)
    PST_QUEEN_MG: List[int] = _table(PST_QUEEN)
    PST_QUEEN_EG: List[int] = _table(PST_QUEEN)
    PST_KING_MG: List[int] = _table(PST_KING)
    PST_KING_EG: List[int] = _table(PST_KING_ENDGAME)


@dataclass
class IndicatorConfig:
    """Where check (+), checkmate (#) and stalemate (=) suffixes are rendered."""
    pgn: bool = True
    serialization: bool = True
    san: bool = True


@dataclass
class ApiConfig:
    title: str = "BanChess"
    search_depth: Optional[int] = None  # None falls back to search.max_depth


@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("search", "eval", "indicators", "api"):
            target = getattr(cfg, section)
            for k, v in raw.get(section, {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"])
        return cfg


# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("BANCHESS_CONFIG_TOML", "config.toml"))
# allow env override of depth for quick debugging
override_depth = os.environ.get("BANCHESS_SEARCH_DEPTH")
if override_depth and override_depth.isdigit():
    CONFIG.search.max_depth = int(override_depth)

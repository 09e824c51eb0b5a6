"""Zobrist hashing and a transposition table for ban-chess positions.

A ban-chess position is more than a board: the same board reached on a ban
ply and on a move ply has different legal actions, and a move ply also
depends on the ban in force. The key therefore covers:

- the pieces, side to move, castling rights and en-passant file, as for
  standard chess;
- the phase of the ply cycle (ply % 4);
- the from/to squares of the active ban.

Each entry also keeps the extended FEN of the position it was stored for and
``get`` only returns it for that exact FEN, so hash collisions and positions
that differ only in their ply number never share an entry.

Usage (example):

    from banchess.core.transposition import TranspositionTable, TT_EXACT

    tt = TranspositionTable()
    tt.store(game, depth=3, score=120, flag=TT_EXACT, best_action=action)
    entry = tt.get(game)
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Optional

import chess

from .types import Action

# pieces symbols as returned by piece.symbol() in python-chess
PIECE_SYMBOLS = ["P", "N", "B", "R", "Q", "K",
                 "p", "n", "b", "r", "q", "k"]

TT_EXACT = 0
TT_UPPER = 1  # fail-low: true score <= stored score
TT_LOWER = 2  # fail-high: true score >= stored score


def _rand64(rng: random.Random) -> int:
    return rng.getrandbits(64)


def make_zobrist_table(seed: Optional[int] = None) -> Dict[str, object]:
    """Create a fresh zobrist table.

    Structure returned:
      {
        "piece": { 'P': [64 ints], 'N': [64 ints], ... },
        "side": int,
        "castling": [16 ints],
        "ep": [8 ints],
        "phase": [4 ints],
        "ban_from": [64 ints],
        "ban_to": [64 ints]
      }
    """
    rng = random.Random(seed)
    return {
        "piece": {sym: [_rand64(rng) for _ in range(64)] for sym in PIECE_SYMBOLS},
        "side": _rand64(rng),
        "castling": [_rand64(rng) for _ in range(16)],
        "ep": [_rand64(rng) for _ in range(8)],
        "phase": [_rand64(rng) for _ in range(4)],
        "ban_from": [_rand64(rng) for _ in range(64)],
        "ban_to": [_rand64(rng) for _ in range(64)],
    }


@dataclass
class TTEntry:
    fen: str
    depth: int
    score: int
    flag: int
    best_action: Optional[Action]

    def __iter__(self):
        return iter((self.fen, self.depth, self.score, self.flag, self.best_action))


class Zobrist:
    """Computes keys from scratch for each position."""

    def __init__(self, seed: Optional[int] = None):
        self.table = make_zobrist_table(seed)

    def hash(self, game) -> int:
        t = self.table
        board: chess.Board = game.board
        h = 0
        for sq, piece in board.piece_map().items():
            h ^= t["piece"][piece.symbol()][sq]
        if board.turn == chess.BLACK:
            h ^= t["side"]
        cr = 0
        if board.has_kingside_castling_rights(chess.WHITE):
            cr |= 1
        if board.has_queenside_castling_rights(chess.WHITE):
            cr |= 2
        if board.has_kingside_castling_rights(chess.BLACK):
            cr |= 4
        if board.has_queenside_castling_rights(chess.BLACK):
            cr |= 8
        h ^= t["castling"][cr]
        if board.ep_square is not None:
            h ^= t["ep"][chess.square_file(board.ep_square)]
        h ^= t["phase"][game.ply % 4]
        ban = game.current_ban
        if ban is not None:
            h ^= t["ban_from"][ban.from_square] ^ t["ban_to"][ban.to_square]
        return h


class TranspositionTable:
    """Transposition table keyed by zobrist hash.

    Methods:
      - get(game) -> Optional[TTEntry]
      - store(game, depth, score, flag, best_action)
      - clear()
      - key(game) -> int  (zobrist key)
      - len(tt) -> number of stored entries
    """

    def __init__(self, seed: Optional[int] = None):
        self.z = Zobrist(seed)
        self._table: Dict[int, TTEntry] = {}

    def key(self, game) -> int:
        return self.z.hash(game)

    def get(self, game) -> Optional[TTEntry]:
        entry = self._table.get(self.key(game))
        if entry is None:
            return None
        # verify fen to avoid collisions
        if entry.fen != game.fen():
            return None
        return entry

    def store(self, game, depth: int, score: int, flag: int, best_action: Optional[Action]):
        self._table[self.key(game)] = TTEntry(game.fen(), depth, score, flag, best_action)

    def clear(self):
        self._table.clear()

    def __len__(self) -> int:
        return len(self._table)

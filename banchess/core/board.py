"""Board wrapper over python-chess: the standard-chess oracle behind the variant."""

from typing import List, Optional

import chess


class ChessBoard:
    def __init__(self, fen: Optional[str] = None):
        """Initialize from a six-field FEN or the standard starting position."""
        self.board = chess.Board(fen) if fen else chess.Board()
        self.move_history: List[chess.Move] = []

    def reset(self):
        """Reset to the initial position."""
        self.board.reset()
        self.move_history.clear()

    def get_fen(self) -> str:
        """Return the current six-field FEN."""
        return self.board.fen()

    @property
    def turn(self) -> chess.Color:
        return self.board.turn

    def make_move(self, move: chess.Move) -> bool:
        """Push a move. Returns True if it was legal."""
        if not self.board.is_legal(move):
            return False
        self.board.push(move)
        self.move_history.append(move)
        return True

    def undo_move(self) -> Optional[chess.Move]:
        """Pop the last move."""
        if not self.move_history:
            return None
        self.move_history.pop()
        return self.board.pop()

    def get_legal_moves(self) -> List[chess.Move]:
        """Return legal moves in generation order."""
        return list(self.board.legal_moves)

    def is_legal(self, move: chess.Move) -> bool:
        return self.board.is_legal(move)

    def san(self, move: chess.Move) -> str:
        """SAN for a legal move, with python-chess' own + and # suffixes."""
        return self.board.san(move)

    def parse_san(self, san: str) -> chess.Move:
        """Raises ValueError when the SAN is unparsable, illegal or ambiguous."""
        return self.board.parse_san(san)

    def is_check(self) -> bool:
        return self.board.is_check()

    def is_insufficient_material(self) -> bool:
        return self.board.is_insufficient_material()

    def is_threefold_repetition(self) -> bool:
        """Only positions reached through ``make_move`` are counted."""
        return self.board.is_repetition(3)

    def is_fifty_moves(self) -> bool:
        return self.board.halfmove_clock >= 100

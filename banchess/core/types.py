"""Value types shared by the game, the notation layer and the search."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import chess

from .errors import NotationError

PROMOTION_PIECES = (chess.QUEEN, chess.ROOK, chess.BISHOP, chess.KNIGHT)


class ActionType(str, Enum):
    BAN = "ban"
    MOVE = "move"


def _parse_pair(text: str):
    if len(text) < 4:
        raise ValueError(f"Invalid square pair: {text!r}")
    return chess.parse_square(text[0:2]), chess.parse_square(text[2:4])


@dataclass(frozen=True)
class Move:
    from_square: chess.Square
    to_square: chess.Square
    promotion: Optional[chess.PieceType] = None

    def __post_init__(self):
        if self.promotion is not None and self.promotion not in PROMOTION_PIECES:
            raise ValueError(f"Invalid promotion piece: {self.promotion!r}")

    def uci(self) -> str:
        text = chess.square_name(self.from_square) + chess.square_name(self.to_square)
        if self.promotion:
            text += chess.piece_symbol(self.promotion)
        return text

    def to_chess(self) -> chess.Move:
        return chess.Move(self.from_square, self.to_square, promotion=self.promotion)

    @classmethod
    def from_chess(cls, move: chess.Move) -> "Move":
        return cls(move.from_square, move.to_square, move.promotion)

    @classmethod
    def from_uci(cls, text: str) -> "Move":
        """Parse ``e2e4`` / ``e7e8q``. Raises ValueError on malformed text."""
        if len(text) not in (4, 5):
            raise ValueError(f"Invalid move: {text!r}")
        from_sq, to_sq = _parse_pair(text)
        promotion = None
        if len(text) == 5:
            if text[4] not in "qrbn":
                raise ValueError(f"Invalid promotion piece in {text!r}")
            promotion = chess.PIECE_SYMBOLS.index(text[4])
        return cls(from_sq, to_sq, promotion)

    def __str__(self) -> str:
        return self.uci()


@dataclass(frozen=True)
class Ban:
    """Forbids every move between two squares, promotions included."""
    from_square: chess.Square
    to_square: chess.Square

    def uci(self) -> str:
        return chess.square_name(self.from_square) + chess.square_name(self.to_square)

    def matches(self, move) -> bool:
        return move.from_square == self.from_square and move.to_square == self.to_square

    @classmethod
    def from_move(cls, move) -> "Ban":
        return cls(move.from_square, move.to_square)

    @classmethod
    def from_uci(cls, text: str) -> "Ban":
        if len(text) != 4:
            raise ValueError(f"Invalid ban: {text!r}")
        return cls(*_parse_pair(text))

    def __str__(self) -> str:
        return self.uci()


Action = Union[Move, Ban]


@dataclass(frozen=True)
class GameFlags:
    check: bool = False
    checkmate: bool = False
    stalemate: bool = False
    draw: bool = False
    insufficient_material: bool = False
    threefold_repetition: bool = False
    fifty_moves: bool = False
    game_over: bool = False
    ban_caused_checkmate: bool = False
    ban_caused_stalemate: bool = False


@dataclass(frozen=True)
class HistoryEntry:
    ply: int
    player: chess.Color
    action_type: ActionType
    action: Action
    notation: str  # SAN for moves, "e2e4" for bans; always carries the indicator
    indicator: str
    fen: str  # extended FEN after the action
    banned_move: Optional[Ban]  # the ban placed, or the ban in force for a move
    flags: GameFlags


@dataclass(frozen=True)
class ActionResult:
    success: bool
    action: Optional[Action] = None
    san: Optional[str] = None
    error: Optional[str] = None
    new_fen: Optional[str] = None
    flags: GameFlags = GameFlags()

    @classmethod
    def failure(cls, error: str, action: Optional[Action] = None) -> "ActionResult":
        return cls(success=False, action=action, error=error)


@dataclass(frozen=True)
class SyncState:
    fen: str
    ply: int
    last_action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"fen": self.fen, "ply": self.ply}
        if self.last_action is not None:
            data["lastAction"] = self.last_action
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncState":
        try:
            return cls(fen=str(data["fen"]), ply=int(data["ply"]), last_action=data.get("lastAction"))
        except (KeyError, TypeError, ValueError) as e:
            raise NotationError(f"Invalid sync state: {data!r}") from e

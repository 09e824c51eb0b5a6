"""Ban chess rules state machine.

Each move is preceded by the opponent banning one of the mover's candidate
moves. The ply counter drives the whole game:

    ply % 4 == 1   Black bans one of White's moves
    ply % 4 == 2   White moves
    ply % 4 == 3   White bans one of Black's moves
    ply % 4 == 0   Black moves

Standard chess rules (legality, SAN, check) come from python-chess through
``ChessBoard``. This module adds the ban layer on top: which actions are
legal, the ban-caused terminal states, and the variant's notations.
"""

import dataclasses
import logging
from typing import List, Optional, Sequence, Union

import chess

from banchess.config import CONFIG, IndicatorConfig
from . import notation
from .board import ChessBoard
from .errors import NotationError, ReplayError
from .types import (Action, ActionResult, ActionType, Ban, GameFlags,
                    HistoryEntry, Move, SyncState)

logger = logging.getLogger(__name__)

INITIAL_PLY = 1


class BanChess:
    """One ban-chess game: position, ply, ban in force and history.

    Not thread-safe; guard shared instances externally.
    """

    def __init__(self, fen: Optional[str] = None, pgn: Optional[str] = None,
                 indicator_config: Optional[IndicatorConfig] = None):
        self._indicators = dataclasses.replace(indicator_config or CONFIG.indicators)
        self._board = ChessBoard()
        self._ply = INITIAL_PLY
        self._ban: Optional[Ban] = None
        self._history: List[HistoryEntry] = []
        self._synced_last_action: Optional[str] = None
        self._flags: Optional[GameFlags] = None
        if pgn is not None:
            self.load_pgn(pgn)
        elif fen is not None:
            self.load_fen(fen)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def ply(self) -> int:
        return self._ply

    @property
    def active_player(self) -> chess.Color:
        return chess.WHITE if notation.is_white_ply(self._ply) else chess.BLACK

    @property
    def action_type(self) -> ActionType:
        return notation.action_type_for_ply(self._ply)

    @property
    def current_ban(self) -> Optional[Ban]:
        return self._ban

    @property
    def board(self) -> chess.Board:
        """The underlying python-chess position. Treat it as read-only."""
        return self._board.board

    @property
    def indicator_config(self) -> IndicatorConfig:
        return dataclasses.replace(self._indicators)

    @indicator_config.setter
    def indicator_config(self, config: IndicatorConfig):
        self._indicators = dataclasses.replace(config)

    def set_indicator_config(self, **changes):
        """Change individual indicator switches, e.g. ``set_indicator_config(pgn=False)``."""
        self._indicators = dataclasses.replace(self._indicators, **changes)

    def _invalidate(self):
        self._flags = None

    # ------------------------------------------------------------------
    # Legal actions
    # ------------------------------------------------------------------

    def _unbanned_moves(self) -> List[chess.Move]:
        moves = self._board.get_legal_moves()
        if self._ban is None:
            return moves
        return [m for m in moves if not self._ban.matches(m)]

    def legal_moves(self) -> List[Move]:
        if self.action_type is not ActionType.MOVE or self.game_over():
            return []
        return [Move.from_chess(m) for m in self._unbanned_moves()]

    def legal_bans(self) -> List[Ban]:
        """Distinct (from, to) pairs of the next mover's legal moves."""
        if self.action_type is not ActionType.BAN or self.game_over():
            return []
        pairs = dict.fromkeys(Ban.from_move(m) for m in self._board.get_legal_moves())
        return list(pairs)

    def legal_actions(self) -> List[Action]:
        if self.action_type is ActionType.BAN:
            return self.legal_bans()
        return self.legal_moves()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def flags(self) -> GameFlags:
        if self._flags is None:
            self._flags = self._derive_flags()
        return self._flags

    def _derive_flags(self) -> GameFlags:
        check = self._board.is_check()
        can_move = bool(self._unbanned_moves())
        checkmate = check and not can_move
        stalemate = not check and not can_move
        insufficient = self._board.is_insufficient_material()
        threefold = self._board.is_threefold_repetition()
        fifty = self._board.is_fifty_moves()
        draw = not checkmate and (stalemate or insufficient or threefold or fifty)
        return GameFlags(
            check=check,
            checkmate=checkmate,
            stalemate=stalemate,
            draw=draw,
            insufficient_material=insufficient,
            threefold_repetition=threefold,
            fifty_moves=fifty,
            game_over=checkmate or draw,
        )

    def in_check(self) -> bool:
        return self.flags().check

    def in_checkmate(self) -> bool:
        return self.flags().checkmate

    def in_stalemate(self) -> bool:
        return self.flags().stalemate

    def in_draw(self) -> bool:
        return self.flags().draw

    def insufficient_material(self) -> bool:
        return self.flags().insufficient_material

    def in_threefold_repetition(self) -> bool:
        return self.flags().threefold_repetition

    def game_over(self) -> bool:
        return self.flags().game_over

    def result(self) -> Optional[str]:
        """``1-0``, ``0-1`` or ``1/2-1/2`` once the game is over."""
        flags = self.flags()
        if flags.checkmate:
            # the side that cannot move is the side python-chess has to move
            return "0-1" if self._board.turn == chess.WHITE else "1-0"
        if flags.game_over:
            return "1/2-1/2"
        return None

    def _indicator(self) -> str:
        flags = self.flags()
        if flags.checkmate:
            return notation.CHECKMATE
        if flags.stalemate:
            return notation.STALEMATE
        if flags.check:
            return notation.CHECK
        return ""

    # ------------------------------------------------------------------
    # Playing
    # ------------------------------------------------------------------

    def play(self, action: Action) -> ActionResult:
        """Apply a ban or a move. Rule violations come back as a failed result."""
        if self.game_over():
            return self._reject("Game is over", action)
        if isinstance(action, Ban):
            return self._play_ban(action)
        if isinstance(action, Move):
            return self._play_move(action)
        return self._reject(f"Unknown action: {action!r}", None)

    def _reject(self, error: str, action: Optional[Action]) -> ActionResult:
        logger.debug("rejected %s at ply %d: %s", action, self._ply, error)
        return ActionResult.failure(error, action)

    def _play_ban(self, ban: Ban) -> ActionResult:
        if self.action_type is not ActionType.BAN:
            return self._reject("Expected a move, not a ban", ban)
        if ban not in self.legal_bans():
            return self._reject(f"Invalid ban: {ban.uci()}", ban)

        remaining = [m for m in self._board.get_legal_moves() if not ban.matches(m)]
        check = self._board.is_check()
        if not remaining:
            indicator = notation.CHECKMATE if check else notation.STALEMATE
        else:
            indicator = notation.CHECK if check else ""

        player = self.active_player
        self._ban = ban
        self._ply += 1
        self._invalidate()
        flags = dataclasses.replace(
            self.flags(),
            ban_caused_checkmate=check and not remaining,
            ban_caused_stalemate=not check and not remaining,
        )
        return self._record(player, ActionType.BAN, ban, ban.uci() + indicator,
                            indicator, ban, flags)

    def _play_move(self, move: Move) -> ActionResult:
        if self.action_type is not ActionType.MOVE:
            return self._reject("Expected a ban, not a move", move)
        if self._ban is not None and self._ban.matches(move):
            return self._reject(f"Move {move.uci()} is banned", move)
        chess_move = move.to_chess()
        if not self._board.is_legal(chess_move):
            return self._reject(f"Invalid move: {move.uci()}", move)

        san = self._board.san(chess_move)
        player = self.active_player
        banned = self._ban
        self._board.make_move(chess_move)
        self._ban = None
        self._ply += 1
        self._invalidate()
        flags = self.flags()
        if flags.stalemate:
            san += notation.STALEMATE
        indicator = san[-1] if san[-1] in notation.INDICATORS else ""
        return self._record(player, ActionType.MOVE, move, san, indicator, banned, flags)

    def _record(self, player: chess.Color, action_type: ActionType, action: Action,
                text: str, indicator: str, banned: Optional[Ban],
                flags: GameFlags) -> ActionResult:
        fen = self.fen()
        self._history.append(HistoryEntry(
            ply=self._ply - 1,
            player=player,
            action_type=action_type,
            action=action,
            notation=text,
            indicator=indicator,
            fen=fen,
            banned_move=banned,
            flags=flags,
        ))
        san = text if self._indicators.san else notation.strip_indicator(text)
        return ActionResult(success=True, action=action, san=san, new_fen=fen, flags=flags)

    def play_serialized_action(self, text: str) -> ActionResult:
        try:
            action = notation.deserialize_action(text)
        except NotationError as e:
            return ActionResult.failure(str(e))
        return self.play(action)

    def undo(self) -> bool:
        """Revert the last action. Returns False when there is nothing to undo."""
        if not self._history:
            return False
        entry = self._history.pop()
        if entry.action_type is ActionType.MOVE:
            self._board.undo_move()
            self._ban = entry.banned_move
        else:
            self._ban = None
        self._ply = entry.ply
        self._invalidate()
        return True

    def reset(self):
        """Back to the initial position. Indicator settings are kept."""
        self._board.reset()
        self._ply = INITIAL_PLY
        self._ban = None
        self._history.clear()
        self._synced_last_action = None
        self._invalidate()

    def clone(self) -> "BanChess":
        """Independent copy of the position. History is not carried over."""
        return BanChess(self.fen(), indicator_config=self._indicators)

    # ------------------------------------------------------------------
    # History views
    # ------------------------------------------------------------------

    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    def _serialize_entry(self, entry: HistoryEntry) -> str:
        indicator = entry.indicator if self._indicators.serialization else ""
        return notation.serialize_action(entry.action, indicator)

    def action_history(self) -> List[str]:
        """Every action so far in BCN."""
        return [self._serialize_entry(e) for e in self._history]

    def action_log(self) -> List[str]:
        """SAN for moves and ``b:<from><to>`` for bans."""
        log = []
        for entry in self._history:
            if entry.action_type is ActionType.MOVE:
                log.append(entry.notation if self._indicators.san
                           else notation.strip_indicator(entry.notation))
            else:
                log.append(self._serialize_entry(entry))
        return log

    def last_action_serialized(self) -> Optional[str]:
        if self._history:
            return self._serialize_entry(self._history[-1])
        return self._synced_last_action

    # ------------------------------------------------------------------
    # FEN / PGN / sync
    # ------------------------------------------------------------------

    def fen(self) -> str:
        return notation.format_extended_fen(self._board.get_fen(), self._ply,
                                            self._ban, self._indicator())

    def load_fen(self, fen: str):
        """Load an extended (or bare six-field) FEN. Clears history."""
        base, ply, ban = notation.parse_extended_fen(fen)
        try:
            board = ChessBoard(base)
        except ValueError as e:
            raise NotationError(f"Invalid FEN: {base!r}: {e}") from e
        self._board = board
        self._ply = ply
        self._ban = ban
        self._history.clear()
        self._synced_last_action = None
        self._invalidate()

    def pgn(self) -> str:
        return notation.render_pgn(self._history, self.result(),
                                   indicators=self._indicators.pgn)

    def load_pgn(self, pgn: str):
        """Replace the game with the one recorded in ``pgn``.

        Raises NotationError naming the first token that cannot be played.
        The game is left untouched when loading fails.
        """
        fen, tokens = notation.tokenize_pgn(pgn)
        game = BanChess(indicator_config=self._indicators)
        if fen:
            base, ply, ban = notation.parse_extended_fen(fen)
            if len(fen.split()) == 6 and tokens:
                # no ply recorded: the first token decides where the cycle starts
                white = fen.split()[1] == "w"
                if tokens[0][0] is ActionType.BAN:
                    ply = 1 if white else 3
                else:
                    ply = 2 if white else 4
                fen = notation.format_extended_fen(base, ply, ban)
            game.load_fen(fen)

        for kind, value, raw in tokens:
            if kind is ActionType.BAN:
                action: Action = value
            else:
                try:
                    action = Move.from_chess(game._board.parse_san(value))
                except ValueError as e:
                    raise NotationError(f"Invalid PGN token {raw!r}: {e}") from e
            result = game.play(action)
            if not result.success:
                raise NotationError(f"Invalid PGN token {raw!r}: {result.error}")

        self._board = game._board
        self._ply = game._ply
        self._ban = game._ban
        self._history = game._history
        self._synced_last_action = None
        self._invalidate()

    def sync_state(self) -> SyncState:
        return SyncState(fen=self.fen(), ply=self._ply, last_action=self.last_action_serialized())

    def load_sync_state(self, state: Union[SyncState, dict]):
        """Adopt a peer's position, ban and ply. History starts empty."""
        if isinstance(state, dict):
            state = SyncState.from_dict(state)
        _, ply, _ = notation.parse_extended_fen(state.fen)
        if ply != state.ply:
            raise NotationError(f"Sync state ply {state.ply} does not match FEN ply {ply}")
        self.load_fen(state.fen)
        self._synced_last_action = state.last_action

    @classmethod
    def replay(cls, actions: Sequence[Union[str, Action]], fen: Optional[str] = None) -> "BanChess":
        """Build a game by applying BCN strings or actions in order."""
        game = cls(fen)
        for index, item in enumerate(actions):
            if isinstance(item, str):
                text, result = item, game.play_serialized_action(item)
            else:
                text, result = notation.serialize_action(item), game.play(item)
            if not result.success:
                raise ReplayError(index, text, result.error)
        return game

    serialize_action = staticmethod(notation.serialize_action)
    deserialize_action = staticmethod(notation.deserialize_action)

    def __repr__(self) -> str:
        return f"BanChess({self.fen()!r})"

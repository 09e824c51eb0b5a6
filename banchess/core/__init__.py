"""Core components: the ban-chess game, notation, evaluator, search and transposition table."""

from .board import ChessBoard
from .errors import BanChessError, NotationError, ReplayError, SearchExhaustedError
from .evaluator import Evaluator
from .game import BanChess
from .search import SearchEngine, SearchResult, SearchStatistics
from .transposition import TranspositionTable
from .types import Action, ActionResult, ActionType, Ban, GameFlags, HistoryEntry, Move, SyncState
